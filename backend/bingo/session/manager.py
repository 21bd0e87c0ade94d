from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from bingo.logic.enums import MarkAction, MarkState
from bingo.logic.events import (
    BroadcastTarget,
    MarkUpdatedEvent,
    PlayerTarget,
    ServiceEvent,
    SessionResetEvent,
    WinConfirmedEvent,
)
from bingo.messaging.event_payload import service_event_payload
from bingo.messaging.types import InitialDataMessage, PongMessage
from bingo.session.broadcast import broadcast_to_connections
from bingo.session.timer_manager import TimerManager

if TYPE_CHECKING:
    from bingo.logic.game import GameSession, GameStateView
    from bingo.logic.leaderboard import LeaderboardEntry
    from bingo.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()


class SessionManager:
    """
    Serialize every action against the single game session and fan out its events.

    All mutations -- operator actions, player actions, disconnects and revert
    timer callbacks -- run under one lock from the mutation through the last
    send, so no two handlers interleave and events reach clients in processing
    order.
    """

    def __init__(self, game: GameSession) -> None:
        self._game = game
        self._connections: dict[str, ConnectionProtocol] = {}  # connection_id -> connection
        self._lock = asyncio.Lock()
        self._timer_manager = TimerManager(
            on_revert=self._handle_revert,
            delay=game.settings.provisional_fade_seconds,
        )

    @property
    def game(self) -> GameSession:
        return self._game

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    @property
    def pending_revert_count(self) -> int:
        return self._timer_manager.pending_count

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister_connection(self, connection: ConnectionProtocol) -> None:
        self._connections.pop(connection.connection_id, None)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        """Register the connection and send it the current public state."""
        self.register_connection(connection)
        async with self._lock:
            snapshot = self._game.snapshot()
            message = InitialDataMessage(
                terms=snapshot.terms,
                announced_terms=snapshot.announced_terms,
                player_count=snapshot.player_count,
                leaderboard=self._game.leaderboard(),
            )
            with contextlib.suppress(RuntimeError, OSError, ConnectionError):
                await connection.send_message(message)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        self.unregister_connection(connection)
        await self._run(lambda: self._game.disconnect(connection.connection_id))

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await connection.send_message(PongMessage())

    # ------------------------------------------------------------------
    # Player actions (player id == connection id)
    # ------------------------------------------------------------------

    async def register_player(self, connection: ConnectionProtocol, name: str) -> None:
        await self._run(lambda: self._game.register(connection.connection_id, name))

    async def generate_card(self, connection: ConnectionProtocol) -> None:
        await self._run(lambda: self._game.generate_card(connection.connection_id))

    async def submit_card(self, connection: ConnectionProtocol, card: list[str]) -> None:
        await self._run(lambda: self._game.submit_card(connection.connection_id, card))

    async def mark(self, connection: ConnectionProtocol, term: str, action: MarkAction) -> None:
        await self._run(lambda: self._game.apply_mark(connection.connection_id, term, action))

    async def declare_win(self, connection: ConnectionProtocol) -> None:
        await self._run(lambda: self._game.declare_win(connection.connection_id))

    # ------------------------------------------------------------------
    # Operator actions (caller is responsible for authorization)
    # ------------------------------------------------------------------

    async def add_term(self, text: str) -> GameStateView:
        return await self._run_with_snapshot(lambda: self._game.add_term(text))

    async def remove_term(self, index: int) -> GameStateView:
        return await self._run_with_snapshot(lambda: self._game.remove_term(index))

    async def announce(self, term: str) -> GameStateView:
        return await self._run_with_snapshot(lambda: self._game.announce(term))

    async def unannounce(self, term: str) -> GameStateView:
        return await self._run_with_snapshot(lambda: self._game.unannounce(term))

    async def reset(self) -> GameStateView:
        return await self._run_with_snapshot(self._game.reset)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def snapshot(self) -> GameStateView:
        async with self._lock:
            return self._game.snapshot()

    async def leaderboard(self) -> list[LeaderboardEntry]:
        async with self._lock:
            return self._game.leaderboard()

    def cancel_all_pending_reverts(self) -> None:
        self._timer_manager.cancel_all()

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    async def _run(self, action: Callable[[], list[ServiceEvent]]) -> None:
        """Apply one action under the lock, then schedule timers and deliver its events.

        A BingoError raised by the action propagates before any event is sent.
        """
        async with self._lock:
            events = action()
            self._apply_timer_changes(events)
            await self._dispatch(events)

    async def _run_with_snapshot(self, action: Callable[[], list[ServiceEvent]]) -> GameStateView:
        async with self._lock:
            events = action()
            self._apply_timer_changes(events)
            await self._dispatch(events)
            return self._game.snapshot()

    async def _handle_revert(self, player_id: str, cell: int, generation: int) -> None:
        structlog.contextvars.bind_contextvars(player_id=player_id)
        logger.debug("revert timer fired", cell=cell, generation=generation)
        await self._run(lambda: self._game.revert_provisional(player_id, cell, generation))

    def _apply_timer_changes(self, events: list[ServiceEvent]) -> None:
        for event in events:
            data = event.data
            if isinstance(data, MarkUpdatedEvent) and isinstance(event.target, PlayerTarget):
                if data.state is MarkState.PROVISIONAL:
                    self._timer_manager.schedule(event.target.player_id, data.cell, data.generation)
                else:
                    self._timer_manager.cancel(event.target.player_id, data.cell)
            elif isinstance(data, WinConfirmedEvent) and isinstance(event.target, PlayerTarget):
                self._timer_manager.cancel_player(event.target.player_id)
            elif isinstance(data, SessionResetEvent):
                self._timer_manager.cancel_all()

    async def _dispatch(self, events: list[ServiceEvent]) -> None:
        for event in events:
            payload = service_event_payload(event)
            if isinstance(event.target, BroadcastTarget):
                await broadcast_to_connections(self._connections, payload)
            elif isinstance(event.target, PlayerTarget):
                connection = self._connections.get(event.target.player_id)
                if connection is None:
                    # disconnected player: the state change still applies, nobody is listening
                    continue
                with contextlib.suppress(RuntimeError, OSError, ConnectionError):
                    await connection.send_message(payload)

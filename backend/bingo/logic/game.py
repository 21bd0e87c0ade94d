"""
Authoritative game session: the single owner of all mutable bingo state.

Every operation validates, mutates and returns the list of ServiceEvent that
describe the change. Operations never await, so a caller that runs them one at
a time gets strict processing order for free. Rejections raise BingoError
subclasses before any state is touched. Actions from unknown players are
ignored and return no events.

Provisional marks are announced through MarkUpdatedEvent carrying a generation
number. The session layer schedules the revert and calls revert_provisional()
when it fires; the generation check makes a late or stale revert a no-op.
"""

from __future__ import annotations

import random
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel

from bingo.logic.cards import draw_card, validate_card
from bingo.logic.enums import ErrorCode, MarkAction, MarkState
from bingo.logic.events import (
    CardAssignedEvent,
    LeaderboardUpdatedEvent,
    MarkUpdatedEvent,
    PlayerCountEvent,
    RegisteredEvent,
    ServiceEvent,
    SessionResetEvent,
    TermAnnouncedEvent,
    TermsChangedEvent,
    TermUnannouncedEvent,
    WinConfirmedEvent,
    broadcast,
    to_player,
)
from bingo.logic.exceptions import StateConflictError, ValidationError
from bingo.logic.leaderboard import LeaderboardEntry, rank_players
from bingo.logic.settings import GameSettings
from bingo.logic.spam import SpamWindow
from bingo.logic.state import Mark, PlayerState, WinnerRecord
from bingo.logic.terms import TermRegistry
from bingo.logic.win import evaluate_win

logger = structlog.get_logger()


class GameStateView(BaseModel):
    """Public query surface: terms, announced terms and connected player count."""

    terms: list[str]
    announced_terms: list[str]
    player_count: int


class GameSession:
    def __init__(
        self,
        settings: GameSettings | None = None,
        *,
        terms: list[str] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings or GameSettings()
        self._terms = TermRegistry(terms)
        self._players: dict[str, PlayerState] = {}  # player_id -> PlayerState, registration order
        self._winners: list[WinnerRecord] = []
        self._win_sequence = 1
        self._rng = rng or random.Random()  # noqa: S311

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def terms(self) -> TermRegistry:
        return self._terms

    @property
    def winners(self) -> list[WinnerRecord]:
        return list(self._winners)

    @property
    def player_count(self) -> int:
        return len(self._players)

    @property
    def connected_count(self) -> int:
        return sum(1 for p in self._players.values() if p.connected)

    def get_player(self, player_id: str) -> PlayerState | None:
        return self._players.get(player_id)

    def leaderboard(self) -> list[LeaderboardEntry]:
        return rank_players(self._players.values())

    def snapshot(self) -> GameStateView:
        return GameStateView(
            terms=self._terms.terms,
            announced_terms=self._terms.announced,
            player_count=self.connected_count,
        )

    def _leaderboard_event(self) -> ServiceEvent:
        return broadcast(LeaderboardUpdatedEvent(leaderboard=self.leaderboard()))

    def _player_count_event(self) -> ServiceEvent:
        return broadcast(PlayerCountEvent(count=self.connected_count))

    @staticmethod
    def _mark_event(player: PlayerState, cell: int, term: str) -> ServiceEvent:
        mark = player.marks.get(cell)
        return to_player(
            player.player_id,
            MarkUpdatedEvent(
                cell=cell,
                term=term,
                state=mark.state if mark is not None else None,
                generation=mark.generation if mark is not None else player.mark_generation,
                valid_clicks=player.valid_clicks,
                total_clicks=player.total_clicks,
            ),
        )

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    def add_term(self, text: str) -> list[ServiceEvent]:
        self._terms.add_term(text)
        return [broadcast(TermsChangedEvent(terms=self._terms.terms))]

    def remove_term(self, index: int) -> list[ServiceEvent]:
        self._terms.remove_term(index)
        return [broadcast(TermsChangedEvent(terms=self._terms.terms))]

    def announce(self, term: str) -> list[ServiceEvent]:
        """Announce a term and promote any provisional marks on it to confirmed."""
        self._terms.announce(term)
        events = [broadcast(TermAnnouncedEvent(term=term, announced_terms=self._terms.announced))]

        promoted = 0
        for player in self._players.values():
            if player.has_bingo:
                continue
            mark = player.mark_for_term(term)
            if mark is None:
                continue
            mark.state = MarkState.CONFIRMED
            if not mark.scored:
                mark.scored = True
                player.valid_clicks += 1
            promoted += 1
            events.append(self._mark_event(player, mark.cell, term))

        if promoted:
            logger.info("provisional marks promoted", term=term, players=promoted)
            events.append(self._leaderboard_event())
        return events

    def unannounce(self, term: str) -> list[ServiceEvent]:
        """Withdraw an announcement and strip the term from every open player's marks."""
        self._terms.unannounce(term)
        events = [broadcast(TermUnannouncedEvent(term=term, announced_terms=self._terms.announced))]

        affected = 0
        for player in self._players.values():
            if player.has_bingo:
                continue
            mark = player.mark_for_term(term)
            if mark is None:
                continue
            del player.marks[mark.cell]
            if mark.scored:
                player.valid_clicks = max(0, player.valid_clicks - 1)
            affected += 1
            events.append(self._mark_event(player, mark.cell, term))

        if affected:
            logger.info("marks invalidated by unannounce", term=term, players=affected)
            events.append(self._leaderboard_event())
        return events

    def reset(self) -> list[ServiceEvent]:
        """Clear announcements, winners and all player progress. Identities and names survive."""
        self._terms.reset()
        self._winners.clear()
        self._win_sequence = 1
        for player in self._players.values():
            player.clear_progress()
        logger.info("session reset", players=len(self._players))
        return [broadcast(SessionResetEvent()), self._leaderboard_event()]

    # ------------------------------------------------------------------
    # Player lifecycle
    # ------------------------------------------------------------------

    def register(self, player_id: str, name: str) -> list[ServiceEvent]:
        if player_id in self._players:
            raise StateConflictError("Already registered", code=ErrorCode.ALREADY_REGISTERED)
        display_name = name.strip()
        if not display_name:
            raise ValidationError("Name must not be empty", code=ErrorCode.INVALID_NAME)

        self._players[player_id] = PlayerState(
            player_id=player_id,
            name=display_name,
            spam_window=SpamWindow(self._settings.spam_threshold, self._settings.spam_window_seconds),
        )
        logger.info("player registered", player_name=display_name, total_players=len(self._players))
        return [
            to_player(player_id, RegisteredEvent(player_id=player_id, name=display_name)),
            self._player_count_event(),
            self._leaderboard_event(),
        ]

    def disconnect(self, player_id: str) -> list[ServiceEvent]:
        """Flag the player as gone. Card, marks and scores stay, so does the leaderboard row."""
        player = self._players.get(player_id)
        if player is None:
            return []
        player.connected = False
        logger.info("player disconnected, kept on leaderboard", player_name=player.name)
        return [self._player_count_event(), self._leaderboard_event()]

    def generate_card(self, player_id: str) -> list[ServiceEvent]:
        player = self._players.get(player_id)
        if player is None:
            return []
        if not player.card:
            player.card = draw_card(self._terms.card_pool(), self._settings.card_size, self._rng)
            logger.info("card generated", player_name=player.name)
        return [to_player(player_id, CardAssignedEvent(card=list(player.card)))]

    def submit_card(self, player_id: str, card: list[str]) -> list[ServiceEvent]:
        """Accept a client-built card once. Resubmitting the same card is a no-op."""
        player = self._players.get(player_id)
        if player is None:
            return []
        if player.card:
            if player.card == card:
                return []
            raise StateConflictError("Card is already set", code=ErrorCode.CARD_ALREADY_SET)
        validate_card(card, self._terms.card_pool(), self._settings.card_size)
        player.card = list(card)
        logger.info("card submitted", player_name=player.name)
        return [to_player(player_id, CardAssignedEvent(card=list(player.card)))]

    # ------------------------------------------------------------------
    # Marking state machine
    # ------------------------------------------------------------------

    def apply_mark(self, player_id: str, term: str, action: MarkAction) -> list[ServiceEvent]:
        if action is MarkAction.MARK:
            return self.mark(player_id, term)
        return self.unmark(player_id, term)

    def _markable_cell(self, player_id: str, term: str) -> tuple[PlayerState, int] | None:
        """Resolve the player and card cell for a mark request, or None when it must be ignored."""
        player = self._players.get(player_id)
        if player is None:
            return None
        if player.has_bingo:
            raise StateConflictError("Card is frozen after a win", code=ErrorCode.ALREADY_WON)
        cell = player.cell_of(term)
        if cell is None:
            logger.debug("mark request ignored, term not on card", term=term)
            return None
        return player, cell

    def mark(self, player_id: str, term: str) -> list[ServiceEvent]:
        resolved = self._markable_cell(player_id, term)
        if resolved is None:
            return []
        player, cell = resolved

        existing = player.marks.get(cell)
        if existing is not None and existing.state is MarkState.CONFIRMED:
            return []

        spamming = player.spam_window.record()
        announced = self._terms.is_announced(term)
        state = MarkState.CONFIRMED if announced and not spamming else MarkState.PROVISIONAL

        if existing is None:
            player.total_clicks += 1
        scored = existing.scored if existing is not None else False
        if announced and not scored:
            # spam-marking an announced term still scores, only the mark itself fades
            player.valid_clicks += 1
            scored = True

        player.marks[cell] = Mark(
            cell=cell,
            term=term,
            state=state,
            scored=scored,
            generation=player.next_generation(),
        )
        logger.debug("cell marked", term=term, state=state, spamming=spamming)
        return [self._mark_event(player, cell, term), self._leaderboard_event()]

    def unmark(self, player_id: str, term: str) -> list[ServiceEvent]:
        resolved = self._markable_cell(player_id, term)
        if resolved is None:
            return []
        player, cell = resolved
        # every click counts toward the spam window, unmarking ones included
        player.spam_window.record()
        if cell not in player.marks:
            return []
        self._remove_mark(player, cell)
        logger.debug("cell unmarked", term=term)
        return [self._mark_event(player, cell, term), self._leaderboard_event()]

    def revert_provisional(self, player_id: str, cell: int, generation: int) -> list[ServiceEvent]:
        """Fade a provisional mark if the cell still holds the mark this revert was scheduled for."""
        player = self._players.get(player_id)
        if player is None or player.has_bingo:
            return []
        mark = player.marks.get(cell)
        if mark is None or mark.state is not MarkState.PROVISIONAL or mark.generation != generation:
            return []
        self._remove_mark(player, cell)
        logger.debug("provisional mark reverted", term=mark.term, cell=cell)
        return [self._mark_event(player, cell, mark.term), self._leaderboard_event()]

    @staticmethod
    def _remove_mark(player: PlayerState, cell: int) -> None:
        mark = player.marks.pop(cell)
        player.total_clicks = max(0, player.total_clicks - 1)
        if mark.scored:
            player.valid_clicks = max(0, player.valid_clicks - 1)

    # ------------------------------------------------------------------
    # Win declaration
    # ------------------------------------------------------------------

    def declare_win(self, player_id: str) -> list[ServiceEvent]:
        player = self._players.get(player_id)
        if player is None:
            return []
        if player.has_bingo:
            raise StateConflictError("Win already declared", code=ErrorCode.ALREADY_WON)
        if not evaluate_win(player, self._terms.announced):
            raise StateConflictError("Not a valid win", code=ErrorCode.NOT_A_VALID_WIN)

        position = self._win_sequence
        self._win_sequence += 1
        player.has_bingo = True
        player.bingo_position = position
        player.bingo_time = datetime.now(UTC).isoformat()
        self._winners.append(
            WinnerRecord(player_id=player_id, name=player.name, position=position, time=player.bingo_time),
        )
        logger.info("win declared", player_name=player.name, position=position)
        return [
            to_player(player_id, WinConfirmedEvent(player_name=player.name, position=position)),
            self._leaderboard_event(),
        ]

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from bingo.logic.enums import MarkAction
from bingo.logic.exceptions import BingoError
from bingo.messaging.types import (
    DeclareWinMessage,
    ErrorMessage,
    GenerateCardMessage,
    MarkMessage,
    PingMessage,
    RegisterMessage,
    SessionErrorCode,
    SubmitCardMessage,
    UnmarkMessage,
    parse_client_message,
)

if TYPE_CHECKING:
    from bingo.messaging.protocol import ConnectionProtocol
    from bingo.session.manager import SessionManager

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Routes incoming player messages to the session manager.

    Rejections (BingoError) are answered to the sender only. Any other
    exception is logged and answered with an internal error; the connection
    and the session keep serving subsequent actions.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message from %s: %s", connection.connection_id, e)
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)),
            )
            return

        structlog.contextvars.bind_contextvars(player_id=connection.connection_id)
        try:
            await self._dispatch(connection, message)
        except BingoError as e:
            logger.info("action rejected for %s: %s", connection.connection_id, e.message)
            await connection.send_message(ErrorMessage(code=e.code, message=e.message))
        except Exception:
            logger.exception("unexpected error handling %s from %s", message.type, connection.connection_id)
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.INTERNAL_ERROR, message="Internal server error"),
            )

    async def _dispatch(self, connection: ConnectionProtocol, message: object) -> None:
        manager = self._session_manager
        if isinstance(message, RegisterMessage):
            await manager.register_player(connection, message.name)
        elif isinstance(message, GenerateCardMessage):
            await manager.generate_card(connection)
        elif isinstance(message, SubmitCardMessage):
            await manager.submit_card(connection, message.card)
        elif isinstance(message, MarkMessage):
            await manager.mark(connection, message.term, MarkAction.MARK)
        elif isinstance(message, UnmarkMessage):
            await manager.mark(connection, message.term, MarkAction.UNMARK)
        elif isinstance(message, DeclareWinMessage):
            await manager.declare_win(connection)
        elif isinstance(message, PingMessage):
            await manager.handle_ping(connection)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.handle_connect(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.handle_disconnect(connection)

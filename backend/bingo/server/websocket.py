"""Websocket transport: one player connection per socket, MessagePack frames."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from bingo.messaging.encoder import DecodeError, decode
from bingo.messaging.protocol import ConnectionProtocol
from bingo.messaging.types import ErrorMessage, SessionErrorCode

logger = structlog.get_logger()

if TYPE_CHECKING:
    from bingo.messaging.router import MessageRouter

# consecutive undecodable frames tolerated before the socket is closed
_MAX_DECODE_ERRORS = 5
_CLOSE_TOO_MANY_DECODE_ERRORS = 4004


class WebSocketConnection(ConnectionProtocol):
    """Starlette websocket behind the transport-neutral connection interface.

    A disconnect surfaces as ConnectionError so the session layer never
    depends on Starlette exception types.
    """

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def client_host(self) -> str | None:
        client = self._websocket.client
        return client.host if client is not None else None

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send_bytes(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_bytes(self) -> bytes:
        try:
            return await self._websocket.receive_bytes()
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect):
            await self._websocket.close(code=code, reason=reason)


class _DecodeStrikes:
    """Count consecutive undecodable frames; any good frame clears the count."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self.count = 0

    def record_failure(self) -> bool:
        """Return True once the limit is reached."""
        self.count += 1
        return self.count >= self._limit

    def reset(self) -> None:
        self.count = 0


async def _read_frame(connection: WebSocketConnection, strikes: _DecodeStrikes) -> dict[str, Any] | None:
    """Receive and decode one frame. Returns None when the frame was rejected."""
    raw = await connection.receive_bytes()
    try:
        data = decode(raw)
    except DecodeError as e:
        exhausted = strikes.record_failure()
        logger.warning("decode error", error=str(e), strikes=strikes.count)
        await connection.send_message(ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)))
        if exhausted:
            logger.info("too many decode errors, closing socket", connection_id=connection.connection_id)
            await connection.close(code=_CLOSE_TOO_MANY_DECODE_ERRORS, reason="too_many_decode_errors")
            raise ConnectionError("closed after repeated decode errors") from e
        return None
    strikes.reset()
    return data


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter) -> None:
    await websocket.accept()

    connection = WebSocketConnection(websocket)
    logger.info("websocket connected", connection_id=connection.connection_id, client=connection.client_host)
    await router.handle_connect(connection)

    strikes = _DecodeStrikes(_MAX_DECODE_ERRORS)
    try:
        while True:
            data = await _read_frame(connection, strikes)
            if data is not None:
                await router.handle_message(connection, data)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        logger.info("websocket disconnected", connection_id=connection.connection_id)
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()

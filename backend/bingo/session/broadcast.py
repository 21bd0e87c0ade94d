"""Shared broadcast utility for sending messages to every open connection."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from bingo.messaging.protocol import ConnectionProtocol


async def broadcast_to_connections(
    connections: dict[str, ConnectionProtocol],
    message: dict[str, Any],
) -> None:
    """Send a message to all connections, skipping ones that already went away.

    Snapshot the dict values via list() to avoid RuntimeError if a
    disconnect mutates the dict while we yield on send_message.
    """
    for connection in list(connections.values()):
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await connection.send_message(message)

"""Abstract connection protocol for MessagePack binary communication."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from bingo.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    Abstract interface for a client connection.

    The connection id doubles as the player's identity once they register.
    Message handling can be tested without real WebSocket connections.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None:
        """
        Send raw bytes to the client.
        """
        ...

    @abstractmethod
    async def receive_bytes(self) -> bytes:
        """
        Receive raw bytes from the client.
        """
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        """
        Close the connection.
        """
        ...

    async def send_message(self, data: dict[str, Any] | BaseModel) -> None:
        """
        Send a message to the client using MessagePack encoding.
        """
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        raw = await self.receive_bytes()
        return decode(raw)

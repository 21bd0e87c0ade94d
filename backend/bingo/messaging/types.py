from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from bingo.logic.enums import ErrorCode
from bingo.logic.game import GameStateView
from bingo.logic.leaderboard import LeaderboardEntry

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

_MAX_TERM_LENGTH = 200
_MAX_NAME_LENGTH = 50


def _reject_control_characters(value: str) -> str:
    if any(ord(c) < _SPACE_ORD or ord(c) == _DEL_ORD for c in value):
        raise ValueError("must not contain control characters")
    return value


class ClientMessageType(StrEnum):
    REGISTER = "register"
    GENERATE_CARD = "generate_card"
    SUBMIT_CARD = "submit_card"
    MARK = "mark"
    UNMARK = "unmark"
    DECLARE_WIN = "declare_win"
    PING = "ping"


class SessionMessageType(StrEnum):
    INITIAL_DATA = "initial_data"
    ERROR = "session_error"
    PONG = "pong"


class SessionErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    INTERNAL_ERROR = "internal_error"


class RegisterMessage(BaseModel):
    type: Literal[ClientMessageType.REGISTER] = ClientMessageType.REGISTER
    name: str = Field(min_length=1, max_length=_MAX_NAME_LENGTH)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        return _reject_control_characters(v)


class GenerateCardMessage(BaseModel):
    type: Literal[ClientMessageType.GENERATE_CARD] = ClientMessageType.GENERATE_CARD


class SubmitCardMessage(BaseModel):
    """Informational card snapshot built client-side; marked cells are ignored."""

    type: Literal[ClientMessageType.SUBMIT_CARD] = ClientMessageType.SUBMIT_CARD
    card: list[Annotated[str, Field(min_length=1, max_length=_MAX_TERM_LENGTH)]] = Field(max_length=64)
    marked_cells: list[int] = Field(default_factory=list, max_length=64)


class MarkMessage(BaseModel):
    type: Literal[ClientMessageType.MARK] = ClientMessageType.MARK
    term: str = Field(min_length=1, max_length=_MAX_TERM_LENGTH)


class UnmarkMessage(BaseModel):
    type: Literal[ClientMessageType.UNMARK] = ClientMessageType.UNMARK
    term: str = Field(min_length=1, max_length=_MAX_TERM_LENGTH)


class DeclareWinMessage(BaseModel):
    type: Literal[ClientMessageType.DECLARE_WIN] = ClientMessageType.DECLARE_WIN


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = Annotated[
    RegisterMessage
    | GenerateCardMessage
    | SubmitCardMessage
    | MarkMessage
    | UnmarkMessage
    | DeclareWinMessage
    | PingMessage,
    Field(discriminator="type"),
]


class InitialDataMessage(GameStateView):
    """Full public state sent to a client right after it connects."""

    type: Literal[SessionMessageType.INITIAL_DATA] = SessionMessageType.INITIAL_DATA
    leaderboard: list[LeaderboardEntry]


class ErrorMessage(BaseModel):
    type: Literal[SessionMessageType.ERROR] = SessionMessageType.ERROR
    code: SessionErrorCode | ErrorCode
    message: str


class PongMessage(BaseModel):
    type: Literal[SessionMessageType.PONG] = SessionMessageType.PONG


_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage, discriminated on `type`."""
    return _client_message_adapter.validate_python(data)

"""Typed domain exceptions for rejected session actions.

Every rejection raised by the logic layer is a subclass of BingoError so the
websocket router and the HTTP handlers can convert it into a reply for the
initiating actor only. Anything that is not a BingoError is treated as an
internal fault and contained per action.
"""

from bingo.logic.enums import ErrorCode


class BingoError(Exception):
    """Base exception for recoverable action rejections."""

    code: ErrorCode = ErrorCode.INVALID_ACTION

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(BingoError):
    """Malformed, duplicate or missing input (empty term, bad index, unknown term)."""

    code = ErrorCode.VALIDATION_ERROR


class AuthorizationError(BingoError):
    """Operator action attempted without a valid operator credential."""

    code = ErrorCode.UNAUTHORIZED


class StateConflictError(BingoError):
    """Action is well-formed but invalid in the current session state."""

    code = ErrorCode.STATE_CONFLICT

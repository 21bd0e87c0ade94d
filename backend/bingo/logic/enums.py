"""
String enum definitions for bingo session concepts.
"""

from enum import Enum


class MarkState(str, Enum):
    """Tag carried by every marked cell."""

    CONFIRMED = "confirmed"
    PROVISIONAL = "provisional"


class MarkAction(str, Enum):
    """Target state requested by a player for one term on their card."""

    MARK = "mark"
    UNMARK = "unmark"


class ErrorCode(str, Enum):
    """Error codes sent back to the actor whose action was rejected."""

    VALIDATION_ERROR = "validation_error"
    UNAUTHORIZED = "unauthorized"
    STATE_CONFLICT = "state_conflict"
    INVALID_ACTION = "invalid_action"
    EMPTY_TERM = "empty_term"
    DUPLICATE_TERM = "duplicate_term"
    INVALID_INDEX = "invalid_index"
    UNKNOWN_TERM = "unknown_term"
    ALREADY_ANNOUNCED = "already_announced"
    NOT_ANNOUNCED = "not_announced"
    NOT_ENOUGH_TERMS = "not_enough_terms"
    INVALID_CARD = "invalid_card"
    CARD_ALREADY_SET = "card_already_set"
    INVALID_NAME = "invalid_name"
    ALREADY_REGISTERED = "already_registered"
    ALREADY_WON = "already_won"
    NOT_A_VALID_WIN = "not_a_valid_win"

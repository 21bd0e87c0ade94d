"""Domain event models and service event transport container.

Each session mutation returns a list of ServiceEvent. The domain event inside
carries only the state that changed, except the leaderboard, which is always a
full recomputation. ServiceEvent adds a typed routing target.

All layers import exclusively from this module for event types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

from bingo.logic.enums import MarkState
from bingo.logic.leaderboard import LeaderboardEntry

# ---------------------------------------------------------------------------
# Typed routing targets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BroadcastTarget:
    """Event should be sent to every open connection."""


@dataclass(frozen=True)
class PlayerTarget:
    """Event should be sent to one player's connection only."""

    player_id: str


EventTarget = BroadcastTarget | PlayerTarget


# ---------------------------------------------------------------------------
# Event type enum
# ---------------------------------------------------------------------------


class EventType(StrEnum):
    """Types of session events."""

    TERMS_CHANGED = "terms_changed"
    TERM_ANNOUNCED = "term_announced"
    TERM_UNANNOUNCED = "term_unannounced"
    SESSION_RESET = "session_reset"
    LEADERBOARD_UPDATED = "leaderboard_updated"
    PLAYER_COUNT = "player_count"
    REGISTERED = "registered"
    CARD_ASSIGNED = "card_assigned"
    MARK_UPDATED = "mark_updated"
    WIN_CONFIRMED = "win_confirmed"


# ---------------------------------------------------------------------------
# Domain event models
# ---------------------------------------------------------------------------


class SessionEvent(BaseModel):
    """Base class for all domain session events."""

    model_config = ConfigDict(frozen=True)

    type: EventType


class TermsChangedEvent(SessionEvent):
    type: Literal[EventType.TERMS_CHANGED] = EventType.TERMS_CHANGED
    terms: list[str]


class TermAnnouncedEvent(SessionEvent):
    type: Literal[EventType.TERM_ANNOUNCED] = EventType.TERM_ANNOUNCED
    term: str
    announced_terms: list[str]


class TermUnannouncedEvent(SessionEvent):
    type: Literal[EventType.TERM_UNANNOUNCED] = EventType.TERM_UNANNOUNCED
    term: str
    announced_terms: list[str]


class SessionResetEvent(SessionEvent):
    type: Literal[EventType.SESSION_RESET] = EventType.SESSION_RESET


class LeaderboardUpdatedEvent(SessionEvent):
    type: Literal[EventType.LEADERBOARD_UPDATED] = EventType.LEADERBOARD_UPDATED
    leaderboard: list[LeaderboardEntry]


class PlayerCountEvent(SessionEvent):
    type: Literal[EventType.PLAYER_COUNT] = EventType.PLAYER_COUNT
    count: int


class RegisteredEvent(SessionEvent):
    """Sent to a player once their registration is accepted."""

    type: Literal[EventType.REGISTERED] = EventType.REGISTERED
    player_id: str
    name: str


class CardAssignedEvent(SessionEvent):
    type: Literal[EventType.CARD_ASSIGNED] = EventType.CARD_ASSIGNED
    card: list[str]


class MarkUpdatedEvent(SessionEvent):
    """Sent to a player whenever one of their cells changes.

    state is None when the cell is no longer marked. The session layer uses
    this event to start or cancel the provisional revert timer for the cell.
    """

    type: Literal[EventType.MARK_UPDATED] = EventType.MARK_UPDATED
    cell: int
    term: str
    state: MarkState | None
    generation: int
    valid_clicks: int
    total_clicks: int

    @property
    def marked(self) -> bool:
        return self.state is not None


class WinConfirmedEvent(SessionEvent):
    """Sent only to the winning player."""

    type: Literal[EventType.WIN_CONFIRMED] = EventType.WIN_CONFIRMED
    player_name: str
    position: int


class ServiceEvent(BaseModel):
    """Event transport container for the session layer.

    Uses typed internal targets (BroadcastTarget / PlayerTarget) for routing.
    """

    model_config = {"arbitrary_types_allowed": True}

    event: EventType
    data: SessionEvent
    target: EventTarget = BroadcastTarget()

    @model_validator(mode="after")
    def _ensure_event_matches_data(self) -> ServiceEvent:
        if self.event.value != self.data.type.value:
            raise ValueError(
                f"ServiceEvent.event '{self.event.value}' does not match data.type '{self.data.type.value}'",
            )
        return self


def broadcast(data: SessionEvent) -> ServiceEvent:
    return ServiceEvent(event=data.type, data=data, target=BroadcastTarget())


def to_player(player_id: str, data: SessionEvent) -> ServiceEvent:
    return ServiceEvent(event=data.type, data=data, target=PlayerTarget(player_id=player_id))

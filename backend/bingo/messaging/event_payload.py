"""Centralized event payload shaping for the wire format.

The session manager uses this for both broadcast and per-player delivery, so
serialization logic is defined once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from bingo.logic.events import MarkUpdatedEvent

if TYPE_CHECKING:
    from bingo.logic.events import ServiceEvent


def service_event_payload(event: ServiceEvent) -> dict[str, Any]:
    """Return the wire-format dict for a ServiceEvent payload.

    Shape: {"type": <event type>, **data_fields}. MarkUpdatedEvent also carries
    a derived "marked" flag so clients need not interpret a null state.
    """
    payload = event.data.model_dump(mode="json")
    if isinstance(event.data, MarkUpdatedEvent):
        payload["marked"] = event.data.marked
    return payload

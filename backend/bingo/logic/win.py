"""Win evaluation for a player's card against the announced terms."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bingo.logic.state import PlayerState


def announced_on_card(player: PlayerState, announced: Iterable[str]) -> set[str]:
    """Return the announced terms that appear on the player's card."""
    announced_set = set(announced)
    return {term for term in player.card if term in announced_set}


def evaluate_win(player: PlayerState, announced: Iterable[str]) -> bool:
    """
    Check whether the player's marks are exactly the announced terms on their card.

    Both directions must hold: every announced term on the card is marked, and
    nothing else is. Marks of either tag count, so a provisional mark on an
    unannounced term blocks the win. A card with no announced terms never wins.
    Read-only.
    """
    if not player.card:
        return False
    required = announced_on_card(player, announced)
    if not required:
        return False
    return player.marked_terms == required

"""Card generation and validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bingo.logic.enums import ErrorCode
from bingo.logic.exceptions import ValidationError

if TYPE_CHECKING:
    import random


def draw_card(pool: list[str], size: int, rng: random.Random) -> list[str]:
    """Draw `size` distinct terms from the pool in random order."""
    if len(pool) < size:
        raise ValidationError(
            f"Need at least {size} terms to generate a card, only {len(pool)} available",
            code=ErrorCode.NOT_ENOUGH_TERMS,
        )
    return rng.sample(pool, size)


def validate_card(card: list[str], pool: list[str], size: int) -> None:
    """Check a client-submitted card: exact size, distinct terms, all from the pool."""
    if len(card) != size:
        raise ValidationError(f"Card must hold exactly {size} terms, got {len(card)}", code=ErrorCode.INVALID_CARD)
    if len(set(card)) != len(card):
        raise ValidationError("Card terms must be distinct", code=ErrorCode.INVALID_CARD)
    pool_set = set(pool)
    unknown = [term for term in card if term not in pool_set]
    if unknown:
        raise ValidationError(f"Card holds unknown terms: {', '.join(unknown)}", code=ErrorCode.INVALID_CARD)

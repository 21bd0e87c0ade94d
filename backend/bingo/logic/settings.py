"""Centralized game settings for a bingo session - all configurable rules."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# 4x4 grid, no free space
CARD_SIZE = 16


class GameSettings(BaseModel):
    """
    Rules for card generation and the anti-spam marking heuristic.

    All fields have default values matching the live game.
    """

    model_config = ConfigDict(frozen=True)

    card_size: int = Field(default=CARD_SIZE, ge=1)

    # --- Spam detection ---
    # A mark attempt is spamming when the trailing window holds at least
    # spam_threshold attempts, the current one included.
    spam_threshold: int = Field(default=4, ge=1)
    spam_window_seconds: float = Field(default=4.0, gt=0)

    # --- Provisional marks ---
    provisional_fade_seconds: float = Field(default=10.0, gt=0)

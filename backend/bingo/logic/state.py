"""Mutable per-player state owned by the game session."""

from __future__ import annotations

from dataclasses import dataclass, field

from bingo.logic.enums import MarkState
from bingo.logic.spam import SpamWindow


@dataclass
class Mark:
    """One marked cell on a player's card.

    `scored` is True while the mark contributes to valid_clicks. `generation`
    increases every time the cell is (re)marked so a stale revert can tell it
    no longer owns the cell.
    """

    cell: int
    term: str
    state: MarkState
    scored: bool
    generation: int


@dataclass
class PlayerState:
    """Represent a registered player in the game session.

    Lifecycle:
    - Created on registration, keyed by connection id
    - card is set once (generated or submitted) and cleared only by a reset
    - On disconnect only `connected` flips; the player stays on the leaderboard
    """

    player_id: str
    name: str
    spam_window: SpamWindow
    card: list[str] = field(default_factory=list)
    marks: dict[int, Mark] = field(default_factory=dict)
    valid_clicks: int = 0
    total_clicks: int = 0
    has_bingo: bool = False
    bingo_position: int | None = None
    bingo_time: str | None = None
    connected: bool = True
    mark_generation: int = 0

    @property
    def marked_terms(self) -> set[str]:
        return {mark.term for mark in self.marks.values()}

    def cell_of(self, term: str) -> int | None:
        """Return the card index holding the term, or None if it is not on the card."""
        try:
            return self.card.index(term)
        except ValueError:
            return None

    def mark_for_term(self, term: str) -> Mark | None:
        cell = self.cell_of(term)
        if cell is None:
            return None
        return self.marks.get(cell)

    def next_generation(self) -> int:
        self.mark_generation += 1
        return self.mark_generation

    def clear_progress(self) -> None:
        """Drop card, marks, scores and win state. Identity and name survive."""
        self.card = []
        self.marks.clear()
        self.valid_clicks = 0
        self.total_clicks = 0
        self.has_bingo = False
        self.bingo_position = None
        self.bingo_time = None
        self.spam_window.clear()


@dataclass(frozen=True)
class WinnerRecord:
    player_id: str
    name: str
    position: int
    time: str

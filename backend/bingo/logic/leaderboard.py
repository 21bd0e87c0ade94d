"""Leaderboard ranking over every registered player, connected or not."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bingo.logic.state import PlayerState


class LeaderboardEntry(BaseModel):
    """One ranked row of the leaderboard view."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    rank: int
    valid_clicks: int
    total_clicks: int
    has_bingo: bool
    bingo_position: int | None = None
    bingo_time: str | None = None
    disconnected: bool
    marked_terms: list[str]


def _entry(player: PlayerState, rank: int) -> LeaderboardEntry:
    return LeaderboardEntry(
        id=player.player_id,
        name=player.name,
        rank=rank,
        valid_clicks=player.valid_clicks,
        total_clicks=player.total_clicks,
        has_bingo=player.has_bingo,
        bingo_position=player.bingo_position,
        bingo_time=player.bingo_time,
        disconnected=not player.connected,
        marked_terms=[player.marks[cell].term for cell in sorted(player.marks)],
    )


def rank_players(players: Iterable[PlayerState]) -> list[LeaderboardEntry]:
    """
    Derive the ranked leaderboard from scratch.

    Winners come first in frozen win order and keep their win position as rank.
    Everyone else follows by valid_clicks descending (ties keep registration
    order) with dense ranks starting right after the last winner.
    """
    ordered = list(players)
    winners = sorted((p for p in ordered if p.has_bingo), key=lambda p: p.bingo_position or 0)
    others = sorted((p for p in ordered if not p.has_bingo), key=lambda p: -p.valid_clicks)

    entries = [_entry(p, p.bingo_position or 0) for p in winners]
    winner_count = len(winners)
    entries.extend(_entry(p, winner_count + index) for index, p in enumerate(others, start=1))
    return entries

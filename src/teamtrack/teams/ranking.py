"""Leaderboard ranking by score.

Teams are ranked by score DESC. The sort is stable, so teams with equal
scores keep the order the store returned them in.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, TypeVar


class Scored(Protocol):
    score: int


T = TypeVar("T", bound=Scored)


def sort_by_score(teams: Iterable[T]) -> list[T]:
    """Teams sorted highest score first."""
    return sorted(teams, key=lambda t: t.score, reverse=True)


def rank_teams(teams: Iterable[T]) -> list[tuple[int, T]]:
    """(rank, team) pairs, rank 1-indexed."""
    return [(idx + 1, team) for idx, team in enumerate(sort_by_score(teams))]


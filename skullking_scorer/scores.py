# skullking_scorer/scores.py
from __future__ import annotations

from dataclasses import dataclass
from itertools import accumulate
from typing import List, Optional

from .exceptions import IntegrityError, ValidationError
from .rules import is_whole_number
from .state import Player


@dataclass(frozen=True)
class ScoreboardEntry:
    rank: int
    player_id: int
    name: str
    total_score: int
    round_scores: List[int]
    running_totals: List[int]
    is_leader: bool


def update_player_score(player: Player, round_score: int) -> None:
    """Append a round score and recompute the total from the full history."""
    if not is_whole_number(round_score):
        raise ValidationError(f"Round score must be an integer, got {round_score!r}")
    player.round_scores.append(round_score)
    player.total_score = sum(player.round_scores)


def check_integrity(player: Player) -> None:
    expected = sum(player.round_scores)
    if expected != player.total_score:
        raise IntegrityError(
            f"Player {player.name!r}: total {player.total_score} != "
            f"sum of round scores {expected}"
        )


def get_leader(players: List[Player]) -> Optional[Player]:
    """
    Return the player with the highest total score.

    Ties go to whichever tied player comes first in roster order, so the
    result is stable across calls.
    """
    leader: Optional[Player] = None
    for player in players:
        if leader is None or player.total_score > leader.total_score:
            leader = player
    return leader


def running_totals(player: Player) -> List[int]:
    return list(accumulate(player.round_scores))


def build_scoreboard(players: List[Player]) -> List[ScoreboardEntry]:
    """Players sorted by total score (descending), roster order breaking ties."""
    leader = get_leader(players)
    # sorted() is stable, so equal totals keep roster order.
    ordered = sorted(players, key=lambda p: p.total_score, reverse=True)
    return [
        ScoreboardEntry(
            rank=rank,
            player_id=p.id,
            name=p.name,
            total_score=p.total_score,
            round_scores=list(p.round_scores),
            running_totals=running_totals(p),
            is_leader=leader is not None and p.id == leader.id,
        )
        for rank, p in enumerate(ordered, start=1)
    ]

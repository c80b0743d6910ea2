# skullking_scorer/game_log.py
from __future__ import annotations

import csv
import json
from typing import Any, Dict, List, Optional

from .engine import GameEngine
from .exceptions import ValidationError

FIELDNAMES = [
    "game_id",
    "round_number",
    "required_hands",
    "player_id",
    "player_name",
    "bid",
    "tricks_taken",
    "bonus_points",
    "base_score",
    "round_score",
    "total_score",
]


def build_round_score_rows(
    engine: GameEngine,
    game_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Build a list of rows summarizing per-round scores for CSV export.

    Each row corresponds to (round, player) and has keys in FIELDNAMES. Only
    scored results are included, so a game in progress can still be logged;
    `total_score` is the player's running total after that round.
    """
    players = engine.players
    running_scores: Dict[int, int] = {p.id: 0 for p in players}
    rows: List[Dict[str, Any]] = []

    for round_state in engine.game_state.rounds:
        for p in players:
            score = round_state.scores.get(p.id)
            if score is None:
                continue
            running_scores[p.id] += score.total

            rows.append(
                {
                    "game_id": game_id if game_id is not None else engine.game_label,
                    "round_number": round_state.number,
                    "required_hands": round_state.required_hands,
                    "player_id": p.id,
                    "player_name": p.name,
                    "bid": round_state.bids[p.id],
                    "tricks_taken": round_state.tricks_taken[p.id],
                    "bonus_points": score.bonus,
                    "base_score": score.base,
                    "round_score": score.total,
                    "total_score": running_scores[p.id],
                }
            )

    return rows


def write_round_scores_csv(
    engine: GameEngine,
    path,
    game_id: Optional[str] = None,
) -> int:
    """
    Write per-round scores to a CSV file and return the number of data rows.

    `path` can be a string or any path-like object accepted by `open`.
    """
    rows = build_round_score_rows(engine, game_id=game_id)

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()
        for row in rows:
            writer.writerow({field: row.get(field) for field in FIELDNAMES})
    return len(rows)


def write_game_json(engine: GameEngine, path) -> None:
    """Save the game in its persisted-state shape."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(engine.to_dict(), f, indent=2)
        f.write("\n")


def read_game_json(path, game_label: Optional[str] = None) -> GameEngine:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"{path} is not valid JSON: {exc}") from exc
    return GameEngine.from_dict(data, game_label=game_label)

# skullking_scorer/charts.py
from __future__ import annotations

from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .exceptions import ValidationError
from .rules import MAX_ROUNDS

# Columns written by game_log.write_round_scores_csv that the charts rely on.
REQUIRED_COLUMNS = ["game_id", "round_number", "player_name", "bid",
                    "tricks_taken", "total_score"]


def load_round_scores(csv_path) -> pd.DataFrame:
    try:
        df = pd.read_csv(csv_path)
    except pd.errors.EmptyDataError as exc:
        raise ValidationError(f"{csv_path} is empty") from exc
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValidationError(f"{csv_path} is missing columns: {', '.join(missing)}")
    return df


def _require_rows(df: pd.DataFrame) -> None:
    if df.empty:
        raise ValidationError("no scored rounds to plot")


def running_total_stats(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per player and round: mean running total across games with a 95% CI.

    With a single game the mean is just that game's running total and the
    interval is 0.
    """
    stats = (
        df.groupby(["player_name", "round_number"])["total_score"]
          .agg(["mean", "std", "count"])
          .reset_index()
    )
    # 95% confidence interval: mean ± 1.96 * (std / sqrt(n))
    stats["std"] = stats["std"].fillna(0.0)
    stats["se"] = stats["std"] / np.sqrt(stats["count"])
    stats["ci95"] = 1.96 * stats["se"]
    return stats


def plot_running_totals(df: pd.DataFrame, out_path: Optional[str] = None):
    """Line chart of each player's running total by round."""
    _require_rows(df)
    stats = running_total_stats(df)
    players = sorted(stats["player_name"].unique())

    fig, ax = plt.subplots(figsize=(10, 6))
    for name in players:
        sub = stats[stats["player_name"] == name].sort_values("round_number")
        ax.errorbar(
            sub["round_number"],
            sub["mean"],
            yerr=sub["ci95"],
            marker="o",
            capsize=3,
            label=name,
        )

    ax.set_xlabel("Round")
    ax.set_ylabel("Total score")
    ax.set_xticks(range(1, MAX_ROUNDS + 1))
    ax.set_title("Running total by round")
    ax.grid(True)
    ax.legend()
    fig.tight_layout()

    if out_path is not None:
        fig.savefig(out_path, dpi=150)
        plt.close(fig)
    return fig


def plot_bid_miss_histogram(df: pd.DataFrame, out_path: Optional[str] = None):
    """Histogram of tricks_taken - bid per player (negative = under, positive = over)."""
    _require_rows(df)
    df = df.copy()
    df["miss"] = df["tricks_taken"] - df["bid"]
    players = sorted(df["player_name"].unique())

    # common bin edges across all players so histos are comparable
    bins = np.arange(np.floor(df["miss"].min()) - 0.5,
                     np.ceil(df["miss"].max()) + 1.5, 1.0)

    fig, axes = plt.subplots(1, len(players), figsize=(4 * len(players), 4),
                             sharey=True)
    # axes might be a single Axes if only one player
    axes = np.atleast_1d(axes)

    for ax, name in zip(axes, players):
        ax.hist(df[df["player_name"] == name]["miss"], bins=bins, rwidth=0.8)
        ax.axvline(0, linestyle="--")  # exact-bid line
        ax.set_title(name)
        ax.set_xlabel("tricks_taken - bid")
        ax.grid(True, axis="y", linestyle=":", alpha=0.5)

    axes[0].set_ylabel("Rounds")
    fig.suptitle("Bid miss by player")
    fig.tight_layout()

    if out_path is not None:
        fig.savefig(out_path, dpi=150)
        plt.close(fig)
    return fig

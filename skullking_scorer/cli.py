# skullking_scorer/cli.py
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .charts import load_round_scores, plot_bid_miss_histogram, plot_running_totals
from .config import Settings
from .engine import GameEngine
from .exceptions import ScoreKeeperError, WrongPhaseError
from .game_log import read_game_json, write_game_json, write_round_scores_csv
from .paths import resolve_results_path
from .rules import MAX_ROUNDS
from .scores import ScoreboardEntry

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Text output                                                                 #
# --------------------------------------------------------------------------- #


def format_status(engine: GameEngine) -> str:
    status = engine.get_game_status()
    details = engine.get_round_details()
    lines = [
        f"Game phase: {engine.phase.value}",
        f"Round {status.current_round} of {MAX_ROUNDS} "
        f"({details['status']}, {details['hands_completed']}/"
        f"{details['hands_required']} hands)",
    ]
    current = engine.game_state.current_round
    if current is not None and current.bids:
        bids = ", ".join(
            f"{engine.get_player(pid).name}={bid}" for pid, bid in current.bids.items()
        )
        lines.append(f"Bids: {bids}")
    if status.is_complete:
        leader = engine.get_leader()
        if leader is not None:
            lines.append(f"Winner: {leader.name} ({leader.total_score})")
    return "\n".join(lines)


def format_scoreboard(entries: List[ScoreboardEntry]) -> str:
    if not entries:
        return "No players."
    width = max(len(e.name) for e in entries)
    lines = []
    for e in entries:
        marker = "*" if e.is_leader else " "
        rounds = " ".join(f"{s:+d}" for s in e.round_scores)
        lines.append(
            f"{marker}{e.rank}. {e.name:<{width}}  {e.total_score:>5}  {rounds}".rstrip()
        )
    return "\n".join(lines)


# --------------------------------------------------------------------------- #
# Commands                                                                    #
# --------------------------------------------------------------------------- #


def _load(state_path: Path) -> GameEngine:
    if not state_path.exists():
        raise SystemExit(f"No saved game at {state_path}; run 'new' first.")
    return read_game_json(state_path)


def _cmd_new(args: argparse.Namespace, state_path: Path) -> None:
    engine = GameEngine(game_label=args.label)
    for name in args.players:
        engine.add_player(name)
    engine.start_game()
    write_game_json(engine, state_path)
    logger.info("Saved new game to %s", state_path)
    print(format_status(engine))


def _cmd_bid(args: argparse.Namespace, state_path: Path) -> None:
    engine = _load(state_path)
    round_number = args.round
    if round_number is None:
        round_number = engine.game_state.current_round_number
    player = engine.find_player(args.player)
    engine.submit_bid(round_number, player.id, args.bid)
    write_game_json(engine, state_path)
    print(format_status(engine))


def _cmd_hand(args: argparse.Namespace, state_path: Path) -> None:
    engine = _load(state_path)
    engine.complete_hand()
    write_game_json(engine, state_path)
    print(format_status(engine))


def _cmd_tricks(args: argparse.Namespace, state_path: Path) -> None:
    engine = _load(state_path)
    round_number = args.round
    if round_number is None:
        latest = engine.latest_completed_round()
        if latest is None:
            raise WrongPhaseError("no completed round to score yet")
        round_number = latest.number
    player = engine.find_player(args.player)
    calculation = engine.submit_tricks_taken(
        round_number, player.id, args.tricks, args.bonus
    )
    write_game_json(engine, state_path)
    print(
        f"{player.name}: round {round_number} "
        f"{'made' if calculation.bid_met else 'missed'} bid, "
        f"{calculation.total_round_score:+d} (total {player.total_score})"
    )
    warning = engine.tricks_total_warning(round_number)
    if warning:
        print(f"Warning: {warning}")


def _cmd_status(args: argparse.Namespace, state_path: Path) -> None:
    print(format_status(_load(state_path)))


def _cmd_scoreboard(args: argparse.Namespace, state_path: Path) -> None:
    print(format_scoreboard(_load(state_path).get_scoreboard()))


def _cmd_export_csv(args: argparse.Namespace, state_path: Path) -> None:
    engine = _load(state_path)
    csv_path = resolve_results_path(args.csv)
    count = write_round_scores_csv(engine, csv_path, game_id=args.game_id)
    logger.info("Wrote %d rows to %s", count, csv_path)


def _cmd_chart(args: argparse.Namespace, state_path: Path) -> None:
    df = load_round_scores(resolve_results_path(args.csv))
    out_path = resolve_results_path(args.out)
    if args.kind == "miss":
        plot_bid_miss_histogram(df, out_path=str(out_path))
    else:
        plot_running_totals(df, out_path=str(out_path))
    logger.info("Saved %s chart to %s", args.kind, out_path)


COMMANDS: Dict[str, Callable[[argparse.Namespace, Path], None]] = {
    "new": _cmd_new,
    "bid": _cmd_bid,
    "hand": _cmd_hand,
    "tricks": _cmd_tricks,
    "status": _cmd_status,
    "scoreboard": _cmd_scoreboard,
    "export-csv": _cmd_export_csv,
    "chart": _cmd_chart,
}


def parse_args(
    argv: List[str] | None = None,
    settings: Optional[Settings] = None,
) -> argparse.Namespace:
    settings = settings or Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Keep score for a 10-round Skull King game."
    )
    parser.add_argument(
        "--state",
        type=str,
        default=settings.state_file,
        help="JSON file holding the current game (default: %(default)s).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        help="Logging level (DEBUG, INFO, WARNING, ...). Default: %(default)s.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_new = sub.add_parser("new", help="Start a new game, replacing any saved one.")
    p_new.add_argument("players", nargs="+", help="Player names in seating order.")
    p_new.add_argument("--label", type=str, default=None, help="Optional game label.")

    p_bid = sub.add_parser("bid", help="Record a player's bid.")
    p_bid.add_argument("player", help="Player name.")
    p_bid.add_argument("bid", type=int)
    p_bid.add_argument("--round", type=int, default=None,
                       help="Round number (default: current round).")

    sub.add_parser("hand", help="Mark one hand of the current round as played.")

    p_tricks = sub.add_parser("tricks", help="Score a player's tricks for a round.")
    p_tricks.add_argument("player", help="Player name.")
    p_tricks.add_argument("tricks", type=int)
    p_tricks.add_argument("--bonus", type=int, default=0,
                          help="Bonus points, only counted if the bid was met.")
    p_tricks.add_argument("--round", type=int, default=None,
                          help="Round number (default: latest completed round).")

    sub.add_parser("status", help="Show the current round and phase.")
    sub.add_parser("scoreboard", help="Show players ranked by total score.")

    p_csv = sub.add_parser("export-csv", help="Write per-round scores to CSV.")
    p_csv.add_argument("csv", nargs="?", default="skullking_scores.csv")
    p_csv.add_argument("--game-id", type=str, default=None)

    p_chart = sub.add_parser("chart", help="Plot a CSV written by export-csv.")
    p_chart.add_argument("csv")
    p_chart.add_argument("--out", type=str, default="skullking_scores.png")
    p_chart.add_argument("--kind", choices=["running", "miss"], default="running")

    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> None:
    settings = Settings.from_env()
    args = parse_args(argv, settings)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    state_path = resolve_results_path(args.state, settings)
    try:
        COMMANDS[args.command](args, state_path)
    except ScoreKeeperError as exc:
        logger.error("%s failed: %s", args.command, exc)
        raise SystemExit(f"error: {exc}") from exc


if __name__ == "__main__":
    main()

'''
python3 -m skullking_scorer.cli new Anne Bonny Calico
python3 -m skullking_scorer.cli bid Anne 1
python3 -m skullking_scorer.cli bid Bonny 0
python3 -m skullking_scorer.cli bid Calico 0
python3 -m skullking_scorer.cli hand
python3 -m skullking_scorer.cli tricks Anne 1 --bonus 10
python3 -m skullking_scorer.cli scoreboard
python3 -m skullking_scorer.cli export-csv
python3 -m skullking_scorer.cli chart skullking_scores.csv --out totals.png
'''

# skullking_scorer/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from a .env file if present.
load_dotenv()

DEFAULT_STATE_FILE = "skullking_game.json"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_RESULTS_DIR = Path(__file__).resolve().parent / "results"


@dataclass(frozen=True)
class Settings:
    """Runtime settings taken from the environment.

    state_file: JSON file the CLI keeps the current game in.
    log_level: default logging level name for the CLI.
    results_dir: where relative output paths (state, CSV, charts) land.
    """
    state_file: str = DEFAULT_STATE_FILE
    log_level: str = DEFAULT_LOG_LEVEL
    results_dir: Path = DEFAULT_RESULTS_DIR

    @classmethod
    def from_env(cls) -> "Settings":
        results_dir = os.getenv("SKULLKING_RESULTS_DIR")
        return cls(
            state_file=os.getenv("SKULLKING_STATE_FILE", DEFAULT_STATE_FILE),
            log_level=os.getenv("SKULLKING_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
            results_dir=Path(results_dir) if results_dir else DEFAULT_RESULTS_DIR,
        )

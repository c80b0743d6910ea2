# skullking_scorer/paths.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from .config import Settings


def ensure_results_dir(settings: Optional[Settings] = None) -> Path:
    """Create the results directory if it does not exist and return it."""
    settings = settings or Settings.from_env()
    settings.results_dir.mkdir(parents=True, exist_ok=True)
    return settings.results_dir


def resolve_results_path(
    path_like: str | Path,
    settings: Optional[Settings] = None,
) -> Path:
    """
    Resolve a user-specified path into the results directory.

    Absolute paths are returned unchanged. Relative paths are anchored inside
    the results directory so saved games, CSV logs and charts stay together.
    """
    path = Path(path_like)
    if path.is_absolute():
        return path
    return ensure_results_dir(settings) / path

"""Error taxonomy for the score keeper."""

from __future__ import annotations

__all__ = [
    "ScoreKeeperError",
    "ValidationError",
    "EmptyNameError",
    "DuplicateNameError",
    "TooManyPlayersError",
    "NotEnoughPlayersError",
    "BidOutOfRangeError",
    "UnknownPlayerError",
    "UnknownRoundError",
    "StateError",
    "WrongPhaseError",
    "IntegrityError",
]


class ScoreKeeperError(Exception):
    """Base exception for the project."""

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"{self.__class__.__name__}({self.args})"


class ValidationError(ScoreKeeperError):
    """Raised when an input has the wrong shape or is out of range."""


class EmptyNameError(ValidationError):
    """Raised when a player name is blank."""


class DuplicateNameError(ValidationError):
    """Raised when a player name is already taken (case-insensitive)."""


class TooManyPlayersError(ValidationError):
    """Raised when the roster is already full."""


class NotEnoughPlayersError(ValidationError):
    """Raised when a game is started below the minimum roster size."""


class BidOutOfRangeError(ValidationError):
    """Raised when a bid is not a whole number in 0..hands."""


class UnknownPlayerError(ValidationError):
    """Raised when a player id is not on the roster."""


class UnknownRoundError(ValidationError):
    """Raised when a round number has not been created."""


class StateError(ScoreKeeperError):
    """Raised when an operation is attempted in the wrong phase."""


class WrongPhaseError(StateError):
    """Raised by round and game transitions that are not allowed right now."""


class IntegrityError(ScoreKeeperError):
    """Raised when a player's total no longer matches their round scores."""

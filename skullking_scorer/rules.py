# skullking_scorer/rules.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .exceptions import ValidationError

MIN_PLAYERS = 2
MAX_PLAYERS = 8
MAX_ROUNDS = 10

CORRECT_BID_MULTIPLIER = 20
MISSED_BID_PENALTY = 10
ZERO_BID_MULTIPLIER = 10


def is_whole_number(value: Any) -> bool:
    """True for ints, excluding bools."""
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Bid:
    """A player's committed trick count for one round."""

    player_id: int
    bid: int

    def __post_init__(self) -> None:
        if not is_whole_number(self.player_id):
            raise ValidationError("player_id must be an integer")
        if not is_whole_number(self.bid):
            raise ValidationError("Bid must be a whole number")
        if self.bid < 0:
            raise ValidationError("Bid cannot be negative")


@dataclass(frozen=True)
class RoundScore:
    """Finalized result of one player in one round."""

    player_id: int
    base: int
    bonus: int
    total: int

    def __post_init__(self) -> None:
        for name in ("player_id", "base", "bonus", "total"):
            if not is_whole_number(getattr(self, name)):
                raise ValidationError(f"{name} must be an integer")
        if self.total != self.base + self.bonus:
            raise ValidationError(
                f"total {self.total} does not equal base {self.base} "
                f"plus bonus {self.bonus}"
            )


# --------------------------------------------------------------------------- #
# Bid validation                                                              #
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class BidValidation:
    valid: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class RoundBidsValidation:
    valid: bool
    errors: List[str] = field(default_factory=list)
    total_bids: int = 0


def validate_bid(bid: Any, hands_in_round: int) -> BidValidation:
    """
    Check a single bid against the number of hands in the round.

    A bid is valid when it is a whole number between 0 and `hands_in_round`
    inclusive. Nothing is raised; the result carries the reason instead.
    """
    if not is_whole_number(bid):
        return BidValidation(valid=False, error="Bid must be a whole number")
    if bid < 0:
        return BidValidation(valid=False, error="Bid cannot be negative")
    if bid > hands_in_round:
        return BidValidation(
            valid=False, error=f"Bid cannot exceed {hands_in_round} hands"
        )
    return BidValidation(valid=True)


def validate_round_bids(bids: List[Bid], hands_in_round: int) -> RoundBidsValidation:
    """
    Validate every bid of a round.

    The sum of the bids is reported as `total_bids` but is not required to
    match `hands_in_round`.
    """
    errors: List[str] = []
    for bid in bids:
        result = validate_bid(bid.bid, hands_in_round)
        if not result.valid:
            errors.append(f"Player {bid.player_id}: {result.error}")

    return RoundBidsValidation(
        valid=not errors,
        errors=errors,
        total_bids=sum(bid.bid for bid in bids),
    )


# --------------------------------------------------------------------------- #
# Scoring                                                                     #
# --------------------------------------------------------------------------- #


@dataclass
class ScoreCalculation:
    base_score: int
    bid_met: bool
    total_round_score: int

    @property
    def bonus_eligible(self) -> bool:
        # Bonus points only count when the bid was met exactly.
        return self.bid_met

    @property
    def bonus_applied(self) -> int:
        return self.total_round_score - self.base_score

    def add_bonus_points(self, points: int) -> None:
        """Add bonus points to the round total; no-op if the bid was missed."""
        if not is_whole_number(points):
            raise ValidationError("Bonus points must be a whole number")
        if self.bonus_eligible:
            self.total_round_score += points

    def to_round_score(self, player_id: int) -> RoundScore:
        return RoundScore(
            player_id=player_id,
            base=self.base_score,
            bonus=self.bonus_applied,
            total=self.total_round_score,
        )


def calculate_score(bid: int, tricks_taken: int, round_number: int) -> ScoreCalculation:
    """
    Score a single player's round according to Skull King rules:

    - Bid 0 met: +10 * round_number, missed: -10 * round_number
    - Bid 1+ met: +20 * bid, missed: -10 * |bid - tricks_taken|
    """
    for name, value in (
        ("bid", bid),
        ("tricks_taken", tricks_taken),
        ("round_number", round_number),
    ):
        if not is_whole_number(value):
            raise ValidationError(f"{name} must be a whole number, got {value!r}")
    if bid < 0 or tricks_taken < 0:
        raise ValidationError("bid and tricks_taken must be non-negative")
    if round_number < 1:
        raise ValidationError("round_number must be at least 1")

    bid_met = bid == tricks_taken
    if bid == 0:
        magnitude = ZERO_BID_MULTIPLIER * round_number
        base_score = magnitude if bid_met else -magnitude
    elif bid_met:
        base_score = CORRECT_BID_MULTIPLIER * bid
    else:
        base_score = -MISSED_BID_PENALTY * abs(bid - tricks_taken)

    return ScoreCalculation(
        base_score=base_score,
        bid_met=bid_met,
        total_round_score=base_score,
    )


def tricks_total_warning(tricks_total: int, hands_in_round: int) -> Optional[str]:
    """
    Return a warning when the tricks entered for a round don't add up.

    This never blocks scoring: cards may legitimately go unplayed.
    """
    if tricks_total == hands_in_round:
        return None
    return (
        f"Total tricks ({tricks_total}) doesn't match expected total "
        f"({hands_in_round})"
    )

# skullking_scorer/state.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .exceptions import UnknownRoundError, ValidationError, WrongPhaseError
from .rules import MAX_ROUNDS, RoundScore, is_whole_number

logger = logging.getLogger(__name__)


class RoundStatus(enum.Enum):
    BIDDING = "bidding"
    PLAYING = "playing"
    COMPLETED = "completed"


@dataclass
class Player:
    id: int
    name: str
    total_score: int = 0
    # One entry per scored round, in round order.
    round_scores: List[int] = field(default_factory=list)


@dataclass
class RoundState:
    """
    One bidding -> playing -> completed cycle.

    Round n requires n hands. Status only ever moves forward and the round
    completes itself on the last `complete_hand()` call.
    """

    number: int
    players: List[int] = field(default_factory=list)
    status: RoundStatus = RoundStatus.BIDDING
    bids: Dict[int, int] = field(default_factory=dict)
    hands_completed: int = 0
    tricks_taken: Dict[int, int] = field(default_factory=dict)
    bonus_points: Dict[int, int] = field(default_factory=dict)
    scores: Dict[int, RoundScore] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not is_whole_number(self.number) or not 1 <= self.number <= MAX_ROUNDS:
            raise ValidationError(
                f"Round number must be between 1 and {MAX_ROUNDS}, got {self.number!r}"
            )

    @property
    def required_hands(self) -> int:
        return self.number

    def add_bid(self, player_id: int, bid: int) -> None:
        """Record a bid; a later bid from the same player replaces the earlier one."""
        if self.status is not RoundStatus.BIDDING:
            raise WrongPhaseError(f"cannot add bid from {self.status.value}")
        self.bids[player_id] = bid
        logger.debug("Round %d: player %d bids %d", self.number, player_id, bid)

    def all_bids_complete(self) -> bool:
        return len(self.bids) == len(self.players)

    def start_playing(self) -> None:
        if self.status is not RoundStatus.BIDDING:
            raise WrongPhaseError(f"cannot start playing from {self.status.value}")
        self.status = RoundStatus.PLAYING
        logger.info("Round %d: bidding closed, playing %d hand(s)",
                    self.number, self.required_hands)

    def complete_hand(self) -> None:
        if self.status is not RoundStatus.PLAYING:
            raise WrongPhaseError(f"cannot complete hand from {self.status.value}")
        self.hands_completed += 1
        logger.debug("Round %d: hand %d/%d complete",
                     self.number, self.hands_completed, self.required_hands)
        if self.hands_completed == self.required_hands:
            self.status = RoundStatus.COMPLETED
            logger.info("Round %d completed", self.number)

    def is_completed(self) -> bool:
        return (
            self.status is RoundStatus.COMPLETED
            and self.hands_completed == self.required_hands
        )

    def record_score(
        self,
        score: RoundScore,
        tricks_taken: int,
        bonus_points: int,
    ) -> None:
        """Store a player's finalized result for this round."""
        if not self.is_completed():
            raise WrongPhaseError(f"cannot record score from {self.status.value}")
        if score.player_id in self.scores:
            raise WrongPhaseError(
                f"player {score.player_id} already scored in round {self.number}"
            )
        self.tricks_taken[score.player_id] = tricks_taken
        self.bonus_points[score.player_id] = bonus_points
        self.scores[score.player_id] = score

    def all_scored(self) -> bool:
        return bool(self.players) and all(pid in self.scores for pid in self.players)

    def tricks_total(self) -> int:
        return sum(self.tricks_taken.values())


@dataclass(frozen=True)
class GameStatus:
    current_round: int
    is_complete: bool
    current_round_status: Optional[RoundStatus]
    total_rounds: int


@dataclass
class GameState:
    """
    The roster plus every round created so far.

    Rounds are created lazily: round 1 on construction, round k+1 only once
    round k has completed. `process_game_flow()` must be called after every
    mutation to apply the automatic transitions.
    """

    players: List[Player] = field(default_factory=list)
    rounds: List[RoundState] = field(default_factory=list)
    current_round_number: int = 1
    complete: bool = False

    def __post_init__(self) -> None:
        if not self.rounds and not self.complete:
            self.create_new_round()

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def current_round(self) -> Optional[RoundState]:
        return self.rounds[-1] if self.rounds else None

    @property
    def is_complete(self) -> bool:
        if self.complete or self.current_round_number > MAX_ROUNDS:
            return True
        current = self.current_round
        return (
            current is not None
            and current.number == MAX_ROUNDS
            and current.is_completed()
        )

    def get_round(self, number: int) -> RoundState:
        for round_state in self.rounds:
            if round_state.number == number:
                return round_state
        raise UnknownRoundError(f"Round {number!r} has not been created")

    def roster_ids(self) -> List[int]:
        return [p.id for p in self.players]

    def add_player(self, player: Player) -> None:
        self.players.append(player)
        current = self.current_round
        if current is not None:
            current.players = self.roster_ids()

    def remove_player(self, player_id: int) -> Player:
        for index, player in enumerate(self.players):
            if player.id == player_id:
                del self.players[index]
                break
        else:
            raise ValidationError(f"Unknown player id {player_id!r}")
        current = self.current_round
        if current is not None:
            current.players = self.roster_ids()
        return player

    def create_new_round(self) -> Optional[RoundState]:
        if self.current_round_number > MAX_ROUNDS:
            self.complete = True
            return None
        if any(r.number == self.current_round_number for r in self.rounds):
            raise WrongPhaseError(
                f"cannot create round {self.current_round_number} twice"
            )

        round_state = RoundState(
            number=self.current_round_number,
            players=self.roster_ids(),
        )
        self.rounds.append(round_state)
        logger.info("Started round %d/%d", round_state.number, MAX_ROUNDS)
        return round_state

    def advance_to_next_round(self) -> Optional[RoundState]:
        current = self.current_round
        if current is None or not current.is_completed():
            raise WrongPhaseError("cannot advance: current round is not completed")
        if not 1 <= self.current_round_number <= MAX_ROUNDS:
            raise WrongPhaseError(
                f"cannot advance from round {self.current_round_number}"
            )
        if self.current_round_number == MAX_ROUNDS:
            if self.complete:
                raise WrongPhaseError(f"cannot advance past round {MAX_ROUNDS}")
            self.complete = True
            logger.info("Game complete after %d rounds", MAX_ROUNDS)
            return None

        self.current_round_number += 1
        return self.create_new_round()

    def process_game_flow(self) -> None:
        """Apply the automatic bidding->playing and round->next-round transitions."""
        current = self.current_round
        if current is None or not current.players:
            return

        if current.status is RoundStatus.BIDDING and current.all_bids_complete():
            current.start_playing()

        if current.is_completed() and not self.complete:
            self.advance_to_next_round()

    def get_game_status(self) -> GameStatus:
        current = self.current_round
        return GameStatus(
            current_round=self.current_round_number,
            is_complete=self.is_complete,
            current_round_status=current.status if current else None,
            total_rounds=len(self.rounds),
        )

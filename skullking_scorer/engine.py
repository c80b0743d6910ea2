# skullking_scorer/engine.py
from __future__ import annotations

import enum
import logging
from typing import Any, Dict, List, Optional

from .exceptions import (
    BidOutOfRangeError,
    DuplicateNameError,
    EmptyNameError,
    IntegrityError,
    NotEnoughPlayersError,
    TooManyPlayersError,
    UnknownPlayerError,
    ValidationError,
    WrongPhaseError,
)
from .rules import (
    MAX_PLAYERS,
    MAX_ROUNDS,
    MIN_PLAYERS,
    Bid,
    ScoreCalculation,
    calculate_score,
    is_whole_number,
    tricks_total_warning,
    validate_bid,
)
from .scores import (
    ScoreboardEntry,
    build_scoreboard,
    check_integrity,
    get_leader,
    update_player_score,
)
from .state import GameState, GameStatus, Player, RoundState, RoundStatus

logger = logging.getLogger(__name__)


class GamePhase(enum.Enum):
    SETUP = "setup"
    PLAYING = "playing"
    FINISHED = "finished"


class GameEngine:
    """
    Keeps score for a single Skull King game.

    This is the only entry point callers (CLI, UI, storage) should use: every
    operation validates its input completely before touching any state and
    re-runs the round transitions afterwards. Failures are raised as the
    typed errors in `exceptions`; presenting them is up to the caller.
    """

    def __init__(self, game_label: Optional[str] = None) -> None:
        self.game_label = game_label
        self.game_state = GameState()
        self.started = False
        self._next_player_id = 0

    # -------------------------------------------------------------------------
    # Read-only helpers
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> GamePhase:
        if not self.started:
            return GamePhase.SETUP
        if self.game_state.is_complete:
            return GamePhase.FINISHED
        return GamePhase.PLAYING

    @property
    def players(self) -> List[Player]:
        return self.game_state.players

    def get_player(self, player_id: int) -> Player:
        for player in self.game_state.players:
            if player.id == player_id:
                return player
        raise UnknownPlayerError(f"Unknown player id {player_id!r}")

    def find_player(self, name: str) -> Player:
        """Look a player up by name, ignoring case and surrounding whitespace."""
        key = name.strip().casefold()
        for player in self.game_state.players:
            if player.name.casefold() == key:
                return player
        raise UnknownPlayerError(f"Unknown player {name!r}")

    def _require_started(self, action: str) -> None:
        if self.phase is GamePhase.SETUP:
            raise WrongPhaseError(f"cannot {action} before the game has started")

    # -------------------------------------------------------------------------
    # Player setup
    # -------------------------------------------------------------------------

    def add_player(self, name: str) -> Player:
        if self.phase is not GamePhase.SETUP:
            raise WrongPhaseError("cannot add players after the game has started")
        if not isinstance(name, str) or not name.strip():
            raise EmptyNameError("Player name is required")
        if self.game_state.num_players >= MAX_PLAYERS:
            raise TooManyPlayersError(f"Cannot add more than {MAX_PLAYERS} players")

        trimmed = name.strip()
        if any(p.name.casefold() == trimmed.casefold() for p in self.players):
            raise DuplicateNameError(f"Player name {trimmed!r} is already taken")

        player = Player(id=self._next_player_id, name=trimmed)
        self._next_player_id += 1
        self.game_state.add_player(player)
        logger.info("Added player %d: %s", player.id, player.name)
        return player

    def remove_player(self, player_id: int) -> Player:
        if self.phase is not GamePhase.SETUP:
            raise WrongPhaseError("cannot remove players after the game has started")
        self.get_player(player_id)
        player = self.game_state.remove_player(player_id)
        logger.info("Removed player %d: %s", player.id, player.name)
        return player

    def can_start_game(self) -> bool:
        return MIN_PLAYERS <= self.game_state.num_players <= MAX_PLAYERS

    def start_game(self) -> None:
        if self.phase is not GamePhase.SETUP:
            raise WrongPhaseError("game has already started")
        if not self.can_start_game():
            raise NotEnoughPlayersError(
                f"Need at least {MIN_PLAYERS} players to start "
                f"(currently have {self.game_state.num_players})"
            )
        self.started = True
        logger.info(
            "Started game%s with %d players",
            f" {self.game_label}" if self.game_label else "",
            self.game_state.num_players,
        )

    # -------------------------------------------------------------------------
    # Round operations
    # -------------------------------------------------------------------------

    def submit_bid(self, round_number: int, player_id: int, bid: int) -> Bid:
        self._require_started("submit a bid")
        round_state = self.game_state.get_round(round_number)
        self.get_player(player_id)
        if round_state.status is not RoundStatus.BIDDING:
            raise WrongPhaseError(f"cannot add bid from {round_state.status.value}")

        result = validate_bid(bid, round_state.required_hands)
        if not result.valid:
            raise BidOutOfRangeError(result.error)

        record = Bid(player_id=player_id, bid=bid)
        round_state.add_bid(record.player_id, record.bid)
        self.game_state.process_game_flow()
        return record

    def complete_hand(self) -> None:
        self._require_started("complete a hand")
        if self.phase is GamePhase.FINISHED:
            raise WrongPhaseError("cannot complete hand: game is finished")
        current = self.game_state.current_round
        if current is None:
            raise WrongPhaseError("cannot complete hand: no active round")

        current.complete_hand()
        self.game_state.process_game_flow()
        if self.game_state.is_complete:
            logger.info(
                "Finished game%s",
                f" {self.game_label}" if self.game_label else "",
            )

    def submit_tricks_taken(
        self,
        round_number: int,
        player_id: int,
        tricks_taken: int,
        bonus_points: int = 0,
    ) -> ScoreCalculation:
        """
        Score a player's completed round and add it to their history.

        Rounds must be scored in order for each player, once each. Bonus
        points only count when the bid was met exactly.
        """
        self._require_started("submit tricks")
        round_state = self.game_state.get_round(round_number)
        player = self.get_player(player_id)

        if not is_whole_number(tricks_taken) or not (
            0 <= tricks_taken <= round_state.required_hands
        ):
            raise ValidationError(
                f"Tricks taken must be a whole number between 0 and "
                f"{round_state.required_hands}, got {tricks_taken!r}"
            )
        if not is_whole_number(bonus_points) or bonus_points < 0:
            raise ValidationError(
                f"Bonus points must be a non-negative whole number, got {bonus_points!r}"
            )
        if not round_state.is_completed():
            raise WrongPhaseError(
                f"cannot score round {round_number} from {round_state.status.value}"
            )
        if player_id in round_state.scores:
            raise WrongPhaseError(
                f"{player.name} has already been scored for round {round_number}"
            )
        if len(player.round_scores) != round_number - 1:
            raise WrongPhaseError(
                f"{player.name} must be scored for round "
                f"{len(player.round_scores) + 1} first"
            )
        if player_id not in round_state.bids:
            raise WrongPhaseError(f"{player.name} has no bid in round {round_number}")

        calculation = calculate_score(
            round_state.bids[player_id], tricks_taken, round_number
        )
        calculation.add_bonus_points(bonus_points)
        score = calculation.to_round_score(player_id)

        round_state.record_score(score, tricks_taken, bonus_points)
        update_player_score(player, score.total)
        check_integrity(player)
        logger.info(
            "Round %d: %s bid %d, took %d, scored %+d (total %d)",
            round_number,
            player.name,
            round_state.bids[player_id],
            tricks_taken,
            score.total,
            player.total_score,
        )

        warning = self.tricks_total_warning(round_number)
        if warning:
            logger.warning("Round %d: %s", round_number, warning)
        return calculation

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def tricks_total_warning(self, round_number: int) -> Optional[str]:
        """Non-blocking check that a fully scored round's tricks add up."""
        round_state = self.game_state.get_round(round_number)
        if not round_state.all_scored():
            return None
        return tricks_total_warning(
            round_state.tricks_total(), round_state.required_hands
        )

    def get_game_status(self) -> GameStatus:
        return self.game_state.get_game_status()

    def get_scoreboard(self) -> List[ScoreboardEntry]:
        return build_scoreboard(self.players)

    def get_leader(self) -> Optional[Player]:
        return get_leader(self.players)

    def get_round_details(self) -> Dict[str, Any]:
        current = self.game_state.current_round
        return {
            "round_number": current.number,
            "status": current.status.value,
            "hands_required": current.required_hands,
            "hands_completed": current.hands_completed,
            "is_round_complete": current.is_completed(),
            "is_game_complete": self.game_state.is_complete,
        }

    def latest_completed_round(self) -> Optional[RoundState]:
        for round_state in reversed(self.game_state.rounds):
            if round_state.is_completed():
                return round_state
        return None

    # -------------------------------------------------------------------------
    # Persisted state
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Convert the game to its JSON-serializable persisted shape."""
        return {
            "players": [
                {
                    "id": p.id,
                    "name": p.name,
                    "totalScore": p.total_score,
                    "roundScores": list(p.round_scores),
                }
                for p in self.players
            ],
            "rounds": [
                {
                    "number": r.number,
                    "status": r.status.value,
                    "bids": {str(pid): bid for pid, bid in r.bids.items()},
                    "handsCompleted": r.hands_completed,
                    "tricksTaken": {
                        str(pid): tricks for pid, tricks in r.tricks_taken.items()
                    },
                    "bonusPoints": {
                        str(pid): bonus for pid, bonus in r.bonus_points.items()
                    },
                }
                for r in self.game_state.rounds
            ],
            "currentRound": self.game_state.current_round_number,
            "gamePhase": self.phase.value,
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        game_label: Optional[str] = None,
    ) -> "GameEngine":
        """
        Rebuild a game from `to_dict()` output.

        Malformed data raises ValidationError; totals that don't match the
        round history raise IntegrityError.
        """
        try:
            phase = GamePhase(data["gamePhase"])
            players = [
                Player(
                    id=_as_int(p["id"]),
                    name=str(p["name"]),
                    total_score=_as_int(p["totalScore"]),
                    round_scores=[_as_int(s) for s in p["roundScores"]],
                )
                for p in data["players"]
            ]
            roster = [p.id for p in players]
            rounds = [_round_from_dict(r, roster) for r in data["rounds"]]
            current_round = _as_int(data["currentRound"])
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed game state: {exc!r}") from exc

        if len(set(roster)) != len(roster):
            raise ValidationError("Malformed game state: duplicate player ids")
        if len(players) > MAX_PLAYERS:
            raise ValidationError("Malformed game state: too many players")
        if phase is not GamePhase.SETUP and len(players) < MIN_PLAYERS:
            raise ValidationError(
                f"Malformed game state: a started game needs at least {MIN_PLAYERS} players"
            )
        if [r.number for r in rounds] != list(range(1, len(rounds) + 1)):
            raise ValidationError("Malformed game state: rounds are not consecutive")
        if phase is GamePhase.SETUP and any(r.bids for r in rounds):
            raise ValidationError("Malformed game state: bids recorded during setup")
        if rounds and current_round != rounds[-1].number:
            raise ValidationError(
                "Malformed game state: currentRound does not match the last round"
            )
        for round_state in rounds[:-1]:
            if not round_state.is_completed():
                raise ValidationError(
                    f"Malformed game state: round {round_state.number} was "
                    "left unfinished"
                )

        for player in players:
            check_integrity(player)
            scored = [r.number for r in rounds if player.id in r.scores]
            if scored != list(range(1, len(player.round_scores) + 1)):
                raise IntegrityError(
                    f"Player {player.name!r}: round scores do not match "
                    "the scored rounds"
                )
        for round_state in rounds:
            for pid, score in round_state.scores.items():
                player = next(p for p in players if p.id == pid)
                if player.round_scores[round_state.number - 1] != score.total:
                    raise IntegrityError(
                        f"Player {player.name!r}: round {round_state.number} "
                        "score does not match tricks and bonus"
                    )

        engine = cls(game_label=game_label)
        last = rounds[-1] if rounds else None
        engine.game_state = GameState(
            players=players,
            rounds=rounds,
            current_round_number=current_round if rounds else 1,
            complete=(
                last is not None
                and last.number == MAX_ROUNDS
                and last.is_completed()
            ),
        )
        engine.started = phase is not GamePhase.SETUP
        engine._next_player_id = max(roster, default=-1) + 1
        if engine.phase is not phase:
            raise ValidationError(
                f"Malformed game state: gamePhase {phase.value!r} does not match "
                f"the rounds ({engine.phase.value!r})"
            )
        return engine


def _as_int(value: Any) -> int:
    if not is_whole_number(value):
        raise TypeError(f"expected an integer, got {value!r}")
    return value


def _round_from_dict(data: Dict[str, Any], roster: List[int]) -> RoundState:
    round_state = RoundState(
        number=_as_int(data["number"]),
        players=list(roster),
        status=RoundStatus(data["status"]),
        bids={int(pid): _as_int(bid) for pid, bid in data["bids"].items()},
        hands_completed=_as_int(data["handsCompleted"]),
    )
    for pid, bid in round_state.bids.items():
        if pid not in roster:
            raise ValueError(f"bid from unknown player {pid}")
        if not validate_bid(bid, round_state.required_hands).valid:
            raise ValueError(f"bid {bid} out of range in round {round_state.number}")

    expected_hands = {
        RoundStatus.BIDDING: round_state.hands_completed == 0,
        RoundStatus.PLAYING: 0 <= round_state.hands_completed < round_state.required_hands,
        RoundStatus.COMPLETED: round_state.hands_completed == round_state.required_hands,
    }
    if not expected_hands[round_state.status]:
        raise ValueError(
            f"round {round_state.number} has {round_state.hands_completed} hands "
            f"completed while {round_state.status.value}"
        )

    tricks = {int(pid): _as_int(t) for pid, t in data.get("tricksTaken", {}).items()}
    bonuses = {int(pid): _as_int(b) for pid, b in data.get("bonusPoints", {}).items()}
    for pid, tricks_taken in tricks.items():
        if pid not in round_state.bids:
            raise ValueError(f"tricks recorded for player {pid} without a bid")
        if not round_state.is_completed():
            raise ValueError(f"tricks recorded in unfinished round {round_state.number}")
        if not 0 <= tricks_taken <= round_state.required_hands:
            raise ValueError(
                f"tricks {tricks_taken} out of range in round {round_state.number}"
            )
        bonus = bonuses.get(pid, 0)
        if bonus < 0:
            raise ValueError(f"negative bonus {bonus} in round {round_state.number}")
        calculation = calculate_score(
            round_state.bids[pid], tricks_taken, round_state.number
        )
        calculation.add_bonus_points(bonus)
        round_state.record_score(calculation.to_round_score(pid), tricks_taken, bonus)
    return round_state

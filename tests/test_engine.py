# tests/test_engine.py
import json
import logging

import pytest

from skullking_scorer.engine import GameEngine, GamePhase
from skullking_scorer.exceptions import (
    BidOutOfRangeError,
    DuplicateNameError,
    EmptyNameError,
    IntegrityError,
    NotEnoughPlayersError,
    TooManyPlayersError,
    UnknownPlayerError,
    UnknownRoundError,
    ValidationError,
    WrongPhaseError,
)
from skullking_scorer.state import RoundStatus


def _make_engine(names=("Anne", "Bonny", "Calico")) -> GameEngine:
    engine = GameEngine(game_label="test-game")
    for name in names:
        engine.add_player(name)
    engine.start_game()
    return engine


def _play_round(engine: GameEngine, bids, tricks, bonuses=None) -> int:
    """Bid, play every hand and score the current round for all players."""
    number = engine.game_state.current_round_number
    for pid, bid in enumerate(bids):
        engine.submit_bid(number, pid, bid)
    for _ in range(number):
        engine.complete_hand()
    for pid, taken in enumerate(tricks):
        bonus = (bonuses or {}).get(pid, 0)
        engine.submit_tricks_taken(number, pid, taken, bonus)
    return number


# --------------------------------------------------------------------------- #
# Player setup                                                                #
# --------------------------------------------------------------------------- #


def test_add_player_trims_and_assigns_ids():
    engine = GameEngine()
    anne = engine.add_player("  Anne ")
    bonny = engine.add_player("Bonny")

    assert (anne.id, anne.name, anne.total_score, anne.round_scores) == (0, "Anne", 0, [])
    assert bonny.id == 1
    assert engine.phase is GamePhase.SETUP
    assert engine.game_state.current_round.players == [0, 1]


@pytest.mark.parametrize("name", ["", "   ", None])
def test_add_player_rejects_empty_name(name):
    engine = GameEngine()
    with pytest.raises(EmptyNameError):
        engine.add_player(name)
    assert engine.players == []


def test_add_player_rejects_duplicate_name_ignoring_case():
    engine = GameEngine()
    engine.add_player("Anne")
    with pytest.raises(DuplicateNameError):
        engine.add_player(" anne ")
    assert len(engine.players) == 1


def test_add_player_roster_limit():
    engine = GameEngine()
    for i in range(8):
        engine.add_player(f"Pirate {i}")
    with pytest.raises(TooManyPlayersError):
        engine.add_player("Stowaway")
    assert len(engine.players) == 8


def test_start_game_needs_two_players():
    engine = GameEngine()
    engine.add_player("Anne")
    assert not engine.can_start_game()
    with pytest.raises(NotEnoughPlayersError):
        engine.start_game()
    assert engine.phase is GamePhase.SETUP

    engine.add_player("Bonny")
    engine.start_game()
    assert engine.phase is GamePhase.PLAYING
    with pytest.raises(WrongPhaseError):
        engine.start_game()


def test_roster_frozen_after_start():
    engine = _make_engine()
    with pytest.raises(WrongPhaseError):
        engine.add_player("Davy")
    with pytest.raises(WrongPhaseError):
        engine.remove_player(0)
    assert len(engine.players) == 3


def test_remove_player_during_setup_keeps_ids_unique():
    engine = GameEngine()
    engine.add_player("Anne")
    engine.add_player("Bonny")
    engine.remove_player(0)
    calico = engine.add_player("Calico")

    assert calico.id == 2
    assert [p.name for p in engine.players] == ["Bonny", "Calico"]
    with pytest.raises(UnknownPlayerError):
        engine.remove_player(0)


def test_find_player_by_name():
    engine = _make_engine()
    assert engine.find_player(" bonny").id == 1
    with pytest.raises(UnknownPlayerError):
        engine.find_player("Davy")


# --------------------------------------------------------------------------- #
# Bidding and hands                                                           #
# --------------------------------------------------------------------------- #


def test_submit_bid_before_start_is_wrong_phase():
    engine = GameEngine()
    engine.add_player("Anne")
    engine.add_player("Bonny")
    with pytest.raises(WrongPhaseError):
        engine.submit_bid(1, 0, 0)


def test_submit_bid_out_of_range_leaves_state_unchanged():
    engine = _make_engine()
    for bad in (2, -1, 0.5):
        with pytest.raises(BidOutOfRangeError):
            engine.submit_bid(1, 0, bad)
    assert engine.game_state.current_round.bids == {}


def test_submit_bid_unknown_player_or_round():
    engine = _make_engine()
    with pytest.raises(UnknownPlayerError):
        engine.submit_bid(1, 7, 0)
    with pytest.raises(UnknownRoundError):
        engine.submit_bid(2, 0, 0)


def test_all_bids_start_playing_automatically():
    engine = _make_engine()
    record = engine.submit_bid(1, 0, 1)
    assert (record.player_id, record.bid) == (0, 1)
    engine.submit_bid(1, 0, 0)  # overwrite
    engine.submit_bid(1, 1, 0)
    assert engine.game_state.current_round.status is RoundStatus.BIDDING

    engine.submit_bid(1, 2, 1)
    current = engine.game_state.current_round
    assert current.status is RoundStatus.PLAYING
    assert current.bids == {0: 0, 1: 0, 2: 1}

    with pytest.raises(WrongPhaseError):
        engine.submit_bid(1, 0, 1)
    assert current.bids[0] == 0


def test_complete_hand_requires_playing():
    engine = _make_engine()
    with pytest.raises(WrongPhaseError):
        engine.complete_hand()
    assert engine.game_state.current_round.hands_completed == 0


def test_completing_round_advances_to_next():
    engine = _make_engine()
    for pid in range(3):
        engine.submit_bid(1, pid, 0)
    engine.complete_hand()

    status = engine.get_game_status()
    assert status.current_round == 2
    assert status.current_round_status is RoundStatus.BIDDING
    assert status.total_rounds == 2
    assert engine.game_state.get_round(1).is_completed()

    details = engine.get_round_details()
    assert details == {
        "round_number": 2,
        "status": "bidding",
        "hands_required": 2,
        "hands_completed": 0,
        "is_round_complete": False,
        "is_game_complete": False,
    }


# --------------------------------------------------------------------------- #
# Scoring                                                                     #
# --------------------------------------------------------------------------- #


def test_submit_tricks_scores_and_updates_players():
    engine = _make_engine()
    _play_round(engine, bids=[1, 0, 0], tricks=[1, 0, 0], bonuses={0: 10, 1: 20})

    anne, bonny, calico = engine.players
    assert anne.round_scores == [30]
    assert bonny.round_scores == [30]
    assert calico.round_scores == [10]

    round_one = engine.game_state.get_round(1)
    assert round_one.tricks_taken == {0: 1, 1: 0, 2: 0}
    assert round_one.bonus_points == {0: 10, 1: 20, 2: 0}
    assert round_one.scores[0].base == 20
    assert round_one.scores[0].bonus == 10


def test_bonus_ignored_when_bid_missed():
    engine = _make_engine()
    for pid, bid in enumerate([1, 1, 0]):
        engine.submit_bid(1, pid, bid)
    engine.complete_hand()

    calc = engine.submit_tricks_taken(1, 0, 0, bonus_points=30)
    assert calc.bid_met is False
    assert calc.total_round_score == -10
    assert engine.players[0].total_score == -10
    assert engine.game_state.get_round(1).scores[0].bonus == 0


def test_submit_tricks_before_round_complete_is_wrong_phase():
    engine = _make_engine()
    with pytest.raises(WrongPhaseError):
        engine.submit_tricks_taken(1, 0, 0)
    for pid in range(3):
        engine.submit_bid(1, pid, 0)
    with pytest.raises(WrongPhaseError):
        engine.submit_tricks_taken(1, 0, 0)
    assert engine.players[0].round_scores == []


def test_submit_tricks_validation():
    engine = _make_engine()
    for pid in range(3):
        engine.submit_bid(1, pid, 0)
    engine.complete_hand()

    with pytest.raises(ValidationError):
        engine.submit_tricks_taken(1, 0, 2)
    with pytest.raises(ValidationError):
        engine.submit_tricks_taken(1, 0, -1)
    with pytest.raises(ValidationError):
        engine.submit_tricks_taken(1, 0, 1, bonus_points=-10)
    with pytest.raises(UnknownPlayerError):
        engine.submit_tricks_taken(1, 9, 0)
    assert engine.game_state.get_round(1).scores == {}


def test_each_round_scored_once_and_in_order():
    engine = _make_engine(("Anne", "Bonny"))
    for number in (1, 2):
        for pid in range(2):
            engine.submit_bid(number, pid, 0)
        for _ in range(number):
            engine.complete_hand()

    with pytest.raises(WrongPhaseError):
        engine.submit_tricks_taken(2, 0, 0)

    engine.submit_tricks_taken(1, 0, 0)
    with pytest.raises(WrongPhaseError):
        engine.submit_tricks_taken(1, 0, 0)
    engine.submit_tricks_taken(2, 0, 1)

    assert engine.players[0].round_scores == [10, -20]
    assert engine.players[0].total_score == -10


def test_tricks_total_mismatch_only_warns(caplog):
    engine = _make_engine(("Anne", "Bonny"))
    for pid in range(2):
        engine.submit_bid(1, pid, 0)
    engine.complete_hand()

    engine.submit_tricks_taken(1, 0, 0)
    assert engine.tricks_total_warning(1) is None

    with caplog.at_level(logging.WARNING, logger="skullking_scorer.engine"):
        engine.submit_tricks_taken(1, 1, 0)

    assert engine.players[1].round_scores == [10]
    assert "doesn't match" in engine.tricks_total_warning(1)
    assert "doesn't match" in caplog.text


def test_full_game_reaches_completion():
    engine = _make_engine()
    for number in range(1, 11):
        # Anne always bids and takes every trick; the others bid zero.
        _play_round(engine, bids=[number, 0, 0], tricks=[number, 0, 0])

    assert engine.phase is GamePhase.FINISHED
    status = engine.get_game_status()
    assert status.is_complete is True
    assert status.current_round == 10
    assert status.total_rounds == 10

    anne, bonny, calico = engine.players
    assert anne.round_scores == [20 * n for n in range(1, 11)]
    assert anne.total_score == 1100
    assert bonny.total_score == calico.total_score == 550
    for p in engine.players:
        assert p.total_score == sum(p.round_scores)

    assert engine.get_leader() is anne
    board = engine.get_scoreboard()
    assert [e.name for e in board] == ["Anne", "Bonny", "Calico"]
    assert board[0].is_leader and not board[1].is_leader

    with pytest.raises(WrongPhaseError):
        engine.complete_hand()
    with pytest.raises(WrongPhaseError):
        engine.submit_bid(10, 0, 1)


def test_last_round_can_be_scored_after_game_finishes():
    engine = _make_engine(("Anne", "Bonny"))
    for number in range(1, 10):
        _play_round(engine, bids=[0, 0], tricks=[0, 0])
    for pid in range(2):
        engine.submit_bid(10, pid, 5)
    for _ in range(10):
        engine.complete_hand()

    assert engine.phase is GamePhase.FINISHED
    engine.submit_tricks_taken(10, 0, 5)
    engine.submit_tricks_taken(10, 1, 5)
    assert engine.players[0].round_scores[-1] == 100
    assert len(engine.game_state.rounds) == 10


# --------------------------------------------------------------------------- #
# Persisted state                                                             #
# --------------------------------------------------------------------------- #


def test_to_dict_shape():
    engine = _make_engine(("Anne", "Bonny"))
    _play_round(engine, bids=[1, 0], tricks=[1, 0], bonuses={0: 10})
    engine.submit_bid(2, 1, 2)

    data = engine.to_dict()
    json.dumps(data)

    assert data["currentRound"] == 2
    assert data["gamePhase"] == "playing"
    assert data["players"][0] == {
        "id": 0,
        "name": "Anne",
        "totalScore": 30,
        "roundScores": [30],
    }
    assert data["rounds"][0] == {
        "number": 1,
        "status": "completed",
        "bids": {"0": 1, "1": 0},
        "handsCompleted": 1,
        "tricksTaken": {"0": 1, "1": 0},
        "bonusPoints": {"0": 10, "1": 0},
    }
    assert data["rounds"][1]["bids"] == {"1": 2}
    assert data["rounds"][1]["status"] == "bidding"


def test_from_dict_restores_game():
    engine = _make_engine()
    _play_round(engine, bids=[1, 0, 0], tricks=[0, 1, 0], bonuses={2: 20})
    engine.submit_bid(2, 0, 2)

    restored = GameEngine.from_dict(json.loads(json.dumps(engine.to_dict())))
    assert restored.to_dict() == engine.to_dict()
    assert restored.phase is GamePhase.PLAYING

    # The restored game keeps playing from where it left off.
    restored.submit_bid(2, 1, 0)
    restored.submit_bid(2, 2, 0)
    assert restored.game_state.current_round.status is RoundStatus.PLAYING
    with pytest.raises(WrongPhaseError):
        restored.submit_tricks_taken(1, 2, 0)


def test_from_dict_setup_game_accepts_more_players():
    engine = GameEngine()
    engine.add_player("Anne")
    restored = GameEngine.from_dict(engine.to_dict())
    assert restored.phase is GamePhase.SETUP
    assert restored.add_player("Bonny").id == 1


def test_from_dict_rejects_tampered_totals():
    engine = _make_engine(("Anne", "Bonny"))
    _play_round(engine, bids=[1, 0], tricks=[1, 0])

    data = engine.to_dict()
    data["players"][0]["totalScore"] = 999
    with pytest.raises(IntegrityError):
        GameEngine.from_dict(data)

    data = engine.to_dict()
    data["players"][0]["roundScores"] = [40]
    data["players"][0]["totalScore"] = 40
    with pytest.raises(IntegrityError):
        GameEngine.from_dict(data)


def _tricks_above_hands(data):
    # Bonny bid 0 and "took" 7 tricks in a 1-hand round; totals patched to agree.
    data["rounds"][0]["tricksTaken"]["1"] = 7
    data["players"][1].update(roundScores=[-10], totalScore=-10)


def _negative_bonus(data):
    data["rounds"][0]["bonusPoints"]["0"] = -500
    data["players"][0].update(roundScores=[-480], totalScore=-480)


@pytest.mark.parametrize(
    "mutate",
    [
        _tricks_above_hands,
        _negative_bonus,
        lambda d: d.update(gamePhase="finished"),
        lambda d: d.update(gamePhase="setup"),
        lambda d: d.pop("players"),
        lambda d: d.update(gamePhase="halftime"),
        lambda d: d["rounds"][0].update(status="done"),
        lambda d: d["rounds"][0].update(number=3),
        lambda d: d["rounds"][0]["bids"].update({"0": 4}),
        lambda d: d["rounds"][0]["bids"].update({"9": 0}),
        lambda d: d["rounds"][0].update(handsCompleted=0),
        lambda d: d.update(currentRound=5),
        lambda d: d["players"][0].update(totalScore="30"),
    ],
)
def test_from_dict_rejects_malformed_state(mutate):
    engine = _make_engine(("Anne", "Bonny"))
    _play_round(engine, bids=[1, 0], tricks=[1, 0])
    data = engine.to_dict()
    mutate(data)
    with pytest.raises(ValidationError):
        GameEngine.from_dict(data)


def test_from_dict_rejects_started_game_below_minimum_roster():
    engine = GameEngine()
    engine.add_player("Anne")
    data = engine.to_dict()
    data["gamePhase"] = "playing"
    with pytest.raises(ValidationError):
        GameEngine.from_dict(data)


def test_from_dict_keeps_finished_phase():
    engine = _make_engine(("Anne", "Bonny"))
    for _ in range(10):
        _play_round(engine, bids=[0, 0], tricks=[0, 0])
    restored = GameEngine.from_dict(engine.to_dict())
    assert restored.phase is GamePhase.FINISHED

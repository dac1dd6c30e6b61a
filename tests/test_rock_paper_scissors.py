import pytest

from mindspace.database.models import GameType, RoomStatus
from mindspace.games.rock_paper_scissors.game_manager import RockPaperScissorsManager, resolve_round
from tests.conftest import make_room

OUTCOMES = [
    ("rock", "rock", None),
    ("rock", "paper", "bob"),
    ("rock", "scissors", "alice"),
    ("paper", "rock", "alice"),
    ("paper", "paper", None),
    ("paper", "scissors", "bob"),
    ("scissors", "rock", "bob"),
    ("scissors", "paper", "alice"),
    ("scissors", "scissors", None),
]


def rps_room(**kwargs):
    return make_room(game_type=GameType.ROCK_PAPER_SCISSORS, **kwargs)


def choose(room, player_id, choice):
    manager = RockPaperScissorsManager(room)
    success, error, update = manager.process_move(player_id, {"choice": choice})
    assert success, error
    return manager.next_room(update)


@pytest.mark.parametrize("alice_choice,bob_choice,winner", OUTCOMES)
def test_outcome_when_player1_chooses_first(alice_choice, bob_choice, winner):
    room = choose(rps_room(), "alice", alice_choice)
    room = choose(room, "bob", bob_choice)

    assert room.status == RoomStatus.COMPLETED
    assert room.winner_id == winner
    assert room.completed_at is not None


@pytest.mark.parametrize("alice_choice,bob_choice,winner", OUTCOMES)
def test_outcome_when_player2_chooses_first(alice_choice, bob_choice, winner):
    room = choose(rps_room(), "bob", bob_choice)
    room = choose(room, "alice", alice_choice)

    assert room.status == RoomStatus.COMPLETED
    assert room.winner_id == winner


def test_each_pair_of_distinct_choices_has_exactly_one_winner():
    for first in ("rock", "paper", "scissors"):
        for second in ("rock", "paper", "scissors"):
            if first == second:
                assert resolve_round(first, second) is None
            else:
                assert {resolve_round(first, second), resolve_round(second, first)} == {1, 2}


def test_both_rock_is_a_draw():
    room = choose(rps_room(), "alice", "rock")
    room = choose(room, "bob", "rock")

    assert room.status == RoomStatus.COMPLETED
    assert room.winner_id is None


def test_first_choice_keeps_room_in_progress():
    room = choose(rps_room(), "alice", "paper")

    assert room.status == RoomStatus.IN_PROGRESS
    assert room.game_state.player1_choice == "paper"
    assert room.game_state.player2_choice is None


def test_second_choice_from_same_player_is_rejected():
    room = choose(rps_room(), "alice", "paper")

    success, error, update = RockPaperScissorsManager(room).process_move("alice", {"choice": "rock"})

    assert success is False
    assert error == "You have already chosen"
    assert update is None


@pytest.mark.parametrize("move", [{"choice": "lizard"}, {"choice": None}, {"choice": ["rock"]}, {}])
def test_invalid_choice_is_rejected(move):
    success, error, _ = RockPaperScissorsManager(rps_room()).process_move("alice", move)

    assert success is False
    assert error.startswith("Invalid choice")


def test_waiting_room_rejects_choices():
    room = rps_room(status=RoomStatus.WAITING, player2_id=None)

    success, error, _ = RockPaperScissorsManager(room).process_move("alice", {"choice": "rock"})

    assert success is False
    assert error == "Game is not in progress"


def test_opponent_choice_hidden_until_completed():
    room = choose(rps_room(), "alice", "scissors")

    bob_view = RockPaperScissorsManager(room).get_state("bob")
    alice_view = RockPaperScissorsManager(room).get_state("alice")

    assert bob_view["player1_choice"] is None
    assert bob_view["player1_has_chosen"] is True
    assert bob_view["your_choice"] is None
    assert alice_view["player1_choice"] == "scissors"
    assert alice_view["your_choice"] == "scissors"

    room = choose(room, "bob", "rock")
    bob_view = RockPaperScissorsManager(room).get_state("bob")

    assert bob_view["player1_choice"] == "scissors"
    assert bob_view["player2_choice"] == "rock"


def test_game_stats_include_choices():
    room = choose(rps_room(), "alice", "scissors")
    room = choose(room, "bob", "rock")

    stats = RockPaperScissorsManager(room).get_game_stats()

    assert stats["winner_id"] == "bob"
    choices = {player["user_id"]: player["choice"] for player in stats["players"]}
    assert choices == {"alice": "scissors", "bob": "rock"}

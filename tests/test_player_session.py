import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from mindspace.crud.activity_stats import get_activity_stats
from mindspace.crud.game_room import cancel_game_room, create_game_room, get_game_room, join_game_room
from mindspace.database.models import Base, GameType, RoomStatus
from mindspace.games import player_session
from mindspace.games.player_session import PlayerSession
from mindspace.schemas.game_room import GameRoomCreate
from mindspace.serializers.game_room import serialize_game_room_row


def started_room(db, game_type=GameType.TIC_TAC_TOE):
    room = create_game_room(db, GameRoomCreate(game_type=game_type), creator_id="alice")
    join_game_room(db, room.id, "bob")
    return room.id


def stored_row(db, room_id):
    db.expire_all()
    return serialize_game_room_row(get_game_room(db, room_id))


def test_tic_tac_toe_played_through_two_sessions(session_factory):
    setup = session_factory()
    room_id = started_room(setup)
    alice = PlayerSession(session_factory(), room_id, "alice")
    bob = PlayerSession(session_factory(), room_id, "bob")
    alice.load()
    bob.load()

    for session, position in [(alice, 0), (bob, 4), (alice, 1), (bob, 3), (alice, 2)]:
        success, error, _ = session.play({"position": position})
        assert success, error

    room = get_game_room(setup, room_id)
    setup.refresh(room)
    assert room.status == RoomStatus.COMPLETED
    assert room.winner_id == "alice"
    assert room.completed_at is not None
    assert room.game_state["board"][:3] == ["X", "X", "X"]

    for db in (setup, alice.db, bob.db):
        db.close()


def test_second_choice_sees_the_first_even_from_a_stale_session(session_factory):
    setup = session_factory()
    room_id = started_room(setup, GameType.ROCK_PAPER_SCISSORS)
    alice = PlayerSession(session_factory(), room_id, "alice")
    bob = PlayerSession(session_factory(), room_id, "bob")
    # Bob's snapshot predates Alice's choice
    alice.load()
    bob.load()

    assert alice.play({"choice": "rock"})[0]
    success, _, room = bob.play({"choice": "paper"})

    assert success
    assert room.status == RoomStatus.COMPLETED
    assert room.winner_id == "bob"
    assert room.game_state.player1_choice == "rock"
    assert room.game_state.player2_choice == "paper"

    for db in (setup, alice.db, bob.db):
        db.close()


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'moves.db'}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def writes_after_both_read(monkeypatch):
    """Hold each thread's first move write until both threads have read the room."""
    barrier = threading.Barrier(2, timeout=10)
    local = threading.local()
    write = player_session.update_game_state

    def update_game_state(*args, **kwargs):
        if not getattr(local, "waited", False):
            local.waited = True
            barrier.wait()
        return write(*args, **kwargs)

    monkeypatch.setattr(player_session, "update_game_state", update_game_state)


def play_concurrently(session_factory, room_id, moves):
    def attempt(user_id, move):
        db = session_factory()
        try:
            success, error, _ = PlayerSession(db, room_id, user_id).play(move)
            return success, error
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=len(moves)) as pool:
        futures = [pool.submit(attempt, user_id, move) for user_id, move in moves]
        return [future.result() for future in futures]


def test_simultaneous_choices_both_count(file_session_factory, writes_after_both_read):
    setup = file_session_factory()
    room_id = started_room(setup, GameType.ROCK_PAPER_SCISSORS)

    results = play_concurrently(
        file_session_factory, room_id,
        [("alice", {"choice": "rock"}), ("bob", {"choice": "paper"})],
    )

    assert results == [(True, None), (True, None)]
    room = get_game_room(setup, room_id)
    setup.refresh(room)
    assert room.status == RoomStatus.COMPLETED
    assert room.winner_id == "bob"
    assert room.game_state["player1_choice"] == "rock"
    assert room.game_state["player2_choice"] == "paper"
    assert room.state_version == 2
    setup.close()


def test_simultaneous_moves_from_one_player_apply_once(file_session_factory, writes_after_both_read):
    setup = file_session_factory()
    room_id = started_room(setup)

    results = play_concurrently(
        file_session_factory, room_id,
        [("alice", {"position": 0}), ("alice", {"position": 1})],
    )

    assert sorted(success for success, _ in results) == [False, True]
    assert (False, "Not your turn") in results
    room = get_game_room(setup, room_id)
    setup.refresh(room)
    assert room.game_state["board"].count("X") == 1
    assert room.game_state["current_turn"] == "O"
    setup.close()


def test_observing_a_completed_room_records_stats_for_the_observer(db):
    room_id = started_room(db, GameType.ROCK_PAPER_SCISSORS)
    PlayerSession(db, room_id, "alice").play({"choice": "scissors"})
    PlayerSession(db, room_id, "bob").play({"choice": "rock"})
    row = stored_row(db, room_id)

    PlayerSession(db, room_id, "alice").observe(row)
    PlayerSession(db, room_id, "bob").observe(row)

    alice_stats = get_activity_stats(db, "alice")
    bob_stats = get_activity_stats(db, "bob")
    assert (alice_stats.games_played, alice_stats.games_won) == (1, 0)
    assert (bob_stats.games_played, bob_stats.games_won) == (1, 1)


def test_replayed_completed_row_is_counted_again(db):
    room_id = started_room(db, GameType.ROCK_PAPER_SCISSORS)
    PlayerSession(db, room_id, "alice").play({"choice": "rock"})
    PlayerSession(db, room_id, "bob").play({"choice": "rock"})
    row = stored_row(db, room_id)
    bob = PlayerSession(db, room_id, "bob")

    bob.observe(row)
    bob.observe(row)

    stats = get_activity_stats(db, "bob")
    assert stats.games_played == 2
    assert stats.games_won == 0


def test_rows_still_in_progress_record_nothing(db):
    room_id = started_room(db)
    PlayerSession(db, room_id, "alice").play({"position": 4})

    room = PlayerSession(db, room_id, "bob").observe(stored_row(db, room_id))

    assert room.status == RoomStatus.IN_PROGRESS
    assert room.game_state.board[4] == "X"
    assert get_activity_stats(db, "bob") is None


def test_outsider_observing_a_finished_room_records_nothing(db):
    room_id = started_room(db, GameType.ROCK_PAPER_SCISSORS)
    PlayerSession(db, room_id, "alice").play({"choice": "rock"})
    PlayerSession(db, room_id, "bob").play({"choice": "paper"})

    PlayerSession(db, room_id, "carol").observe(stored_row(db, room_id))

    assert get_activity_stats(db, "carol") is None


def test_rejected_move_leaves_the_room_untouched(db):
    room_id = started_room(db)
    before = stored_row(db, room_id)

    success, error, _ = PlayerSession(db, room_id, "bob").play({"position": 0})

    assert success is False
    assert error == "Not your turn"
    assert stored_row(db, room_id) == before


def test_moves_after_cancel_are_refused(db):
    room_id = started_room(db)
    cancel_game_room(db, room_id, "bob")

    success, error, _ = PlayerSession(db, room_id, "alice").play({"position": 0})

    assert success is False
    assert error == "Game is not in progress"
    assert stored_row(db, room_id)["status"] == "cancelled"


def test_view_hides_the_opponents_pending_choice(db):
    room_id = started_room(db, GameType.ROCK_PAPER_SCISSORS)
    PlayerSession(db, room_id, "alice").play({"choice": "paper"})

    bob = PlayerSession(db, room_id, "bob")
    bob.load()
    view = bob.view()

    assert view.status == RoomStatus.IN_PROGRESS
    assert view.game_state["player1_choice"] is None
    assert view.game_state["player1_has_chosen"] is True

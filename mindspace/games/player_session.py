import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mindspace.crud.activity_stats import record_game_played
from mindspace.crud.game_room import get_game_room, get_game_room_for_update, update_game_state
from mindspace.database.models import RoomStatus
from mindspace.games.abstract_game import AbstractGameManager
from mindspace.games.game_manager_factory import GameManagerFactory
from mindspace.schemas.game_room import GameRoom, GameRoomView
from mindspace.serializers.game_room import serialize_game_room

logger = logging.getLogger(__name__)

# Reads and re-validations of a move whose write lost to another move
MOVE_ATTEMPTS = 3


class MoveNotSavedError(Exception):
    """The datastore refused or failed the write carrying a move."""


class PlayerSession:
    """
    One participant's side of a game room.

    The session plays its user's moves against the persisted row and follows
    the room through change events. Both players run their own session and
    each derives the outcome independently from the rows it observes.
    """

    def __init__(self, db: Session, room_id: str, user_id: str):
        self.db = db
        self.room_id = room_id
        self.user_id = user_id
        self.room: Optional[GameRoom] = None

    def load(self) -> Optional[GameRoom]:
        self.db.expire_all()
        db_room = get_game_room(self.db, self.room_id)
        if db_room is None:
            return None
        self.room = serialize_game_room(db_room)
        return self.room

    def manager(self, room: Optional[GameRoom] = None) -> AbstractGameManager:
        return GameManagerFactory.create_game_manager(room or self.room)

    def play(self, move_data: Dict[str, Any]) -> Tuple[bool, Optional[str], Optional[GameRoom]]:
        """
        Validate a move against a fresh read of the room and write the result.

        The write only lands if the room still has the version that was read.
        When another move got in first the room is read again and the move is
        validated against the newer state.

        Returns:
            Tuple of (success, error_message, room as written)

        Raises:
            MoveNotSavedError: the write itself failed; the move is lost.
        """
        for attempt in range(MOVE_ATTEMPTS):
            try:
                db_room = get_game_room_for_update(self.db, self.room_id)
                if db_room is None:
                    self.db.rollback()
                    return False, "Room not found", None

                room = serialize_game_room(db_room)
                success, error_message, update = self.manager(room).process_move(self.user_id, move_data)
                if not success:
                    self.db.rollback()
                    self.room = room
                    return False, error_message, room

                db_room = update_game_state(self.db, self.room_id, update, expected_version=room.state_version)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.exception(f"Could not save move by {self.user_id} in room {self.room_id}")
                raise MoveNotSavedError(str(e)) from e

            if db_room is not None:
                self.room = serialize_game_room(db_room)
                return True, None, self.room

            logger.info(f"Room {self.room_id} changed under a move by {self.user_id}, attempt {attempt + 1}")

        return False, "Room is busy, please try again", None

    def observe(self, row: Dict[str, Any]) -> GameRoom:
        """
        Take in a room row delivered by the change channel.

        Every completed row counts a finished game for this session's user.
        Nothing remembers that a room was already counted, so a replayed
        terminal row is counted again.
        """
        room = GameRoom.model_validate(row)
        self.room = room

        if room.status == RoomStatus.COMPLETED and room.is_participant(self.user_id):
            record_game_played(self.db, self.user_id, won=room.winner_id == self.user_id)

        return room

    def view(self, room: Optional[GameRoom] = None) -> GameRoomView:
        room = room or self.room
        return GameRoomView(
            id=room.id,
            game_type=room.game_type,
            player1_id=room.player1_id,
            player2_id=room.player2_id,
            game_state=self.manager(room).get_state(self.user_id),
            status=room.status,
            winner_id=room.winner_id,
            created_at=room.created_at,
            completed_at=room.completed_at,
        )

    def game_stats(self, room: Optional[GameRoom] = None) -> Dict[str, Any]:
        return self.manager(room).get_game_stats()

# mindspace/crud/game_room.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from mindspace.config import settings
from mindspace.database.models import GameRoom, GameType, RoomStatus
from mindspace.games.game_manager_factory import GameManagerFactory
from mindspace.schemas.game_room import GameRoomCreate, GameRoomUpdate
from mindspace.serializers.game_room import serialize_game_room_row
from mindspace.websockets.channel import ChangeEventType, change_channel

logger = logging.getLogger(__name__)

GAME_ROOMS_TABLE = GameRoom.__tablename__

ACTIVE_STATUSES = (RoomStatus.WAITING, RoomStatus.IN_PROGRESS)


class RoomUnavailableError(ValueError):
    """The room changed underneath the caller and the write was not applied."""


class NotRoomParticipantError(ValueError):
    pass


def get_game_room(db: Session, room_id: str):
    return db.query(GameRoom).filter(GameRoom.id == room_id).first()


def get_game_room_for_update(db: Session, room_id: str):
    """Read the persisted row, bypassing anything cached in the session."""
    return (db.query(GameRoom)
            .filter(GameRoom.id == room_id)
            .populate_existing()
            .with_for_update()
            .first())


def list_open_rooms(
        db: Session,
        game_type: Optional[GameType] = None,
        limit: int = settings.OPEN_ROOMS_PAGE_SIZE,
) -> List[GameRoom]:
    query = (db.query(GameRoom)
             .filter(GameRoom.status == RoomStatus.WAITING)
             .filter(GameRoom.player2_id.is_(None)))
    if game_type is not None:
        query = query.filter(GameRoom.game_type == game_type)

    return query.order_by(GameRoom.created_at.desc()).limit(limit).all()


def create_game_room(db: Session, game_room: GameRoomCreate, creator_id: str):
    manager_class = GameManagerFactory.get_manager_class(game_room.game_type)

    db_game_room = GameRoom(
        game_type=game_room.game_type,
        player1_id=creator_id,
        player2_id=None,
        status=RoomStatus.WAITING,
        game_state=manager_class.initial_state().model_dump(),
    )
    db.add(db_game_room)
    db.commit()
    db.refresh(db_game_room)

    change_channel.publish(GAME_ROOMS_TABLE, ChangeEventType.INSERT, serialize_game_room_row(db_game_room))
    return db_game_room


def join_game_room(db: Session, room_id: str, user_id: str):
    room = get_game_room(db, room_id)
    if room is None:
        return None

    if room.player1_id == user_id:
        raise ValueError("You cannot join your own room")

    old_row = serialize_game_room_row(room)

    # The predicate is the only arbitration between racing joiners
    affected = (db.query(GameRoom)
                .filter(GameRoom.id == room_id)
                .filter(GameRoom.player2_id.is_(None))
                .filter(GameRoom.status == RoomStatus.WAITING)
                .update({
                    GameRoom.player2_id: user_id,
                    GameRoom.status: RoomStatus.IN_PROGRESS,
                }, synchronize_session=False))

    if affected == 0:
        db.rollback()
        logger.info(f"User {user_id} lost the race to join room {room_id}")
        raise RoomUnavailableError("Room no longer available")

    db.commit()
    db.refresh(room)

    change_channel.publish(GAME_ROOMS_TABLE, ChangeEventType.UPDATE, serialize_game_room_row(room), old_row)
    return room


def update_game_state(
        db: Session,
        room_id: str,
        game_room: GameRoomUpdate,
        expected_version: Optional[int] = None,
):
    """
    Write a move's result back to the room.

    Only rooms still in progress are updated, and when ``expected_version``
    is given only if no other move was written since the room was read.
    Returns None when nothing was written.
    """
    query = (db.query(GameRoom)
             .filter(GameRoom.id == room_id)
             .filter(GameRoom.status == RoomStatus.IN_PROGRESS))
    if expected_version is not None:
        query = query.filter(GameRoom.state_version == expected_version)

    affected = query.update({
        GameRoom.game_state: game_room.game_state.model_dump(),
        GameRoom.state_version: GameRoom.state_version + 1,
        GameRoom.status: game_room.status,
        GameRoom.winner_id: game_room.winner_id,
        GameRoom.completed_at: game_room.completed_at,
    }, synchronize_session=False)

    if affected == 0:
        db.rollback()
        return None

    db.commit()
    room = get_game_room(db, room_id)

    change_channel.publish(GAME_ROOMS_TABLE, ChangeEventType.UPDATE, serialize_game_room_row(room))
    return room


def cancel_game_room(db: Session, room_id: str, user_id: str):
    room = get_game_room(db, room_id)
    if room is None:
        return None

    if user_id not in (room.player1_id, room.player2_id):
        raise NotRoomParticipantError("Only players of this room can cancel it")

    affected = (db.query(GameRoom)
                .filter(GameRoom.id == room_id)
                .filter(GameRoom.status.in_(ACTIVE_STATUSES))
                .update({GameRoom.status: RoomStatus.CANCELLED}, synchronize_session=False))

    if affected == 0:
        db.rollback()
        raise RoomUnavailableError("Room is already finished")

    db.commit()
    db.refresh(room)

    change_channel.publish(GAME_ROOMS_TABLE, ChangeEventType.UPDATE, serialize_game_room_row(room))
    return room


def cancel_stale_rooms(db: Session, older_than: datetime) -> List[GameRoom]:
    """Cancel waiting and in-progress rooms created before ``older_than``."""
    stale_ids = [
        room_id for (room_id,) in (db.query(GameRoom.id)
                                   .filter(GameRoom.status.in_(ACTIVE_STATUSES))
                                   .filter(GameRoom.created_at < older_than)
                                   .all())
    ]
    if not stale_ids:
        return []

    (db.query(GameRoom)
     .filter(GameRoom.id.in_(stale_ids))
     .filter(GameRoom.status.in_(ACTIVE_STATUSES))
     .update({GameRoom.status: RoomStatus.CANCELLED}, synchronize_session=False))
    db.commit()

    rooms = db.query(GameRoom).filter(GameRoom.id.in_(stale_ids)).populate_existing().all()
    cancelled = [room for room in rooms if room.status == RoomStatus.CANCELLED]
    for room in cancelled:
        change_channel.publish(GAME_ROOMS_TABLE, ChangeEventType.UPDATE, serialize_game_room_row(room))

    logger.info(f"Cancelled {len(cancelled)} stale rooms")
    return cancelled

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from mindspace.database.base import get_db
from mindspace.database.models import GameType
from mindspace.crud.game_room import (
    get_game_room,
    list_open_rooms,
    create_game_room,
    join_game_room,
    cancel_game_room,
    RoomUnavailableError,
    NotRoomParticipantError,
)
from mindspace.games.player_session import PlayerSession
from mindspace.middleware.auth import get_current_user_id
from mindspace.schemas.game_room import GameRoom, GameRoomCreate, GameRoomView
from mindspace.serializers.game_room import serialize_game_room

router = APIRouter(
    prefix="/game-rooms",
    tags=["game-rooms"]
)


@router.post("/", response_model=GameRoom)
def create_game_room_endpoint(
        game_room: GameRoomCreate,
        user_id: str = Depends(get_current_user_id),
        db: Session = Depends(get_db),
):
    room = create_game_room(db=db, game_room=game_room, creator_id=user_id)
    return serialize_game_room(room)


@router.get("/", response_model=List[GameRoom])
def read_open_rooms(
        game_type: Optional[GameType] = None,
        user_id: str = Depends(get_current_user_id),
        db: Session = Depends(get_db),
):
    """Rooms waiting for a second player, newest first."""
    rooms = list_open_rooms(db, game_type=game_type)
    return [serialize_game_room(room) for room in rooms]


@router.get("/{room_id}", response_model=GameRoomView)
def read_game_room(room_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    db_game_room = get_game_room(db, room_id=room_id)
    if db_game_room is None:
        raise HTTPException(status_code=404, detail="Game room not found")

    session = PlayerSession(db, room_id, user_id)
    return session.view(serialize_game_room(db_game_room))


@router.post("/{room_id}/join", response_model=GameRoom)
def join_game_room_endpoint(room_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    try:
        room = join_game_room(db=db, room_id=room_id, user_id=user_id)
    except RoomUnavailableError as e:
        # Lost the race for the empty seat; the client should refresh the room list
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if room is None:
        raise HTTPException(status_code=404, detail="Game room not found")
    return serialize_game_room(room)


@router.post("/{room_id}/cancel", response_model=GameRoom)
def cancel_game_room_endpoint(room_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    try:
        room = cancel_game_room(db=db, room_id=room_id, user_id=user_id)
    except NotRoomParticipantError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except RoomUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if room is None:
        raise HTTPException(status_code=404, detail="Game room not found")
    return serialize_game_room(room)

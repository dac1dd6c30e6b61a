import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, status
from sqlalchemy.orm import Session

from mindspace.crud.game_room import GAME_ROOMS_TABLE, list_open_rooms
from mindspace.database.base import get_db
from mindspace.database.models import GameType
from mindspace.serializers.game_room import serialize_game_room
from mindspace.websockets.auth import websocket_auth
from mindspace.websockets.channel import Subscription, change_channel
from mindspace.websockets.messages import WebSocketMessageType, WebSocketMessage

logger = logging.getLogger(__name__)

router = APIRouter()


def get_rooms_data(db: Session, game_type: Optional[GameType] = None) -> list:
    """Get serialized open rooms, re-read from the database"""
    db.expire_all()
    return [serialize_game_room(room) for room in list_open_rooms(db, game_type=game_type)]


async def send_room_list(websocket: WebSocket, db: Session, game_type: Optional[GameType]):
    message = WebSocketMessage(
        type=WebSocketMessageType.ROOM_LIST_UPDATE,
        content={"rooms": get_rooms_data(db, game_type)},
    )
    await websocket.send_json(message.to_dict())


@router.websocket("/ws/game-rooms/")
async def room_list_websocket(
        websocket: WebSocket,
        game_type: Optional[GameType] = None,
        db: Session = Depends(get_db),
):
    # Authenticate the user before accepting the connection
    user_id = await websocket_auth.authenticate(websocket)

    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication failed")
        logger.warning("WebSocket connection rejected due to authentication failure")
        return

    await websocket.accept()

    # Any room change may add or remove an open room
    subscription = change_channel.subscribe(GAME_ROOMS_TABLE)
    relay_task = None

    try:
        await send_room_list(websocket, db, game_type)
        relay_task = asyncio.create_task(relay_room_list(websocket, db, subscription, game_type))

        # Keep connection alive until client disconnects
        while True:
            data = await websocket.receive_json()
            logger.info(f"Message received from user {user_id}: {data.get('type') if isinstance(data, dict) else data}")

    except WebSocketDisconnect:
        logger.info(f"User {user_id} left the room list")
    finally:
        change_channel.unsubscribe(subscription)
        if relay_task is not None:
            relay_task.cancel()


async def relay_room_list(
        websocket: WebSocket,
        db: Session,
        subscription: Subscription,
        game_type: Optional[GameType],
):
    """Re-send the open room list after each room change"""
    try:
        async for _event in subscription:
            await send_room_list(websocket, db, game_type)
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.info(f"Stopped relaying room list: {e}")

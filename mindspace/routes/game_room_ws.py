# mindspace/routes/game_room_ws.py
import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mindspace.crud.game_room import GAME_ROOMS_TABLE
from mindspace.database.base import get_db
from mindspace.database.models import RoomStatus
from mindspace.games.player_session import PlayerSession, MoveNotSavedError
from mindspace.websockets.auth import websocket_auth
from mindspace.websockets.channel import Subscription, change_channel
from mindspace.websockets.messages import GameWebSocketMessageType, WebSocketMessageType, WebSocketMessage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/game-rooms/{room_id}")
async def game_room_websocket(
        websocket: WebSocket,
        room_id: str,
        db: Session = Depends(get_db)
):
    # Authenticate the user before accepting the connection
    user_id = await websocket_auth.authenticate(websocket)
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication failed")
        return

    # Subscribe before the first read so no change slips in between
    subscription = change_channel.subscribe(GAME_ROOMS_TABLE, {"id": room_id})
    relay_task = None
    session = PlayerSession(db, room_id, user_id)

    try:
        room = session.load()
        if room is None:
            await websocket.close(code=4004, reason="Room not found")
            return

        if not room.is_participant(user_id):
            await websocket.close(code=4003, reason="Room is not available for user")
            return

        await websocket.accept()
        await send_room_state(websocket, session)

        relay_task = asyncio.create_task(relay_room_changes(websocket, session, subscription))

        await process_websocket_messages(websocket, session)

    except WebSocketDisconnect:
        logger.info(f"User {user_id} left room {room_id}")
    finally:
        change_channel.unsubscribe(subscription)
        if relay_task is not None:
            relay_task.cancel()


async def send_room_state(websocket: WebSocket, session: PlayerSession):
    message = WebSocketMessage(
        type=GameWebSocketMessageType.ROOM_STATE,
        room_id=session.room_id,
        content={"room": session.view()},
    )
    await websocket.send_json(message.to_dict())


async def send_game_error(websocket: WebSocket, session: PlayerSession, error_message: str):
    message = WebSocketMessage(
        type=GameWebSocketMessageType.GAME_ERROR,
        room_id=session.room_id,
        content={"message": error_message},
    )
    await websocket.send_json(message.to_dict())


async def process_websocket_messages(websocket: WebSocket, session: PlayerSession):
    """Apply this participant's moves; results come back through the change channel."""
    while True:
        data = await websocket.receive_json()
        if not isinstance(data, dict):
            continue

        message_type = data.get('type')
        logger.debug(f"Message received from {session.user_id} in room {session.room_id}: {message_type}")

        if message_type == GameWebSocketMessageType.GAME_MOVE:
            try:
                success, error_message, _ = session.play(data.get('move', {}))
            except MoveNotSavedError:
                await send_game_error(websocket, session, "Move could not be saved, please try again")
                continue

            if not success:
                await send_game_error(websocket, session, error_message)

        elif message_type == GameWebSocketMessageType.GET_ROOM_STATE:
            if session.load() is not None:
                await send_room_state(websocket, session)

        else:
            logger.info(f"Ignoring unknown message type {message_type!r} from {session.user_id}")


async def relay_room_changes(websocket: WebSocket, session: PlayerSession, subscription: Subscription):
    """Forward every change of the room to this participant and settle finished games."""
    try:
        async for event in subscription:
            try:
                room = session.observe(event.new)
            except SQLAlchemyError:
                session.db.rollback()
                logger.exception(f"Could not record game statistics for {session.user_id}")
                room = session.room

            update_message = WebSocketMessage(
                type=GameWebSocketMessageType.ROOM_UPDATE,
                room_id=session.room_id,
                content={"room": session.view(room)},
            )
            await websocket.send_json(update_message.to_dict())

            if room.status == RoomStatus.COMPLETED:
                ended_message = WebSocketMessage(
                    type=WebSocketMessageType.GAME_ENDED,
                    room_id=session.room_id,
                    content={"stats": session.game_stats(room)},
                )
                await websocket.send_json(ended_message.to_dict())

    except (WebSocketDisconnect, RuntimeError) as e:
        logger.info(f"Stopped relaying room {session.room_id} to {session.user_id}: {e}")

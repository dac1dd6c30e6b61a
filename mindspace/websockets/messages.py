from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder


class GameWebSocketMessageType:
    ROOM_STATE = "room_state"
    ROOM_UPDATE = "room_update"
    GET_ROOM_STATE = "get_room_state"
    GAME_MOVE = "game_move"
    GAME_ERROR = "game_error"


class WebSocketMessageType:
    ROOM_LIST_UPDATE = "room_list_update"
    GAME_ENDED = "game_ended"


class WebSocketMessage:
    def __init__(
            self,
            type: str,
            room_id: Optional[str] = None,
            user_id: Optional[str] = None,
            content: Optional[Dict[str, Any]] = None
    ):
        self.type = type
        self.room_id = room_id
        self.user_id = user_id
        self.content = content or {}

    def to_dict(self):
        """
        Convert the message to a dictionary for WebSocket transmission
        """
        message_dict = {"type": self.type}

        if self.room_id is not None:
            message_dict["room_id"] = self.room_id
        if self.user_id is not None:
            message_dict["user_id"] = self.user_id

        # Merge content
        message_dict.update(jsonable_encoder(self.content))

        return message_dict

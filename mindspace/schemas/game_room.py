# mindspace/schemas/game_room.py
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from mindspace.database.models import GameType, RoomStatus
from mindspace.schemas.game_state import GameState


class GameRoomCreate(BaseModel):
    game_type: GameType


class GameRoomUpdate(BaseModel):
    """Fields a single move may write back to the room row."""
    game_state: GameState
    status: RoomStatus = RoomStatus.IN_PROGRESS
    winner_id: Optional[str] = None
    completed_at: Optional[datetime] = None


class GameRoom(BaseModel):
    id: str
    game_type: GameType
    player1_id: str
    player2_id: Optional[str] = None
    game_state: GameState
    state_version: int = 0
    status: RoomStatus
    winner_id: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def is_participant(self, user_id: str) -> bool:
        return user_id is not None and user_id in (self.player1_id, self.player2_id)


class GameRoomView(BaseModel):
    """A room as shown to one user; game_state may hide the opponent's secrets."""
    id: str
    game_type: GameType
    player1_id: str
    player2_id: Optional[str] = None
    game_state: Dict[str, Any]
    status: RoomStatus
    winner_id: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

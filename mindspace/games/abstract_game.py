import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel

from mindspace.database.models import GameType, RoomStatus
from mindspace.schemas.game_room import GameRoom, GameRoomUpdate

logger = logging.getLogger(__name__)

MoveResult = Tuple[bool, Optional[str], Optional[GameRoomUpdate]]


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AbstractGameManager(ABC):
    """
    Abstract base class for all game managers.

    A manager wraps one snapshot of a persisted room and never writes
    anything itself: it turns a player's move into the update that should be
    written back to the room. Every client can rebuild the same manager from
    the same row and reach the same outcome.
    """
    game_type: GameType = None
    state_class: Type[BaseModel] = None

    def __init__(self, room: GameRoom):
        if room.game_type != self.game_type:
            raise ValueError(f"{type(self).__name__} cannot run a {room.game_type.value} room")

        self.room = room
        self.room_id = room.id
        self.game_state = room.game_state
        self.is_game_over = room.status == RoomStatus.COMPLETED
        self.winner = room.winner_id

    @classmethod
    def initial_state(cls) -> BaseModel:
        """State written into a freshly created room."""
        return cls.state_class()

    def process_move(self, player_id: str, move_data: Dict[str, Any]) -> MoveResult:
        """
        Validate a move against the room and compute the resulting update.

        Args:
            player_id: ID of the player making the move
            move_data: Dictionary containing move information

        Returns:
            Tuple of (success, error_message, update to write or None)
        """
        if self.room.status != RoomStatus.IN_PROGRESS:
            return self._reject(player_id, "Game is not in progress")

        if not self.room.is_participant(player_id):
            return self._reject(player_id, "You are not a player in this room")

        if not isinstance(move_data, dict):
            return self._reject(player_id, "Invalid move data")

        success, error_message, update = self._process_move(player_id, move_data)
        if not success:
            return self._reject(player_id, error_message)

        return success, None, update

    @abstractmethod
    def _process_move(self, player_id: str, move_data: Dict[str, Any]) -> MoveResult:
        """Game-specific validation; the room is known to be in progress."""
        pass

    @abstractmethod
    def check_game_over(self, game_state) -> Tuple[bool, Optional[str]]:
        """
        Check if the game is over.

        Returns:
            Tuple of (is_game_over, winner_id or None if draw)
        """
        pass

    @abstractmethod
    def get_state(self, user_id: str) -> Dict[str, Any]:
        """Get current game state for sending to user."""
        pass

    def get_game_stats(self) -> Dict[str, Any]:
        """Get game stats for sending to clients."""
        players = []
        for player_id in (self.room.player1_id, self.room.player2_id):
            if player_id is None:
                continue
            players.append({
                "user_id": player_id,
                "is_winner": self.winner == player_id,
                "score": 1 if self.winner == player_id else 0,
            })

        duration = None
        if self.room.completed_at is not None:
            duration = round((as_utc(self.room.completed_at) - as_utc(self.room.created_at)).total_seconds())

        return {
            "game_type": self.game_type.value,
            "room_id": self.room_id,
            "duration": duration,
            "winner_id": self.winner,
            "is_draw": self.is_game_over and self.winner is None,
            "players": players,
        }

    def build_update(self, game_state) -> GameRoomUpdate:
        """Wrap a new game state, completing the room if it is terminal."""
        is_game_over, winner = self.check_game_over(game_state)
        if not is_game_over:
            return GameRoomUpdate(game_state=game_state, status=RoomStatus.IN_PROGRESS)

        return GameRoomUpdate(
            game_state=game_state,
            status=RoomStatus.COMPLETED,
            winner_id=winner,
            completed_at=datetime.now(timezone.utc),
        )

    def next_room(self, update: GameRoomUpdate) -> GameRoom:
        """The room as it reads once ``update`` has been written."""
        return self.room.model_copy(update=dict(
            game_state=update.game_state,
            status=update.status,
            winner_id=update.winner_id,
            completed_at=update.completed_at,
        ))

    def player_slot(self, player_id: str) -> Optional[int]:
        if player_id is None:
            return None
        if player_id == self.room.player1_id:
            return 1
        if player_id == self.room.player2_id:
            return 2
        return None

    def player_for_slot(self, slot: int) -> Optional[str]:
        return self.room.player1_id if slot == 1 else self.room.player2_id

    def _reject(self, player_id: str, error_message: str) -> MoveResult:
        logger.info(f"Rejected move by {player_id} in room {self.room_id}: {error_message}")
        return False, error_message, None

# mindspace/database/models.py
from sqlalchemy import Column, Integer, String, DateTime, Enum, JSON
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone
import enum
import uuid


def utcnow():
    return datetime.now(timezone.utc)


def new_id():
    return str(uuid.uuid4())


class GameType(str, enum.Enum):
    TIC_TAC_TOE = "tic_tac_toe"
    ROCK_PAPER_SCISSORS = "rock_paper_scissors"


class RoomStatus(str, enum.Enum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


Base = declarative_base()


class GameRoom(Base):
    __tablename__ = "game_rooms"

    id = Column(String(36), primary_key=True, default=new_id)
    game_type = Column(Enum(GameType), nullable=False)

    # User ids come from the external auth service and are opaque strings
    player1_id = Column(String, nullable=False, index=True)
    player2_id = Column(String, nullable=True, index=True)

    game_state = Column(JSON, nullable=False, default=dict)
    # Bumped by every move write; moves are compare-and-set on it
    state_version = Column(Integer, nullable=False, default=0)
    status = Column(Enum(RoomStatus), default=RoomStatus.WAITING, nullable=False, index=True)
    winner_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<GameRoom(id='{self.id}', game_type='{self.game_type.value}', status='{self.status.value}')>"


class UserActivityStats(Base):
    __tablename__ = "user_activity_stats"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, unique=True, index=True, nullable=False)
    games_played = Column(Integer, default=0, nullable=False)
    games_won = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<UserActivityStats(user_id='{self.user_id}', played={self.games_played}, won={self.games_won})>"

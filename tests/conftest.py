from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mindspace.config import settings
from mindspace.database.base import get_db
from mindspace.database.models import Base, GameType, RoomStatus
from mindspace.games.game_manager_factory import GameManagerFactory
from mindspace.main import create_app
from mindspace.schemas.game_room import GameRoom


def make_token(user_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    payload = {"sub": user_id, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def make_room(
        game_type: GameType = GameType.TIC_TAC_TOE,
        status: RoomStatus = RoomStatus.IN_PROGRESS,
        player2_id: str = "bob",
        game_state=None,
) -> GameRoom:
    """A room snapshot as read from the store, without touching a database."""
    if game_state is None:
        game_state = GameManagerFactory.get_manager_class(game_type).initial_state()
    return GameRoom(
        id="room-1",
        game_type=game_type,
        player1_id="alice",
        player2_id=player2_id,
        game_state=game_state,
        status=status,
        created_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def app(session_factory):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client

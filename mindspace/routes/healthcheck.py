from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mindspace.crud.game_room import list_open_rooms
from mindspace.database.base import get_db

router = APIRouter()


@router.get("/healthcheck", response_model=dict[str, str])
def healthcheck(limit: int = 1, db: Session = Depends(get_db)):
    list_open_rooms(db, limit=limit)
    return dict(status="ok")

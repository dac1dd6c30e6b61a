# mindspace/crud/activity_stats.py
import logging

from sqlalchemy.orm import Session

from mindspace.database.models import UserActivityStats

logger = logging.getLogger(__name__)


def get_activity_stats(db: Session, user_id: str):
    return db.query(UserActivityStats).filter(UserActivityStats.user_id == user_id).first()


def record_game_played(db: Session, user_id: str, won: bool) -> UserActivityStats:
    """
    Count one finished game for a user, and one win when ``won``.

    This is a plain read-then-write increment with no record of which room
    was counted, so calling it twice for the same game counts it twice.
    """
    db_obj = get_activity_stats(db, user_id)

    if db_obj:
        db_obj.games_played += 1
        if won:
            db_obj.games_won += 1
    else:
        db_obj = UserActivityStats(
            user_id=user_id,
            games_played=1,
            games_won=1 if won else 0,
        )
        db.add(db_obj)

    db.commit()
    db.refresh(db_obj)

    logger.info(f"Stats for {user_id}: played={db_obj.games_played} won={db_obj.games_won}")
    return db_obj

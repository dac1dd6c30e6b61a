from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mindspace.database.base import get_db
from mindspace.crud.activity_stats import get_activity_stats
from mindspace.middleware.auth import get_current_user_id
from mindspace.schemas.activity_stats import ActivityStatsResponse
from mindspace.serializers.activity_stats import serialize_activity_stats

router = APIRouter(
    prefix="/activity-stats",
    tags=["activity-stats"],
)


@router.get("/me", response_model=ActivityStatsResponse)
def read_my_stats(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return serialize_activity_stats(user_id, get_activity_stats(db, user_id))


@router.get("/{stats_user_id}", response_model=ActivityStatsResponse)
def read_user_stats(
        stats_user_id: str,
        user_id: str = Depends(get_current_user_id),
        db: Session = Depends(get_db),
):
    """Games played and won by any user; stats are public within the app."""
    return serialize_activity_stats(stats_user_id, get_activity_stats(db, stats_user_id))

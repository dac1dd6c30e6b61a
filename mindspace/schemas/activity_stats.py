# mindspace/schemas/activity_stats.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ActivityStatsResponse(BaseModel):
    user_id: str
    games_played: int = 0
    games_won: int = 0
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

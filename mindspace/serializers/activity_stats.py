from mindspace.schemas.activity_stats import ActivityStatsResponse


def serialize_activity_stats(user_id: str, stats) -> ActivityStatsResponse:
    if stats is None:
        return ActivityStatsResponse(user_id=user_id)

    return ActivityStatsResponse(
        user_id=stats.user_id,
        games_played=stats.games_played,
        games_won=stats.games_won,
        updated_at=stats.updated_at,
    )

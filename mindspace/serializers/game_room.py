from fastapi.encoders import jsonable_encoder

from mindspace.schemas.game_room import GameRoom
from mindspace.schemas.game_state import parse_game_state


def serialize_game_room(room) -> GameRoom:
    return GameRoom(
        id=room.id,
        game_type=room.game_type,
        player1_id=room.player1_id,
        player2_id=room.player2_id,
        game_state=parse_game_state(room.game_state),
        state_version=room.state_version,
        status=room.status,
        winner_id=room.winner_id,
        created_at=room.created_at,
        completed_at=room.completed_at,
    )


def serialize_game_room_row(room) -> dict:
    """Plain JSON row, the shape published on the change channel."""
    return jsonable_encoder(serialize_game_room(room))

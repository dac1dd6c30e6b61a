# mindspace/schemas/game_state.py
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

Mark = Literal["X", "O"]
Choice = Literal["rock", "paper", "scissors"]

BOARD_SIZE = 9


class TicTacToeState(BaseModel):
    game_type: Literal["tic_tac_toe"] = "tic_tac_toe"
    board: List[Optional[Mark]] = Field(
        default_factory=lambda: [None] * BOARD_SIZE,
        min_length=BOARD_SIZE,
        max_length=BOARD_SIZE,
    )
    current_turn: Mark = "X"


class RockPaperScissorsState(BaseModel):
    game_type: Literal["rock_paper_scissors"] = "rock_paper_scissors"
    player1_choice: Optional[Choice] = None
    player2_choice: Optional[Choice] = None


GameState = Annotated[
    Union[TicTacToeState, RockPaperScissorsState],
    Field(discriminator="game_type"),
]

game_state_adapter = TypeAdapter(GameState)


def parse_game_state(payload: dict) -> Union[TicTacToeState, RockPaperScissorsState]:
    """Validate a persisted game_state payload into its game-specific model."""
    return game_state_adapter.validate_python(payload)

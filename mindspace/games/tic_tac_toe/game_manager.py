# mindspace/games/tic_tac_toe/game_manager.py
from typing import Any, Dict, List, Optional, Tuple

from mindspace.database.models import GameType, RoomStatus
from mindspace.games.abstract_game import AbstractGameManager, MoveResult
from mindspace.schemas.game_state import BOARD_SIZE, TicTacToeState

# Win patterns: rows, columns, diagonals
WIN_PATTERNS = [
    [0, 1, 2], [3, 4, 5], [6, 7, 8],  # rows
    [0, 3, 6], [1, 4, 7], [2, 5, 8],  # columns
    [0, 4, 8], [2, 4, 6],  # diagonals
]


def find_winning_symbol(board: List[Optional[str]]) -> Optional[str]:
    """Symbol owning a complete line, if any. Pure function of the board."""
    for pattern in WIN_PATTERNS:
        if (board[pattern[0]] is not None and
                board[pattern[0]] == board[pattern[1]] == board[pattern[2]]):
            return board[pattern[0]]
    return None


class TicTacToeManager(AbstractGameManager):
    """Implementation of Tic Tac Toe game logic."""
    game_type = GameType.TIC_TAC_TOE
    state_class = TicTacToeState

    def __init__(self, room):
        super().__init__(room)
        # Symbols for players (X always goes first)
        self.symbols = {room.player1_id: "X"}
        if room.player2_id is not None:
            self.symbols[room.player2_id] = "O"

    def _process_move(self, player_id: str, move_data: Dict[str, Any]) -> MoveResult:
        """Process a player's move."""
        state: TicTacToeState = self.game_state

        # Verify it's the player's turn
        if self.symbols[player_id] != state.current_turn:
            return False, "Not your turn", None

        # Validate move data
        if 'position' not in move_data:
            return False, "Invalid move data, position required", None

        position = move_data['position']

        # Validate position
        if isinstance(position, bool) or not isinstance(position, int) or position < 0 or position >= BOARD_SIZE:
            return False, "Invalid position", None

        # Check if position is already taken
        if state.board[position] is not None:
            return False, "Position already taken", None

        # Make the move
        board = list(state.board)
        board[position] = state.current_turn

        new_state = TicTacToeState(
            board=board,
            current_turn="O" if state.current_turn == "X" else "X",
        )
        return True, None, self.build_update(new_state)

    def check_game_over(self, game_state: TicTacToeState) -> Tuple[bool, Optional[str]]:
        """Check if the game is over (win or draw)."""
        winning_symbol = find_winning_symbol(game_state.board)
        if winning_symbol is not None:
            return True, self.room.player1_id if winning_symbol == "X" else self.room.player2_id

        # Check for draw (all positions filled)
        if None not in game_state.board:
            return True, None

        return False, None

    def get_state(self, user_id: str) -> Dict[str, Any]:
        """Get current game state for sending to clients."""
        state: TicTacToeState = self.game_state
        your_symbol = self.symbols.get(user_id)
        return {
            "game_type": self.game_type.value,
            "board": state.board,
            "current_turn": state.current_turn,
            "your_symbol": your_symbol,
            "is_your_turn": (
                    self.room.status == RoomStatus.IN_PROGRESS and
                    your_symbol is not None and
                    your_symbol == state.current_turn
            ),
            "symbols": self.symbols,
        }

    def get_game_stats(self) -> Dict[str, Any]:
        """Get statistics about the completed game"""
        stats = super().get_game_stats()
        board = self.game_state.board

        for player_stats in stats["players"]:
            symbol = self.symbols[player_stats["user_id"]]
            player_stats["symbol"] = symbol
            player_stats["moves"] = board.count(symbol)

        stats["total_moves"] = BOARD_SIZE - board.count(None)
        return stats

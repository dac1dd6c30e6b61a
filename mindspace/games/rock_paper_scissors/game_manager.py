# mindspace/games/rock_paper_scissors/game_manager.py
from typing import Any, Dict, Optional, Tuple

from mindspace.database.models import GameType, RoomStatus
from mindspace.games.abstract_game import AbstractGameManager, MoveResult
from mindspace.schemas.game_state import RockPaperScissorsState

# Each choice and the one it defeats
BEATS = {
    "rock": "scissors",
    "scissors": "paper",
    "paper": "rock",
}


def resolve_round(player1_choice: str, player2_choice: str) -> Optional[int]:
    """Slot (1 or 2) of the winning choice, None for a draw."""
    if player1_choice == player2_choice:
        return None
    return 1 if BEATS[player1_choice] == player2_choice else 2


class RockPaperScissorsManager(AbstractGameManager):
    """
    Rock-Paper-Scissors with one hidden choice per player.

    The round resolves in the same write that stores the second choice, so
    the room must be freshly read before calling ``process_move``: the first
    choice is only known from the persisted row.
    """
    game_type = GameType.ROCK_PAPER_SCISSORS
    state_class = RockPaperScissorsState

    def _process_move(self, player_id: str, move_data: Dict[str, Any]) -> MoveResult:
        state: RockPaperScissorsState = self.game_state
        slot = self.player_slot(player_id)

        choice = move_data.get('choice')
        if not isinstance(choice, str) or choice not in BEATS:
            return False, "Invalid choice, expected rock, paper or scissors", None

        slot_field = f"player{slot}_choice"
        if getattr(state, slot_field) is not None:
            return False, "You have already chosen", None

        new_state = state.model_copy(update={slot_field: choice})
        return True, None, self.build_update(new_state)

    def check_game_over(self, game_state: RockPaperScissorsState) -> Tuple[bool, Optional[str]]:
        if game_state.player1_choice is None or game_state.player2_choice is None:
            return False, None

        winning_slot = resolve_round(game_state.player1_choice, game_state.player2_choice)
        if winning_slot is None:
            return True, None
        return True, self.player_for_slot(winning_slot)

    def get_state(self, user_id: str) -> Dict[str, Any]:
        """Choices stay hidden from everyone but their owner until the round is over."""
        state: RockPaperScissorsState = self.game_state
        slot = self.player_slot(user_id)
        revealed = self.room.status == RoomStatus.COMPLETED

        choices = {}
        for current in (1, 2):
            choice = getattr(state, f"player{current}_choice")
            choices[f"player{current}_choice"] = choice if revealed or current == slot else None
            choices[f"player{current}_has_chosen"] = choice is not None

        return {
            "game_type": self.game_type.value,
            **choices,
            "your_choice": getattr(state, f"player{slot}_choice") if slot else None,
        }

    def get_game_stats(self) -> Dict[str, Any]:
        stats = super().get_game_stats()
        for player_stats in stats["players"]:
            slot = self.player_slot(player_stats["user_id"])
            player_stats["choice"] = getattr(self.game_state, f"player{slot}_choice")
        return stats

import importlib
import logging
from typing import Dict, Type

from mindspace.database.models import GameType
from mindspace.games.abstract_game import AbstractGameManager

logger = logging.getLogger(__name__)


class GameManagerFactory:
    """Factory for creating game manager instances based on game type."""

    # Registry of game managers
    _game_managers: Dict[GameType, Type[AbstractGameManager]] = {}

    # Package under mindspace.games holding each game's manager
    game_modules = {
        GameType.TIC_TAC_TOE: "tic_tac_toe",
        GameType.ROCK_PAPER_SCISSORS: "rock_paper_scissors",
    }

    @classmethod
    def register_game(cls, game_type: GameType, manager_class: Type[AbstractGameManager]):
        """Register a game manager class for a specific game type."""
        cls._game_managers[game_type] = manager_class

    @classmethod
    def get_manager_class(cls, game_type: GameType) -> Type[AbstractGameManager]:
        game_type = GameType(game_type)
        if game_type in cls._game_managers:
            return cls._game_managers[game_type]

        if game_type not in cls.game_modules:
            raise ValueError(f"Game {game_type.value} not supported")

        module_path = f"mindspace.games.{cls.game_modules[game_type]}.game_manager"
        module = importlib.import_module(module_path)

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if (isinstance(attr, type) and
                    issubclass(attr, AbstractGameManager) and
                    attr is not AbstractGameManager and
                    attr.game_type == game_type):
                cls.register_game(game_type, attr)
                logger.debug(f"Registered {attr.__name__} for {game_type.value}")
                return attr

        raise ValueError(f"No game manager found in {module_path}")

    @classmethod
    def create_game_manager(cls, room) -> AbstractGameManager:
        """
        Create a game manager for a room snapshot.

        Args:
            room: GameRoom schema as read from the store

        Returns:
            Game manager instance for the room's game type
        """
        return cls.get_manager_class(room.game_type)(room)

"""
Controller layer for the Klondike engine.

The controller is the single entry point through which a presentation layer
drives a game. It owns the table, the undo history and the input lock.
"""

from .game_controller import GameController, DragState
from .decorators import guarded, logged_action

__all__ = [
    'GameController',
    'DragState',
    'guarded',
    'logged_action',
]

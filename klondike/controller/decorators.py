"""
Decorators for controller layer functionality.

This module provides the decorator that serialises inbound operations and
rolls the table back when one of them fails, and a logging decorator.
"""

import functools
from typing import Any, Callable, TypeVar

from ..core import GamePhase, GameState

F = TypeVar('F', bound=Callable[..., Any])


def guarded(*accepted_phases: GamePhase, rejected: Any = False) -> Callable[[F], F]:
    """
    Decorator that admits at most one in-flight operation.

    The decorated coroutine only runs when the controller's phase is one of
    ``accepted_phases`` (AWAITING_INPUT by default); otherwise the call is a
    no-op returning ``rejected``. While it runs the phase is BUSY. If it
    raises or is cancelled, the table and the undo history are restored to
    their state on entry and the exception is re-raised. On every path the
    phase is settled again so input re-opens.

    Args:
        accepted_phases: Phases in which the operation may start.
        rejected: Value returned when the operation is refused.

    Returns:
        Decorator function.

    Example:
        @guarded()
        async def on_deck_interact(self) -> bool:
            ...
    """
    phases = accepted_phases or (GamePhase.AWAITING_INPUT,)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            game_state = getattr(self, '_game_state', None)
            if not isinstance(game_state, GameState):
                raise TypeError(
                    f"@guarded requires '_game_state' to be of type GameState. "
                    f"Got {type(game_state).__name__} instead."
                )

            if self._phase not in phases:
                self._logger.debug(f"Input locked ({self._phase.value}), ignoring {func.__name__}")
                return rejected

            original_snapshot = game_state.create_snapshot()
            history = getattr(self, '_history', None)
            checkpoint = history.checkpoint() if history is not None else None
            self._phase = GamePhase.BUSY
            try:
                return await func(self, *args, **kwargs)
            except BaseException as e:
                # includes asyncio.CancelledError
                self._game_state = game_state
                game_state.restore_from_snapshot(original_snapshot)
                if checkpoint is not None:
                    history.rewind(checkpoint)
                self._logger.error(f"{func.__name__} rolled back due to {type(e).__name__}: {e}")
                raise
            finally:
                self._settle_phase()

        return wrapper
    return decorator


def logged_action(action_name: str = None):
    """
    Decorator to automatically log controller actions.

    Works on plain methods and on coroutine methods.

    Args:
        action_name: Optional custom name for the action. If not provided,
                    the function name will be used.

    Returns:
        Decorator function.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            logger = getattr(self, '_logger', None)
            name = action_name or func.__name__

            if logger:
                logger.debug(f"Starting {name}")

            try:
                result = await func(self, *args, **kwargs)
                if logger:
                    logger.debug(f"Completed {name}: {result!r}")
                return result
            except Exception as e:
                if logger:
                    logger.error(f"Failed {name}: {str(e)}")
                raise

        return wrapper
    return decorator

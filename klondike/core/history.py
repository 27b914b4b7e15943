"""
Undo/redo ledger.

Two stacks: executed commands and undone commands. Executing a new command
always clears the redo stack.
"""

import logging
from typing import List, Optional, Tuple

from .commands import Command
from .events import EventBus, EventType

Checkpoint = Tuple[Tuple[Command, ...], Tuple[Command, ...]]


class History:
    """Two-stack history of executed commands."""

    def __init__(self, event_bus: EventBus, logger: Optional[logging.Logger] = None):
        self._event_bus = event_bus
        self._logger = logger or logging.getLogger(__name__)
        self._history: List[Command] = []
        self._redo: List[Command] = []

    @property
    def history_depth(self) -> int:
        return len(self._history)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    async def execute(self, command: Command) -> None:
        """
        Run a command's forward effect and record it.

        A command that raises is not recorded and the redo stack is kept.
        """
        await command.execute()
        self._history.append(command)
        self._redo.clear()
        self._logger.debug(f"Executed {command!r}")
        self._announce()

    async def undo(self) -> bool:
        """
        Revert the most recent command.

        Returns:
            False if there was nothing to undo.
        """
        if not self._history:
            return False
        command = self._history.pop()
        try:
            await command.undo()
        except Exception:
            self._history.append(command)
            raise
        self._redo.append(command)
        self._logger.debug(f"Undid {command!r}")
        self._announce()
        return True

    async def redo(self) -> bool:
        """
        Re-apply the most recently undone command.

        Returns:
            False if there was nothing to redo.
        """
        if not self._redo:
            return False
        command = self._redo.pop()
        try:
            await command.execute()
        except Exception:
            self._redo.append(command)
            raise
        self._history.append(command)
        self._logger.debug(f"Redid {command!r}")
        self._announce()
        return True

    def checkpoint(self) -> Checkpoint:
        """Capture both stacks so a failed operation can rewind to them."""
        return tuple(self._history), tuple(self._redo)

    def rewind(self, checkpoint: Checkpoint) -> None:
        """Put both stacks back as they were when ``checkpoint`` was taken."""
        history, redo = checkpoint
        self._history[:] = history
        self._redo[:] = redo
        self._logger.debug(f"Rewound history to depth {len(history)}")
        self._announce()

    def clear(self) -> None:
        """Forget every command."""
        self._history.clear()
        self._redo.clear()
        self._announce()

    def _announce(self) -> None:
        self._event_bus.emit_simple(
            EventType.HISTORY_UPDATE,
            history_depth=len(self._history),
            redo_depth=len(self._redo),
        )

"""Input parsing for the Klondike CLI.

Turns one line of user input into a ``CLICommand``. Malformed input raises
``click.BadParameter`` so the game loop can report it and ask again.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

import click

_ALIASES: Dict[str, str] = {
    'd': 'deal', 'deal': 'deal', 'hit': 'deal',
    'm': 'move', 'move': 'move',
    'c': 'collect', 'collect': 'collect',
    'ff': 'finish', 'finish': 'finish',
    'u': 'undo', 'undo': 'undo',
    'r': 'redo', 'redo': 'redo',
    's': 'save', 'save': 'save',
    'l': 'load', 'load': 'load',
    'n': 'new', 'new': 'new',
    'h': 'help', 'help': 'help', '?': 'help',
    'q': 'quit', 'quit': 'quit', 'exit': 'quit',
}

# command -> (min args, max args)
_ARITY: Dict[str, Tuple[int, int]] = {
    'deal': (0, 0),
    'move': (2, 3),
    'collect': (1, 1),
    'finish': (0, 0),
    'undo': (0, 0),
    'redo': (0, 0),
    'save': (0, 1),
    'load': (1, 1),
    'new': (0, 0),
    'help': (0, 0),
    'quit': (0, 0),
}


@dataclass(frozen=True)
class CLICommand:
    """A parsed input line."""

    name: str
    args: Tuple[str, ...] = ()

    @property
    def move_count(self) -> int:
        """Number of cards named by a ``move`` command."""
        if len(self.args) < 3:
            return 1
        return int(self.args[2])


class CLIInputHandler:
    """CLI input handler."""

    @staticmethod
    def parse(line: str) -> CLICommand:
        """Parse one input line.

        Raises:
            click.BadParameter: Unknown command or wrong arguments
        """
        words = line.strip().split()
        if not words:
            raise click.BadParameter("empty command, type 'help' for the command list")

        name = _ALIASES.get(words[0].lower())
        if name is None:
            raise click.BadParameter(f"unknown command {words[0]!r}, type 'help' for the command list")

        args = tuple(words[1:])
        low, high = _ARITY[name]
        if not low <= len(args) <= high:
            raise click.BadParameter(f"'{name}' takes {low}..{high} arguments, got {len(args)}")

        if name == 'move' and len(args) == 3:
            if not args[2].isdigit() or int(args[2]) < 1:
                raise click.BadParameter(f"card count must be a positive number, got {args[2]!r}")

        return CLICommand(name=name, args=args)

"""Command line interface for Klondike.

This package provides the terminal front end:
- the CLI game loop
- the renderer (display logic)
- the input handler (command parsing)

Run with ``klondike`` or ``python -m klondike.ui.cli``.
"""

from .cli_game import KlondikeCLI, main
from .render import CLIRenderer
from .input_handler import CLICommand, CLIInputHandler

__all__ = [
    'KlondikeCLI',
    'main',
    'CLIRenderer',
    'CLICommand',
    'CLIInputHandler',
]

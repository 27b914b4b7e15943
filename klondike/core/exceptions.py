"""
Klondike engine exception definitions.

Construction and data errors are raised; illegal moves are not errors and
never reach this module.
"""


class SolitaireError(Exception):
    """Base class for all engine errors."""
    pass


class InvalidSuitError(SolitaireError, ValueError):
    """A suit index or name that names no suit."""
    pass


class InvalidCardError(SolitaireError, ValueError):
    """A rank outside 1..13 or a card code outside 0..127."""
    pass


class IllegalSequenceError(SolitaireError):
    """A command was asked to run while its precondition does not hold."""
    pass


class EmptyPileError(IllegalSequenceError):
    """Attempt to take cards from a pile that does not hold enough."""
    pass


class UnknownPileError(SolitaireError, KeyError):
    """A pile id that does not name any pile on the table."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class GameStateError(SolitaireError):
    """The game state violates an integrity invariant."""
    pass


class GameConfigError(SolitaireError, ValueError):
    """Invalid game settings."""
    pass


class SnapshotError(SolitaireError):
    """Malformed snapshot or save payload."""
    pass


class SerializationError(SnapshotError):
    """The state could not be turned into a payload."""
    pass


class DeserializationError(SnapshotError):
    """A payload could not be turned back into a state."""
    pass

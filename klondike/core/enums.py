"""
Enumerations used throughout the Klondike engine.

Contains suits, colours, ranks, pile kinds, action tags and the controller
phase machine.
"""

from enum import Enum, IntEnum
from typing import Union

from .exceptions import InvalidSuitError


class Color(IntEnum):
    """Card colour, derived from the suit index."""

    BLACK = 0
    RED = 1


class Suit(Enum):
    """
    The four suits of a standard deck.

    Values are chosen so that ``value % 2`` gives the colour: clubs and
    spades are black, hearts and diamonds are red.
    """

    CLUBS = 0
    HEARTS = 1
    SPADES = 2
    DIAMONDS = 3

    @property
    def color(self) -> Color:
        """Colour of the suit."""
        return Color(self.value % 2)

    @property
    def symbol(self) -> str:
        """Unicode symbol of the suit."""
        return _SUIT_SYMBOLS[self]

    @property
    def initial(self) -> str:
        """Single upper-case letter used in text card labels."""
        return self.name[0]

    @classmethod
    def parse(cls, value: Union["Suit", int, str]) -> "Suit":
        """
        Build a suit from an index, a name or an initial.

        Args:
            value: A Suit, an index in [0..3], or a case-insensitive suit
                name or prefix such as ``"hearts"``, ``"Spa"`` or ``"d"``.

        Returns:
            The matching suit.

        Raises:
            InvalidSuitError: If the value names no suit.
        """
        if isinstance(value, cls):
            return value
        # bool is an int subclass but never a meaningful suit index
        if isinstance(value, int) and not isinstance(value, bool):
            if 0 <= value <= 3:
                return cls(value)
            raise InvalidSuitError(f"Suit index must be between 0 and 3, got {value}")
        if isinstance(value, str) and value.strip():
            wanted = value.strip().upper()
            for suit in cls:
                if suit.name.startswith(wanted):
                    return suit
        raise InvalidSuitError(f"Invalid suit: {value!r}")


_SUIT_SYMBOLS = {
    Suit.CLUBS: "♣",
    Suit.HEARTS: "♥",
    Suit.SPADES: "♠",
    Suit.DIAMONDS: "♦",
}


class Rank(IntEnum):
    """Card ranks, ace low."""

    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    @property
    def label(self) -> str:
        """Short text label: A, 2..10, J, Q, K."""
        if self in _FACE_LABELS:
            return _FACE_LABELS[self]
        return str(self.value)


_FACE_LABELS = {
    Rank.ACE: "A",
    Rank.JACK: "J",
    Rank.QUEEN: "Q",
    Rank.KING: "K",
}


class PileKind(Enum):
    """Discriminator tag carried by every pile snapshot."""

    DECK = "deck"
    WASTE = "waste"
    TABLEAU = "tableau"
    FOUNDATION = "foundation"


class ActionTag(Enum):
    """
    Why a notification was published.

    Subscribers such as scoring use the tag to tell a player's move from a
    deal, an automatic move or the replay of an undo.
    """

    USER_ACTION = "user-action"
    UNDO_USER_ACTION = "undo-user-action"
    DEAL = "deal"
    HIT = "hit"
    UNDO_HIT = "undo-hit"
    COLLECT_WASTE = "collect-waste"
    UNDO_COLLECT_WASTE = "undo-collect-waste"
    AUTO_FINISH = "auto-finish"
    UNDO_AUTO_FINISH = "undo-auto-finish"
    DRAG_START = "drag-start"
    DRAG_OVER = "drag-over"
    DROP = "drop"
    SYSTEM_MESSAGE = "system-message"

    @property
    def is_undo(self) -> bool:
        """True for tags published while reverting a command."""
        return self.value.startswith("undo-")


class GamePhase(Enum):
    """
    Controller phase machine.

    Only AWAITING_INPUT accepts moves. BUSY is held while an operation is in
    flight and is what keeps a second operation from starting.
    """

    NOT_STARTED = "not_started"
    DEALING = "dealing"
    AWAITING_INPUT = "awaiting_input"
    BUSY = "busy"
    WON = "won"

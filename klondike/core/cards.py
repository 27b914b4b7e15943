"""
Playing card value type.

A Card is immutable: turning it over produces a new Card. Identity is rank
and suit only, so a face-down and a face-up ace of hearts compare equal.
"""

from dataclasses import dataclass
from typing import Iterable, List, Union

from .enums import Color, Rank, Suit
from .exceptions import InvalidCardError, InvalidSuitError

MAX_CARD_CODE = 127


@dataclass(frozen=True, eq=False)
class Card:
    """
    A single playing card.

    Attributes:
        rank: Rank in [1..13], ace low.
        suit: One of the four suits. Accepts anything ``Suit.parse`` accepts.
        face_up: Orientation of the card.
    """

    rank: Rank
    suit: Suit
    face_up: bool = False

    def __post_init__(self):
        """Validate and normalise the rank and suit."""
        rank = self.rank
        if isinstance(rank, bool) or not isinstance(rank, int):
            raise InvalidCardError(f"Card rank must be an integer, got {rank!r}")
        if not 1 <= rank <= 13:
            raise InvalidCardError(f"Invalid card rank: {rank}")
        try:
            suit = Suit.parse(self.suit)
        except InvalidSuitError as e:
            raise InvalidCardError(str(e)) from e
        object.__setattr__(self, "rank", Rank(rank))
        object.__setattr__(self, "suit", suit)
        object.__setattr__(self, "face_up", bool(self.face_up))

    @property
    def color(self) -> Color:
        """Colour of the card."""
        return self.suit.color

    def is_opposite_color(self, other: "Card") -> bool:
        """Return True if the two cards have different colours."""
        return self.color != other.color

    def with_face(self, face_up: bool) -> "Card":
        """Return the same card with the given orientation."""
        if self.face_up == bool(face_up):
            return self
        return Card(self.rank, self.suit, face_up)

    def flipped(self) -> "Card":
        """Return the same card turned over."""
        return Card(self.rank, self.suit, not self.face_up)

    def encode(self) -> int:
        """
        Pack the card into a 7-bit integer.

        Layout is ``(rank - 1) << 3 | suit << 1 | face_up``.

        Returns:
            int: The card code in [0..127].
        """
        return (self.rank - 1) << 3 | self.suit.value << 1 | int(self.face_up)

    @classmethod
    def decode(cls, code: int) -> "Card":
        """
        Rebuild a card from its integer code.

        Args:
            code: A value produced by ``encode``.

        Returns:
            Card: The decoded card.

        Raises:
            InvalidCardError: If the code is not an integer in [0..127] or
                encodes a rank above 13.
        """
        if isinstance(code, bool) or not isinstance(code, int):
            raise InvalidCardError(f"Card code must be an integer, got {code!r}")
        if not 0 <= code <= MAX_CARD_CODE:
            raise InvalidCardError(
                f"Card code must be between 0 and {MAX_CARD_CODE}, got {code}"
            )
        return cls((code >> 3) + 1, Suit((code >> 1) & 3), bool(code & 1))

    @classmethod
    def from_str(cls, card_str: str, face_up: bool = False) -> "Card":
        """
        Parse a text label such as ``"AH"``, ``"10c"`` or ``"TS"``.

        Args:
            card_str: Rank label followed by a suit initial.
            face_up: Orientation of the new card.

        Returns:
            Card: The parsed card.

        Raises:
            InvalidCardError: If the label cannot be parsed.
        """
        text = card_str.strip().upper()
        if len(text) < 2:
            raise InvalidCardError(f"Invalid card string: {card_str!r}")
        rank_str, suit_str = text[:-1], text[-1]
        rank_map = {rank.label: rank for rank in Rank}
        rank_map["T"] = Rank.TEN
        if rank_str not in rank_map:
            raise InvalidCardError(f"Invalid card rank: {rank_str!r}")
        try:
            suit = Suit.parse(suit_str)
        except InvalidSuitError as e:
            raise InvalidCardError(str(e)) from e
        return cls(rank_map[rank_str], suit, face_up)

    @property
    def symbol_label(self) -> str:
        """Label with the suit symbol, e.g. ``"A♥"``."""
        return f"{self.rank.label}{self.suit.symbol}"

    def __str__(self) -> str:
        return f"{self.rank.label}{self.suit.initial}"

    def __repr__(self) -> str:
        orientation = "up" if self.face_up else "down"
        return f"Card({self.rank.name}, {self.suit.name}, {orientation})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Card):
            return NotImplemented
        return self.rank == other.rank and self.suit == other.suit

    def __hash__(self) -> int:
        return hash((self.rank, self.suit))


CardRun = Union[Card, Iterable[Card]]


def as_run(candidate: CardRun) -> List[Card]:
    """Normalise a single card or an ordered run into a list, bottom first."""
    if isinstance(candidate, Card):
        return [candidate]
    return list(candidate)


def is_descending_alternating(cards: List[Card]) -> bool:
    """
    Check that a run is face-up, alternates colour and descends by one.

    Args:
        cards: Cards ordered bottom first.

    Returns:
        bool: True for a run that may move as a unit between tableaux.
    """
    if not cards or not all(card.face_up for card in cards):
        return False
    for lower, upper in zip(cards, cards[1:]):
        if upper.rank != lower.rank - 1 or not upper.is_opposite_color(lower):
            return False
    return True


def full_deck_codes() -> List[int]:
    """Card codes of a fresh face-down deck, in build order."""
    return [((i % 13) << 3) | ((i % 4) << 1) for i in range(52)]

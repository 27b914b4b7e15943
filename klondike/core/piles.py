"""
Pile family for Klondike.

Piles are ordered stacks of cards, bottom at index 0. Each variant applies
its own orientation rule when a card is added and its own legality rule in
``allow_drop``. Draggability is never stored: it is computed from the pile
variant and the card's position whenever it is asked for.
"""

import random
from typing import ClassVar, Iterable, List, Optional, Sequence, Tuple, Union

from .cards import Card, CardRun, as_run, full_deck_codes, is_descending_alternating
from .enums import PileKind, Rank, Suit
from .exceptions import DeserializationError, EmptyPileError
from .snapshot.types import PileSnapshot

NUM_TABLEAUX = 7
NUM_FOUNDATIONS = 4
FULL_DECK_SIZE = 52
FULL_FOUNDATION_SIZE = 13


class Pile:
    """
    Base pile: holds cards and accepts nothing.

    Subclasses override ``_orient`` to fix the orientation of added cards,
    ``allow_drop`` for legality and ``is_draggable`` for what may be picked up.
    """

    kind: ClassVar[PileKind]
    may_accept_drop: ClassVar[bool] = False

    def __init__(self, cards: Optional[Iterable[Card]] = None, slot_index: Optional[int] = None):
        """
        Initialise the pile.

        Args:
            cards: Initial cards, bottom first. Stored exactly as given.
            slot_index: Slot of a tableau or foundation.
        """
        self._cards: List[Card] = list(cards or [])
        self.slot_index = slot_index

    @property
    def cards(self) -> Tuple[Card, ...]:
        """Cards in the pile, bottom first."""
        return tuple(self._cards)

    @property
    def pile_id(self) -> str:
        """Identifier used by the controller's inbound operations."""
        return self.kind.value

    @property
    def is_empty(self) -> bool:
        return not self._cards

    @property
    def top_card(self) -> Optional[Card]:
        """The top card, or None if the pile is empty."""
        return self._cards[-1] if self._cards else None

    def card_at(self, index: int) -> Optional[Card]:
        """Card at a non-negative position, or None if out of range."""
        if 0 <= index < len(self._cards):
            return self._cards[index]
        return None

    def _orient(self, card: Card) -> Card:
        """Orientation rule applied to every added card."""
        return card

    def add_card(self, card: Card) -> None:
        """Put a card on top of the pile."""
        self._cards.append(self._orient(card))

    def add_cards(self, cards: Iterable[Card]) -> None:
        """Put cards on top of the pile, bottom first."""
        for card in cards:
            self.add_card(card)

    def remove_top_card(self) -> Card:
        """
        Take the top card off the pile.

        Returns:
            Card: The removed card.

        Raises:
            EmptyPileError: If the pile is empty.
        """
        if not self._cards:
            raise EmptyPileError(f"Cannot remove a card from empty {self.pile_id}")
        return self._cards.pop()

    def remove_top_cards(self, count: int) -> List[Card]:
        """
        Take the top ``count`` cards off the pile, keeping their order.

        Args:
            count: Number of cards to take.

        Returns:
            List[Card]: The removed segment, bottom first.

        Raises:
            EmptyPileError: If the pile holds fewer than ``count`` cards.
        """
        if count < 0:
            raise ValueError("Count must be non-negative")
        if count > len(self._cards):
            raise EmptyPileError(
                f"Cannot remove {count} cards from {self.pile_id}, only {len(self._cards)} present"
            )
        if count == 0:
            return []
        segment = self._cards[-count:]
        del self._cards[-count:]
        return segment

    def allow_drop(self, candidate: CardRun) -> bool:
        """Whether the candidate card or run may be dropped here."""
        return False

    def is_draggable(self, index: int) -> bool:
        """Whether the card at ``index`` may be picked up."""
        return False

    def draggable_flags(self) -> Tuple[bool, ...]:
        """Draggability of every card, bottom first."""
        return tuple(self.is_draggable(i) for i in range(len(self._cards)))

    def to_snapshot(self) -> PileSnapshot:
        """Take an immutable snapshot of the pile."""
        return PileSnapshot(
            tag=self.kind,
            cards=tuple(card.encode() for card in self._cards),
            slot_index=self.slot_index,
            draggable=self.draggable_flags(),
        )

    @classmethod
    def from_snapshot(cls, snapshot: PileSnapshot) -> "Pile":
        """Rebuild a pile of this variant from a snapshot of the same tag."""
        if snapshot.tag != cls.kind:
            raise DeserializationError(
                f"Cannot build {cls.__name__} from a {snapshot.tag.value} snapshot"
            )
        return cls(cards=snapshot.decoded_cards(), slot_index=snapshot.slot_index)

    def load(self, snapshot: PileSnapshot) -> None:
        """Replace this pile's contents in place with a snapshot's."""
        if snapshot.tag != self.kind or snapshot.slot_index != self.slot_index:
            raise DeserializationError(f"Snapshot of {snapshot.pile_id} cannot be loaded into {self.pile_id}")
        self._cards = snapshot.decoded_cards()

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self):
        return iter(self._cards)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.pile_id}, {len(self._cards)} cards)"


class Deck(Pile):
    """
    The stock: face-down draw pile.

    Holds all 52 cards at game start, is shuffled once and then drained by
    dealing and hits. ``passes`` counts how many times the waste was
    collected back into it.
    """

    kind = PileKind.DECK

    def __init__(self, cards: Optional[Iterable[Card]] = None, slot_index: Optional[int] = None):
        super().__init__(cards, slot_index=None)
        self.is_shuffled = False
        self.passes = 0

    @classmethod
    def full(cls) -> "Deck":
        """Build a fresh unshuffled 52-card deck."""
        return cls(Card.decode(code) for code in full_deck_codes())

    def _orient(self, card: Card) -> Card:
        return card.with_face(False)

    @property
    def is_full(self) -> bool:
        return len(self._cards) == FULL_DECK_SIZE

    def shuffle(self, rng: Optional[random.Random] = None) -> None:
        """Shuffle the deck in place."""
        (rng or random.Random()).shuffle(self._cards)
        self.is_shuffled = True

    def to_snapshot(self) -> PileSnapshot:
        return PileSnapshot(
            tag=self.kind,
            cards=tuple(card.encode() for card in self._cards),
            draggable=self.draggable_flags(),
            is_shuffled=self.is_shuffled,
            passes=self.passes,
        )

    @classmethod
    def from_snapshot(cls, snapshot: PileSnapshot) -> "Deck":
        deck = super().from_snapshot(snapshot)
        deck.is_shuffled = snapshot.is_shuffled
        deck.passes = snapshot.passes
        return deck

    def load(self, snapshot: PileSnapshot) -> None:
        super().load(snapshot)
        self.is_shuffled = snapshot.is_shuffled
        self.passes = snapshot.passes


class Waste(Pile):
    """Receives cards hit from the deck. Always face-up; only the top may be dragged."""

    kind = PileKind.WASTE

    def __init__(self, cards: Optional[Iterable[Card]] = None, slot_index: Optional[int] = None):
        super().__init__(cards, slot_index=None)

    def _orient(self, card: Card) -> Card:
        return card.with_face(True)

    def is_draggable(self, index: int) -> bool:
        return bool(self._cards) and index == len(self._cards) - 1


class Tableau(Pile):
    """
    One of the seven build columns.

    Cards are mixed orientation. A face-up, alternating-colour, descending
    run may move as a unit.
    """

    kind = PileKind.TABLEAU
    may_accept_drop = True

    def __init__(self, cards: Optional[Iterable[Card]] = None, slot_index: Optional[int] = 0):
        super().__init__(cards, slot_index=slot_index)

    @property
    def pile_id(self) -> str:
        return f"t{self.slot_index + 1}"

    def allow_drop(self, candidate: CardRun) -> bool:
        """
        Tableau legality.

        An empty tableau takes only a run based on a face-up king. Otherwise
        the run's bottom card must be one rank below the current face-up top
        and of the opposite colour.
        """
        run = as_run(candidate)
        if not is_descending_alternating(run):
            return False
        base = run[0]
        top = self.top_card
        if top is None:
            return base.rank == Rank.KING
        if not top.face_up:
            return False
        return base.rank == top.rank - 1 and base.is_opposite_color(top)

    def is_draggable(self, index: int) -> bool:
        if not 0 <= index < len(self._cards):
            return False
        return is_descending_alternating(self._cards[index:])

    def face_up_count(self) -> int:
        """Number of face-up cards."""
        return sum(1 for card in self._cards if card.face_up)

    def reveal_top_card(self) -> None:
        """Turn the top card face-up."""
        if not self._cards:
            raise EmptyPileError(f"Cannot reveal the top of empty {self.pile_id}")
        self._cards[-1] = self._cards[-1].with_face(True)

    def hide_top_card(self) -> None:
        """Turn the top card face-down."""
        if not self._cards:
            raise EmptyPileError(f"Cannot hide the top of empty {self.pile_id}")
        self._cards[-1] = self._cards[-1].with_face(False)


class Foundation(Pile):
    """
    One of the four suit piles, built up from the ace.

    The suit is bound lazily by the first card and stays bound while the
    foundation is occupied.
    """

    kind = PileKind.FOUNDATION
    may_accept_drop = True

    def __init__(self, cards: Optional[Iterable[Card]] = None, slot_index: Optional[int] = 0):
        super().__init__(cards, slot_index=slot_index)

    @property
    def pile_id(self) -> str:
        return f"f{self.slot_index + 1}"

    @property
    def bound_suit(self) -> Optional[Suit]:
        """Suit of the bottom card, None while empty."""
        return self._cards[0].suit if self._cards else None

    @property
    def is_full(self) -> bool:
        """True when the foundation holds ace to king of one suit in order."""
        if len(self._cards) != FULL_FOUNDATION_SIZE:
            return False
        suit = self._cards[0].suit
        return all(card.suit == suit and card.rank == i + 1 for i, card in enumerate(self._cards))

    def _orient(self, card: Card) -> Card:
        return card.with_face(True)

    def allow_drop(self, candidate: CardRun) -> bool:
        """
        Foundation legality.

        Only single cards. An ace into an empty foundation, otherwise the
        next rank of the bound suit.
        """
        run = as_run(candidate)
        if len(run) != 1:
            return False
        card = run[0]
        top = self.top_card
        if top is None:
            return card.rank == Rank.ACE
        return card.suit == top.suit and card.rank == top.rank + 1

    def is_draggable(self, index: int) -> bool:
        return bool(self._cards) and index == len(self._cards) - 1


AnyPile = Union[Deck, Waste, Tableau, Foundation]


def pile_from_snapshot(snapshot: PileSnapshot) -> AnyPile:
    """
    Rebuild the exact pile variant named by a snapshot's tag.

    Args:
        snapshot: Snapshot of any pile.

    Returns:
        The reconstructed pile; draggability is derived, not read.

    Raises:
        DeserializationError: If the tag is not a known pile kind.
    """
    if snapshot.tag == PileKind.DECK:
        return Deck.from_snapshot(snapshot)
    if snapshot.tag == PileKind.WASTE:
        return Waste.from_snapshot(snapshot)
    if snapshot.tag == PileKind.TABLEAU:
        return Tableau.from_snapshot(snapshot)
    if snapshot.tag == PileKind.FOUNDATION:
        return Foundation.from_snapshot(snapshot)
    raise DeserializationError(f"Unknown pile tag: {snapshot.tag!r}")


def cards_snapshot(cards: Sequence[Card]) -> Tuple[int, ...]:
    """Encode a run of cards for a notification payload."""
    return tuple(card.encode() for card in cards)

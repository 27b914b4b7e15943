"""
Snapshot value types.

Snapshots are transient wire values: the engine builds them for every
notification and for saves, and never keeps them. Draggability is carried
for the presentation layer but is always re-derived on reconstruction.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..cards import Card
from ..enums import PileKind
from ..exceptions import DeserializationError, InvalidCardError

__all__ = ['PileSnapshot', 'GameSnapshot']


@dataclass(frozen=True)
class PileSnapshot:
    """
    Immutable picture of one pile.

    Attributes:
        tag: Which pile variant produced the snapshot.
        cards: Card codes, bottom first.
        slot_index: Slot of a tableau or foundation, None otherwise.
        draggable: Derived draggability per card, parallel to ``cards``.
        is_shuffled: Deck only, whether the deck was shuffled.
        passes: Deck only, how many times the waste was collected back.
    """

    tag: PileKind
    cards: Tuple[int, ...] = ()
    slot_index: Optional[int] = None
    draggable: Tuple[bool, ...] = field(default=(), compare=True)
    is_shuffled: bool = False
    passes: int = 0

    def __len__(self) -> int:
        return len(self.cards)

    @property
    def pile_id(self) -> str:
        """Identifier of the pile this snapshot was taken from."""
        if self.tag == PileKind.TABLEAU:
            return f"t{self.slot_index + 1}"
        if self.tag == PileKind.FOUNDATION:
            return f"f{self.slot_index + 1}"
        return self.tag.value

    def decoded_cards(self) -> List[Card]:
        """Decode the card codes into Card values, bottom first."""
        return [Card.decode(code) for code in self.cards]

    def to_record(self) -> Dict[str, Any]:
        """
        Convert to the persisted record.

        Returns:
            Dict[str, Any]: ``{tag, slotIndex?, cards}`` plus the deck
            counters for the deck. Draggability is never persisted.
        """
        record: Dict[str, Any] = {'tag': self.tag.value, 'cards': list(self.cards)}
        if self.slot_index is not None:
            record['slotIndex'] = self.slot_index
        if self.tag == PileKind.DECK:
            record['isShuffled'] = self.is_shuffled
            record['passes'] = self.passes
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'PileSnapshot':
        """
        Validate a persisted record and build a snapshot from it.

        Any ``draggable`` entry in the record is ignored.

        Args:
            record: A mapping produced by ``to_record``.

        Returns:
            PileSnapshot: Snapshot with an empty draggable tuple.

        Raises:
            DeserializationError: If the record is malformed.
        """
        if not isinstance(record, Mapping):
            raise DeserializationError(f"Pile record must be a mapping, got {type(record).__name__}")
        try:
            tag = PileKind(record['tag'])
        except (KeyError, ValueError) as e:
            raise DeserializationError(f"Pile record has no valid tag: {record.get('tag')!r}") from e

        codes = record.get('cards', [])
        if not isinstance(codes, (list, tuple)):
            raise DeserializationError(f"Pile record 'cards' must be a list, got {type(codes).__name__}")
        try:
            for code in codes:
                Card.decode(code)
        except InvalidCardError as e:
            raise DeserializationError(f"Pile record holds an invalid card: {e}") from e

        slot_index = record.get('slotIndex')
        if tag in (PileKind.TABLEAU, PileKind.FOUNDATION):
            if isinstance(slot_index, bool) or not isinstance(slot_index, int):
                raise DeserializationError(f"{tag.value} record requires an integer slotIndex")
        else:
            slot_index = None

        passes = record.get('passes', 0)
        if isinstance(passes, bool) or not isinstance(passes, int) or passes < 0:
            raise DeserializationError(f"Deck record 'passes' must be a non-negative integer, got {passes!r}")

        return cls(
            tag=tag,
            cards=tuple(codes),
            slot_index=slot_index,
            is_shuffled=bool(record.get('isShuffled', False)),
            passes=passes if tag == PileKind.DECK else 0,
        )


@dataclass(frozen=True)
class GameSnapshot:
    """
    Immutable picture of the whole table.

    This is what the controller hands out for redraws and what rollback
    restores from.
    """

    deck: PileSnapshot
    waste: PileSnapshot
    tableaux: Tuple[PileSnapshot, ...]
    foundations: Tuple[PileSnapshot, ...]

    def all_piles(self) -> List[PileSnapshot]:
        """All pile snapshots: deck, waste, tableaux, then foundations."""
        return [self.deck, self.waste, *self.tableaux, *self.foundations]

    def total_cards(self) -> int:
        """Number of cards across every pile."""
        return sum(len(pile) for pile in self.all_piles())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the ``piles`` section of a save payload."""
        return {
            'deck': self.deck.to_record(),
            'waste': self.waste.to_record(),
            'tableaux': [pile.to_record() for pile in self.tableaux],
            'foundations': [pile.to_record() for pile in self.foundations],
        }

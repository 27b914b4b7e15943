"""
Game state management for Klondike.

This module owns the table: deck, waste, seven tableaux and four
foundations. It provides lookups, snapshots, integrity checks and the two
win predicates, but no move rules and no sequencing; those live in the
commands and the controller.
"""

import random
from typing import Dict, Iterator, List, Optional

from .enums import Suit
from .exceptions import DeserializationError, GameStateError, UnknownPileError
from .piles import (
    FULL_DECK_SIZE, NUM_FOUNDATIONS, NUM_TABLEAUX,
    AnyPile, Deck, Foundation, Pile, Tableau, Waste, pile_from_snapshot,
)
from .snapshot.types import GameSnapshot


class GameState:
    """
    Mutable state of one Klondike game.

    Only the controller mutates it directly, and only the commands it runs
    change pile contents once dealing has started.
    """

    def __init__(self,
                 deck: Optional[Deck] = None,
                 waste: Optional[Waste] = None,
                 tableaux: Optional[List[Tableau]] = None,
                 foundations: Optional[List[Foundation]] = None):
        """
        Initialise the table. Missing piles are created empty.

        Args:
            deck: The stock.
            waste: The waste pile.
            tableaux: Seven tableaux, slot order.
            foundations: Four foundations, slot order.
        """
        self.deck = deck if deck is not None else Deck()
        self.waste = waste if waste is not None else Waste()
        self.tableaux = tableaux if tableaux is not None else [Tableau(slot_index=i) for i in range(NUM_TABLEAUX)]
        self.foundations = foundations if foundations is not None else [
            Foundation(slot_index=i) for i in range(NUM_FOUNDATIONS)
        ]

    @classmethod
    def new_game(cls, rng: Optional[random.Random] = None, shuffle: bool = True) -> "GameState":
        """
        Build a fresh table with a full deck and every other pile empty.

        Args:
            rng: Random generator used for the shuffle.
            shuffle: Whether to shuffle the deck.

        Returns:
            GameState: The new state.
        """
        deck = Deck.full()
        if shuffle:
            deck.shuffle(rng)
        return cls(deck=deck)

    def piles(self) -> Iterator[AnyPile]:
        """Iterate over every pile: deck, waste, tableaux, foundations."""
        yield self.deck
        yield self.waste
        yield from self.tableaux
        yield from self.foundations

    def get_pile(self, pile_id: str) -> AnyPile:
        """
        Look up a pile by id.

        Accepted ids are ``deck``, ``waste``, ``t1``..``t7`` and ``f1``..``f4``
        (case-insensitive; ``d`` and ``w`` are accepted as shorthands).

        Raises:
            UnknownPileError: If the id names no pile.
        """
        key = str(pile_id).strip().lower()
        if key in ("deck", "d", "stock"):
            return self.deck
        if key in ("waste", "w"):
            return self.waste
        if len(key) >= 2 and key[0] in ("t", "f") and key[1:].isdigit():
            index = int(key[1:]) - 1
            piles: List[Pile] = self.tableaux if key[0] == "t" else self.foundations
            if 0 <= index < len(piles):
                return piles[index]
        raise UnknownPileError(f"Unknown pile id: {pile_id!r}")

    @property
    def foundation_suits(self) -> Dict[int, Optional[Suit]]:
        """Foundation slot to bound suit, None for unbound slots."""
        return {f.slot_index: f.bound_suit for f in self.foundations}

    def foundation_for_suit(self, suit: Suit) -> Optional[Foundation]:
        """The foundation currently bound to ``suit``, if any."""
        for foundation in self.foundations:
            if foundation.bound_suit == suit:
                return foundation
        return None

    def total_cards(self) -> int:
        return sum(len(pile) for pile in self.piles())

    def check_integrity(self) -> None:
        """
        Verify the table invariants.

        Raises:
            GameStateError: If the table does not hold exactly 52 distinct
                cards, a foundation mixes suits, or two foundations share a
                suit.
        """
        all_cards = [card for pile in self.piles() for card in pile]
        if len(all_cards) != FULL_DECK_SIZE:
            raise GameStateError(f"Table holds {len(all_cards)} cards, expected {FULL_DECK_SIZE}")
        if len(set(all_cards)) != FULL_DECK_SIZE:
            raise GameStateError("Table holds duplicate cards")

        bound = [f.bound_suit for f in self.foundations if f.bound_suit is not None]
        if len(bound) != len(set(bound)):
            raise GameStateError("Two foundations are bound to the same suit")
        for foundation in self.foundations:
            for i, card in enumerate(foundation):
                if card.suit != foundation.bound_suit or card.rank != i + 1:
                    raise GameStateError(f"Foundation {foundation.pile_id} is out of sequence at {card}")

    @property
    def win_state(self) -> bool:
        """True when all four foundations are full."""
        return all(foundation.is_full for foundation in self.foundations)

    def check_certain_win(self) -> bool:
        """
        True when the game can no longer be lost.

        Every tableau card face-up with empty deck and waste means every
        remaining card can be collected in order.
        """
        all_face_up = all(card.face_up for tableau in self.tableaux for card in tableau)
        return all_face_up and self.waste.is_empty and self.deck.is_empty

    def create_snapshot(self) -> GameSnapshot:
        """Create an immutable snapshot of the whole table."""
        return GameSnapshot(
            deck=self.deck.to_snapshot(),
            waste=self.waste.to_snapshot(),
            tableaux=tuple(t.to_snapshot() for t in self.tableaux),
            foundations=tuple(f.to_snapshot() for f in self.foundations),
        )

    @classmethod
    def from_snapshot(cls, snapshot: GameSnapshot) -> "GameState":
        """
        Rebuild a state from a snapshot.

        Raises:
            DeserializationError: If a pile snapshot sits in the wrong place.
        """
        deck = pile_from_snapshot(snapshot.deck)
        waste = pile_from_snapshot(snapshot.waste)
        tableaux = [pile_from_snapshot(s) for s in snapshot.tableaux]
        foundations = [pile_from_snapshot(s) for s in snapshot.foundations]

        if not isinstance(deck, Deck) or not isinstance(waste, Waste):
            raise DeserializationError("Deck and waste snapshots are swapped or mistagged")
        if len(tableaux) != NUM_TABLEAUX or not all(isinstance(t, Tableau) for t in tableaux):
            raise DeserializationError(f"Expected {NUM_TABLEAUX} tableau snapshots")
        if len(foundations) != NUM_FOUNDATIONS or not all(isinstance(f, Foundation) for f in foundations):
            raise DeserializationError(f"Expected {NUM_FOUNDATIONS} foundation snapshots")
        if sorted(t.slot_index for t in tableaux) != list(range(NUM_TABLEAUX)):
            raise DeserializationError("Tableau slot indexes must be 0..6")
        if sorted(f.slot_index for f in foundations) != list(range(NUM_FOUNDATIONS)):
            raise DeserializationError("Foundation slot indexes must be 0..3")

        tableaux.sort(key=lambda t: t.slot_index)
        foundations.sort(key=lambda f: f.slot_index)
        return cls(deck=deck, waste=waste, tableaux=tableaux, foundations=foundations)

    def restore_from_snapshot(self, snapshot: GameSnapshot) -> None:
        """
        Put every pile back to the contents of a snapshot.

        Piles are reloaded in place so commands already in the history keep
        pointing at live piles.
        """
        # validate the whole snapshot before touching anything
        GameState.from_snapshot(snapshot)
        self.deck.load(snapshot.deck)
        self.waste.load(snapshot.waste)
        for tableau, pile_snapshot in zip(self.tableaux, sorted(snapshot.tableaux, key=lambda s: s.slot_index)):
            tableau.load(pile_snapshot)
        for foundation, pile_snapshot in zip(self.foundations, sorted(snapshot.foundations, key=lambda s: s.slot_index)):
            foundation.load(pile_snapshot)

    def __repr__(self) -> str:
        return (
            f"GameState(deck={len(self.deck)}, waste={len(self.waste)}, "
            f"tableaux={[len(t) for t in self.tableaux]}, "
            f"foundations={[len(f) for f in self.foundations]})"
        )

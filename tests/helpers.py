"""
Shared builders for Klondike tests.

Cards are written as text labels (``"AH"``, ``"10C"``). ``up`` builds
face-up cards and ``down`` face-down ones.
"""

import asyncio
from typing import Dict, List, Optional, Sequence

from klondike.core import (
    Card, Deck, EventBus, EventType, Foundation, GameEvent, GameState, Rank, Suit, Tableau, Waste,
)


def up(*labels: str) -> List[Card]:
    return [Card.from_str(label, face_up=True) for label in labels]


def down(*labels: str) -> List[Card]:
    return [Card.from_str(label) for label in labels]


def run(coro):
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


def suit_run(suit: Suit, top_rank: int) -> List[Card]:
    """Ace up to ``top_rank`` of one suit, face-up."""
    return [Card(rank, suit, True) for rank in range(1, top_rank + 1)]


def make_state(tableaux: Optional[Dict[int, Sequence[Card]]] = None,
               foundations: Optional[Dict[int, Sequence[Card]]] = None,
               deck: Sequence[Card] = (),
               waste: Sequence[Card] = ()) -> GameState:
    """Build a table from explicit pile contents keyed by zero-based slot."""
    tableaux = tableaux or {}
    foundations = foundations or {}
    return GameState(
        deck=Deck(deck),
        waste=Waste(waste),
        tableaux=[Tableau(tableaux.get(i, ()), slot_index=i) for i in range(7)],
        foundations=[Foundation(foundations.get(i, ()), slot_index=i) for i in range(4)],
    )


def nearly_won_state() -> GameState:
    """Every suit built to the queen on foundation ``suit.value``; kings face-up on t1..t4."""
    return make_state(
        tableaux={suit.value: [Card(Rank.KING, suit, True)] for suit in Suit},
        foundations={suit.value: suit_run(suit, 12) for suit in Suit},
    )


def won_state() -> GameState:
    return make_state(foundations={suit.value: suit_run(suit, 13) for suit in Suit})


async def play_random_action(controller, rng) -> bool:
    """Drive one random intent through the controller, legal or not."""
    snapshot = controller.get_snapshot()
    roll = rng.random()
    if roll < 0.3:
        return await controller.on_deck_interact()
    if roll < 0.45:
        pile_id = rng.choice(["waste"] + [t.pile_id for t in snapshot.tableaux])
        return await controller.on_try_auto_collect(pile_id)

    sources = [pile for pile in snapshot.all_piles() if any(pile.draggable)]
    if not sources:
        return await controller.on_deck_interact()
    source = rng.choice(sources)
    index = rng.choice([i for i, flag in enumerate(source.draggable) if flag])
    if not await controller.on_drag_validate(source.pile_id, index):
        return False
    target = rng.choice(snapshot.tableaux + snapshot.foundations)
    await controller.on_drag_over_target(target.pile_id)
    return await controller.on_drop(target.pile_id)


class EventRecorder:
    """Subscribes to every event type and keeps what it sees, in order."""

    def __init__(self, event_bus: EventBus):
        self.events: List[GameEvent] = []
        for event_type in EventType:
            event_bus.subscribe(event_type, self.events.append)

    def types(self) -> List[EventType]:
        return [event.event_type for event in self.events]

    def of(self, event_type: EventType) -> List[GameEvent]:
        return [event for event in self.events if event.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()

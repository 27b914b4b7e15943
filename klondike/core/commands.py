"""
Reversible commands.

Every change to pile contents after the deal is wrapped in a Command with a
forward effect and its exact inverse. Commands trust the controller to have
checked legality; they only check that the piles can physically support the
transfer, and raise IllegalSequenceError otherwise.

Each mutating step publishes a choreographed event and waits for it to be
acknowledged before taking the next step.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

from .cards import Card
from .enums import ActionTag
from .events import EventBus, EventType
from .exceptions import IllegalSequenceError
from .piles import Deck, Foundation, Pile, Tableau, Waste, cards_snapshot

logger = logging.getLogger(__name__)

_INVERSE_TAGS = {
    ActionTag.USER_ACTION: ActionTag.UNDO_USER_ACTION,
    ActionTag.AUTO_FINISH: ActionTag.UNDO_AUTO_FINISH,
    ActionTag.HIT: ActionTag.UNDO_HIT,
    ActionTag.COLLECT_WASTE: ActionTag.UNDO_COLLECT_WASTE,
}


class Command(ABC):
    """Base class for undoable actions."""

    def __init__(self, event_bus: EventBus, action_tag: ActionTag):
        self._event_bus = event_bus
        self.action_tag = action_tag

    @property
    def inverse_tag(self) -> ActionTag:
        """Tag published while the command is being undone."""
        return _INVERSE_TAGS.get(self.action_tag, self.action_tag)

    @abstractmethod
    async def execute(self) -> None:
        """Apply the forward effect."""

    @abstractmethod
    async def undo(self) -> None:
        """Apply the inverse effect."""

    async def _publish_move(self, tag: ActionTag, moved: List[Card], from_pile: Pile, to_pile: Pile) -> None:
        await self._event_bus.publish_simple(
            EventType.MOVE_CARDS,
            action_tag=tag,
            moved_cards=cards_snapshot(moved),
            from_pile=from_pile.to_snapshot(),
            to_pile=to_pile.to_snapshot(),
        )

    async def _publish_flip(self, tag: ActionTag, pile: Pile, n: int) -> None:
        await self._event_bus.publish_simple(
            EventType.FLIP_TOP_N_CARDS,
            action_tag=tag,
            pile=pile.to_snapshot(),
            n=n,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.action_tag.value})"


class HitCommand(Command):
    """Turn ``count`` cards from the deck onto the waste, one at a time."""

    def __init__(self, deck: Deck, waste: Waste, count: int, event_bus: EventBus):
        super().__init__(event_bus, ActionTag.HIT)
        self.deck = deck
        self.waste = waste
        self.count = count

    async def execute(self) -> None:
        if self.count <= 0 or len(self.deck) < self.count:
            raise IllegalSequenceError(f"Cannot hit {self.count} cards from a deck of {len(self.deck)}")
        moved = []
        for _ in range(self.count):
            self.waste.add_card(self.deck.remove_top_card())
            moved.append(self.waste.top_card)
        logger.debug(f"Hit {len(moved)} cards to waste")
        await self._publish_move(self.action_tag, moved, self.deck, self.waste)
        await self._publish_flip(self.action_tag, self.waste, self.count)

    async def undo(self) -> None:
        if len(self.waste) < self.count:
            raise IllegalSequenceError(f"Cannot return {self.count} cards from a waste of {len(self.waste)}")
        moved = []
        for _ in range(self.count):
            self.deck.add_card(self.waste.remove_top_card())
            moved.append(self.deck.top_card)
        logger.debug(f"Returned {len(moved)} cards to deck")
        await self._publish_move(self.inverse_tag, moved, self.waste, self.deck)
        await self._publish_flip(self.inverse_tag, self.deck, self.count)


class CollectWasteCommand(Command):
    """
    Turn the whole waste back over into the empty deck.

    Cards come off the waste top first, so the deck ends up in the order it
    had before the waste was built. Each collect counts as one pass.
    """

    def __init__(self, waste: Waste, deck: Deck, event_bus: EventBus):
        super().__init__(event_bus, ActionTag.COLLECT_WASTE)
        self.waste = waste
        self.deck = deck
        self.count = 0

    async def execute(self) -> None:
        if self.waste.is_empty:
            raise IllegalSequenceError("Cannot collect an empty waste")
        if not self.deck.is_empty:
            raise IllegalSequenceError(f"Cannot collect waste onto a deck of {len(self.deck)}")
        moved = []
        while not self.waste.is_empty:
            self.deck.add_card(self.waste.remove_top_card())
            moved.append(self.deck.top_card)
        self.count = len(moved)
        self.deck.passes += 1
        logger.debug(f"Collected {self.count} cards, pass {self.deck.passes}")
        await self._publish_move(self.action_tag, moved, self.waste, self.deck)
        await self._publish_flip(self.action_tag, self.deck, self.count)

    async def undo(self) -> None:
        if not self.waste.is_empty or self.deck.is_empty:
            raise IllegalSequenceError("Cannot undo a collect unless the deck is full and waste empty")
        moved = []
        while not self.deck.is_empty:
            self.waste.add_card(self.deck.remove_top_card())
            moved.append(self.waste.top_card)
        self.deck.passes = max(0, self.deck.passes - 1)
        logger.debug(f"Restored {len(moved)} cards to waste")
        await self._publish_move(self.inverse_tag, moved, self.deck, self.waste)
        await self._publish_flip(self.inverse_tag, self.waste, len(moved))


class TransferCommand(Command):
    """
    Move the top ``count`` cards of any pile onto another, keeping order.

    When the source is a tableau left with a face-down top, that card is
    revealed, and hidden again on undo.
    """

    def __init__(self, source: Pile, target: Pile, count: int, event_bus: EventBus,
                 action_tag: ActionTag = ActionTag.USER_ACTION):
        super().__init__(event_bus, action_tag)
        self.source = source
        self.target = target
        self.count = count
        self.revealed = False

    async def execute(self) -> None:
        if self.count <= 0 or len(self.source) < self.count:
            raise IllegalSequenceError(
                f"Cannot move {self.count} cards from {self.source.pile_id} holding {len(self.source)}"
            )
        segment = self.source.remove_top_cards(self.count)
        self.target.add_cards(segment)
        moved = list(self.target.cards[-self.count:])
        logger.debug(f"Moved {len(moved)} cards {self.source.pile_id} -> {self.target.pile_id}")
        await self._publish_move(self.action_tag, moved, self.source, self.target)

        self.revealed = False
        top = self.source.top_card
        if isinstance(self.source, Tableau) and top is not None and not top.face_up:
            self.source.reveal_top_card()
            self.revealed = True
            await self._publish_flip(self.action_tag, self.source, 1)

    async def undo(self) -> None:
        if len(self.target) < self.count:
            raise IllegalSequenceError(
                f"Cannot return {self.count} cards from {self.target.pile_id} holding {len(self.target)}"
            )
        if self.revealed:
            self.source.hide_top_card()
            self.revealed = False
            await self._publish_flip(self.inverse_tag, self.source, 1)

        segment = self.target.remove_top_cards(self.count)
        self.source.add_cards(segment)
        moved = list(self.source.cards[-self.count:])
        logger.debug(f"Returned {len(moved)} cards {self.target.pile_id} -> {self.source.pile_id}")
        await self._publish_move(self.inverse_tag, moved, self.target, self.source)


class MoveToTableauCommand(TransferCommand):
    """Move a run onto a tableau."""

    def __init__(self, source: Pile, tableau: Tableau, count: int, event_bus: EventBus,
                 action_tag: ActionTag = ActionTag.USER_ACTION):
        super().__init__(source, tableau, count, event_bus, action_tag)


class MoveToFoundationCommand(TransferCommand):
    """Move a single card onto a foundation."""

    def __init__(self, source: Pile, foundation: Foundation, event_bus: EventBus,
                 action_tag: ActionTag = ActionTag.USER_ACTION):
        super().__init__(source, foundation, 1, event_bus, action_tag)

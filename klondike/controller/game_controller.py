"""
Game controller for Klondike.

The controller is the only entry point that changes the table. It turns
user intents (deck clicks, drags, drops, auto-collect requests) into
commands, checks legality against the pile rules, keeps the undo/redo
history and announces progress on the event bus.

Every inbound operation is a coroutine guarded by ``@guarded``: while one
is in flight the controller is BUSY and further intents are ignored, so a
presentation layer may fire input freely without interleaving moves.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..core import (
    ActionTag, Card, CollectWasteCommand, EventBus, EventType, Foundation, GamePhase,
    GameSettings, GameSnapshot, GameState, HitCommand, History, IllegalSequenceError,
    MoveToFoundationCommand, MoveToTableauCommand, SaveSerializer, Scoring, SnapshotError,
    Suit, Tableau, Waste,
)
from ..core.piles import AnyPile, NUM_TABLEAUX, cards_snapshot
from .decorators import guarded, logged_action


@dataclass
class DragState:
    """Cards picked up by the current drag.

    Attributes:
        origin: Pile the drag started from
        index: Index of the first dragged card in the origin
        cards: The dragged cards, bottom first
    """

    origin: AnyPile
    index: int
    cards: Tuple[Card, ...]

    def is_current(self) -> bool:
        """True while the origin still holds exactly the dragged cards on top."""
        live = self.origin.cards[self.index:]
        return cards_snapshot(live) == cards_snapshot(self.cards)


class GameController:
    """
    Game controller for managing one Klondike session.

    Attributes:
        _game_state: The table being played
        _history: Undo/redo ledger of executed commands
        _settings: Settings of the current game
        _phase: Input lock, see ``GamePhase``
        _drag: The drag in progress, if any
    """

    def __init__(self, event_bus: Optional[EventBus] = None,
                 logger: Optional[logging.Logger] = None,
                 scoring: Optional[Scoring] = None,
                 game_state: Optional[GameState] = None,
                 settings: Optional[GameSettings] = None):
        """
        Initialize the controller.

        Args:
            event_bus: Bus shared with the presentation layer
            logger: Optional logger for debugging
            scoring: Optional scorer subscribed to the same bus
            game_state: Optional table to resume, skipping the deal
            settings: Settings for a resumed table
        """
        self._event_bus = event_bus or EventBus()
        self._logger = logger or logging.getLogger(__name__)
        self._scoring = scoring
        self._game_state = game_state if game_state is not None else GameState()
        self._settings = settings or GameSettings()
        self._history = History(self._event_bus, self._logger)
        self._drag: Optional[DragState] = None
        self._started = game_state is not None
        self._won_announced = False
        self._phase = GamePhase.NOT_STARTED
        self._settle_phase()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def accepts_input(self) -> bool:
        """True when a new user operation would be admitted."""
        return self._phase == GamePhase.AWAITING_INPUT

    @property
    def history_depth(self) -> int:
        return self._history.history_depth

    @property
    def redo_depth(self) -> int:
        return self._history.redo_depth

    @property
    def foundation_suits(self) -> Dict[int, Optional[Suit]]:
        return self._game_state.foundation_suits

    @property
    def win_state(self) -> bool:
        return self._started and self._game_state.win_state

    @property
    def drag(self) -> Optional[DragState]:
        return self._drag

    @property
    def score(self) -> Optional[int]:
        """Current score, None when scoring is off."""
        if self._scoring is None or not self._scoring.enabled:
            return None
        return self._scoring.score

    def check_certain_win(self) -> bool:
        return self._started and self._game_state.check_certain_win()

    def get_snapshot(self) -> GameSnapshot:
        """Immutable snapshot of the whole table."""
        return self._game_state.create_snapshot()

    def get_pile(self, pile_id: str) -> AnyPile:
        return self._game_state.get_pile(pile_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @guarded(GamePhase.NOT_STARTED, GamePhase.AWAITING_INPUT, GamePhase.WON)
    @logged_action("initialize")
    async def initialize(self, settings: Optional[GameSettings] = None, shuffle: bool = True) -> bool:
        """
        Start a new game: fresh shuffled deck, every other pile empty.

        Args:
            settings: Game settings, defaults when omitted
            shuffle: Whether to shuffle the deck

        Returns:
            True once the table is ready for the deal
        """
        settings = settings or GameSettings()
        rng = random.Random(settings.seed)

        self._game_state = GameState.new_game(rng, shuffle=shuffle)
        self._settings = settings
        self._drag = None
        self._won_announced = False
        self._started = True
        self._history.clear()

        self._event_bus.emit_simple(
            EventType.GAME_INITIALIZED,
            settings=settings,
            deck=self._game_state.deck.to_snapshot(),
        )
        self._logger.info(
            f"New game: draw {settings.difficulty}, pass limit {settings.pass_limit or 'none'}, "
            f"undo {'on' if settings.allow_undo else 'off'}"
        )
        return True

    async def _deal(self) -> None:
        """Deal row by row: each row puts one card on every tableau from the
        row's index onward, then reveals the row's own tableau."""
        state = self._game_state
        self._phase = GamePhase.DEALING
        self._event_bus.emit_simple(EventType.DEALING, deck=state.deck.to_snapshot())

        for row in range(NUM_TABLEAUX):
            for tableau in state.tableaux[row:]:
                card = state.deck.remove_top_card()
                tableau.add_card(card)
                await self._event_bus.publish_simple(
                    EventType.MOVE_CARDS,
                    action_tag=ActionTag.DEAL,
                    moved_cards=cards_snapshot([card]),
                    from_pile=state.deck.to_snapshot(),
                    to_pile=tableau.to_snapshot(),
                )
            state.tableaux[row].reveal_top_card()
            await self._event_bus.publish_simple(
                EventType.FLIP_TOP_N_CARDS,
                action_tag=ActionTag.DEAL,
                pile=state.tableaux[row].to_snapshot(),
                n=1,
            )

        self._phase = GamePhase.BUSY
        self._event_bus.emit_simple(EventType.DEALING_FINISHED, deck=state.deck.to_snapshot())
        self._logger.info(f"Dealt tableaux, {len(state.deck)} cards left in deck")

    # ------------------------------------------------------------------
    # Deck
    # ------------------------------------------------------------------

    @guarded()
    async def on_deck_interact(self) -> bool:
        """
        Handle a click on the deck.

        A full deck is dealt. A non-empty deck turns ``difficulty`` cards (or
        whatever is left) onto the waste. An empty deck takes the waste back,
        unless the pass limit has been reached.

        Returns:
            True if anything changed
        """
        state = self._game_state
        deck, waste = state.deck, state.waste

        if deck.is_full:
            await self._deal()
            return True

        if not deck.is_empty:
            count = min(self._settings.difficulty, len(deck))
            try:
                await self._history.execute(HitCommand(deck, waste, count, self._event_bus))
            except IllegalSequenceError as e:
                self._logger.warning(f"Hit rejected, trying to collect instead: {e}")
            else:
                self._after_action()
                return True

        if waste.is_empty:
            self._logger.debug("Deck and waste both empty, nothing to do")
            return False

        if self._settings.has_pass_limit and deck.passes >= self._settings.pass_limit:
            self._logger.info(f"Stock exhausted after {deck.passes} passes")
            self._event_bus.emit_simple(
                EventType.STOCK_EXHAUSTED,
                passes=deck.passes,
                pass_limit=self._settings.pass_limit,
            )
            return False

        try:
            await self._history.execute(CollectWasteCommand(waste, deck, self._event_bus))
        except IllegalSequenceError as e:
            self._logger.warning(f"Collect rejected: {e}")
            return False
        self._after_action()
        return True

    # ------------------------------------------------------------------
    # Drag and drop
    # ------------------------------------------------------------------

    @guarded()
    async def on_drag_validate(self, origin_pile_id: str, card_index: int) -> bool:
        """
        Start a drag at ``card_index`` of a pile if that card may be picked up.

        Returns:
            True if the drag was accepted
        """
        origin = self._game_state.get_pile(origin_pile_id)
        self._drag = None

        if not origin.is_draggable(card_index):
            self._event_bus.emit_simple(
                EventType.DRAG_REJECTED,
                action_tag=ActionTag.DRAG_START,
                from_pile=origin.to_snapshot(),
                card_index=card_index,
            )
            return False

        cards = origin.cards[card_index:]
        self._drag = DragState(origin=origin, index=card_index, cards=cards)
        self._event_bus.emit_simple(
            EventType.DRAG_VALIDATED,
            action_tag=ActionTag.DRAG_START,
            from_pile=origin.to_snapshot(),
            card_index=card_index,
            cards=cards_snapshot(cards),
        )
        self._logger.debug(f"Dragging {len(cards)} cards from {origin.pile_id}")
        return True

    @guarded()
    async def on_drag_over_target(self, target_pile_id: str) -> bool:
        """
        Report whether the dragged cards could be dropped on a pile.

        Returns:
            True if a drop there would be accepted
        """
        if self._drag is None:
            return False
        target = self._game_state.get_pile(target_pile_id)
        valid = self._can_drop(target, self._drag)
        self._event_bus.emit_simple(
            EventType.VALID_DRAG_OVER_PILE if valid else EventType.INVALID_DRAG_OVER_PILE,
            action_tag=ActionTag.DRAG_OVER,
            over_pile=target.to_snapshot(),
        )
        return valid

    @guarded()
    async def on_drop(self, target_pile_id: str) -> bool:
        """
        Drop the dragged cards on a pile.

        A legal drop executes a move command. An illegal one leaves the table
        untouched and emits ``invalid-drop-over-pile``. The drag ends either way,
        unless the target id names no pile.

        Returns:
            True if the cards moved

        Raises:
            UnknownPileError: If ``target_pile_id`` names no pile
        """
        drag = self._drag
        if drag is None:
            self._logger.warning("Drop without a drag in progress")
            return False

        target = self._game_state.get_pile(target_pile_id)
        self._drag = None
        if not self._can_drop(target, drag):
            self._event_bus.emit_simple(
                EventType.INVALID_DROP_OVER_PILE,
                action_tag=ActionTag.DROP,
                from_pile=drag.origin.to_snapshot(),
                on_pile=target.to_snapshot(),
            )
            self._logger.debug(f"Rejected drop of {len(drag.cards)} cards on {target.pile_id}")
            return False

        if isinstance(target, Tableau):
            command = MoveToTableauCommand(drag.origin, target, len(drag.cards), self._event_bus)
        else:
            command = MoveToFoundationCommand(drag.origin, target, self._event_bus)
        await self._history.execute(command)
        self._after_action()
        return True

    def on_cancel_drag(self) -> None:
        """Abandon the drag in progress. The table is not touched."""
        if self._drag is not None:
            self._logger.debug(f"Cancelled drag from {self._drag.origin.pile_id}")
        self._drag = None

    def _can_drop(self, target: AnyPile, drag: DragState) -> bool:
        if target is drag.origin or not target.may_accept_drop or not drag.is_current():
            return False
        if isinstance(target, Foundation):
            return self._can_foundation_accept(target, drag.cards)
        return target.allow_drop(drag.cards)

    def _can_foundation_accept(self, foundation: Foundation, cards: Union[Card, Tuple[Card, ...]]) -> bool:
        # a suit bound to another foundation is never accepted here
        run = (cards,) if isinstance(cards, Card) else tuple(cards)
        if len(run) != 1:
            return False
        bound = self._game_state.foundation_for_suit(run[0].suit)
        if bound is not None and bound is not foundation:
            return False
        return foundation.allow_drop(run[0])

    def _find_foundation_for(self, card: Card) -> Optional[Foundation]:
        for foundation in self._game_state.foundations:
            if self._can_foundation_accept(foundation, card):
                return foundation
        return None

    # ------------------------------------------------------------------
    # Auto-collect and auto-finish
    # ------------------------------------------------------------------

    @guarded()
    async def on_try_auto_collect(self, pile_id: str) -> bool:
        """
        Send the top card of the waste or a tableau to a foundation.

        Returns:
            True if the card moved, otherwise ``reject-collect-card`` is emitted
        """
        pile = self._game_state.get_pile(pile_id)
        top = pile.top_card
        foundation = None
        if isinstance(pile, (Waste, Tableau)) and top is not None and top.face_up:
            foundation = self._find_foundation_for(top)

        if foundation is None:
            self._event_bus.emit_simple(EventType.REJECT_COLLECT_CARD, pile=pile.to_snapshot())
            self._logger.debug(f"Nothing to collect from {pile.pile_id}")
            return False

        await self._history.execute(MoveToFoundationCommand(pile, foundation, self._event_bus))
        self._after_action()
        return True

    @guarded()
    @logged_action("fast forward")
    async def on_fast_forward(self) -> bool:
        """
        Move every collectable card to the foundations.

        Sweeps the waste and then tableaux 1 to 7, sending face-up tops home,
        until the game is won or a whole sweep moves nothing.

        Returns:
            True if at least one card moved
        """
        state = self._game_state
        moved_any = False

        while not state.win_state:
            moved = 0
            for pile in [state.waste, *state.tableaux]:
                while pile.top_card is not None and pile.top_card.face_up:
                    foundation = self._find_foundation_for(pile.top_card)
                    if foundation is None:
                        break
                    await self._history.execute(
                        MoveToFoundationCommand(pile, foundation, self._event_bus, ActionTag.AUTO_FINISH)
                    )
                    moved += 1
            if moved == 0:
                break
            moved_any = True

        self._after_action()
        return moved_any

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @guarded()
    async def undo(self) -> bool:
        """Revert the last command. Only honoured when undo is allowed."""
        if not self._settings.allow_undo:
            self._logger.debug("Undo is disabled for this game")
            return False
        self._drag = None
        done = await self._history.undo()
        if done:
            self._after_action()
        return done

    @guarded()
    async def redo(self) -> bool:
        """Re-apply the last undone command. Only honoured when undo is allowed."""
        if not self._settings.allow_undo:
            self._logger.debug("Redo is disabled for this game")
            return False
        self._drag = None
        done = await self._history.redo()
        if done:
            self._after_action()
        return done

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @guarded(GamePhase.AWAITING_INPUT, GamePhase.WON, rejected=None)
    async def request_save(self) -> Optional[Dict[str, Any]]:
        """
        Capture the table and settings as a save payload.

        The payload is emitted on ``game-save-data`` and returned.
        """
        payload = SaveSerializer.to_payload(self._game_state, self._settings)
        self._event_bus.emit_simple(EventType.GAME_SAVE_DATA, payload=payload)
        self._logger.info("Game saved")
        return payload

    @guarded(GamePhase.NOT_STARTED, GamePhase.AWAITING_INPUT, GamePhase.WON)
    @logged_action("load save")
    async def load_save(self, payload: Union[str, bytes, Mapping[str, Any]]) -> bool:
        """
        Replace the table with a saved one.

        A payload that fails to decode leaves the current game exactly as it
        was. A successful load clears the undo history.

        Returns:
            True if the save was loaded
        """
        try:
            state, settings = SaveSerializer.deserialize(payload)
        except SnapshotError as e:
            self._logger.error(f"Could not load save, keeping current game: {e}")
            return False

        self._game_state = state
        self._settings = settings
        self._drag = None
        self._started = True
        self._won_announced = state.win_state
        self._history.clear()

        snapshot = state.create_snapshot()
        await self._event_bus.publish_simple(
            EventType.GAME_DATA_LOADED,
            settings=settings,
            deck=snapshot.deck,
            waste=snapshot.waste,
            tableaux=snapshot.tableaux,
            foundations=snapshot.foundations,
            foundation_suits=state.foundation_suits,
        )
        self._event_bus.emit_simple(EventType.GAME_LOAD_FINISHED)
        self._logger.info(f"Loaded save: {state!r}")
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _after_action(self) -> None:
        if self._game_state.win_state:
            if not self._won_announced:
                self._won_announced = True
                self._logger.info("Game won")
                self._event_bus.emit_simple(
                    EventType.GAME_ENDED,
                    action_tag=ActionTag.SYSTEM_MESSAGE,
                    won=True,
                    score=self.score,
                )
        elif self._game_state.check_certain_win():
            self._event_bus.emit_simple(EventType.FAST_FORWARD_POSSIBLE)

    def _settle_phase(self) -> None:
        if not self._started:
            self._phase = GamePhase.NOT_STARTED
        elif self._game_state.win_state:
            self._phase = GamePhase.WON
        else:
            self._phase = GamePhase.AWAITING_INPUT

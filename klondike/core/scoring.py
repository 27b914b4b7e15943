"""
Optional standard scoring.

Scoring only listens. It reads the move and flip notifications the commands
publish, maps each to a delta through a fixed rule table and reports the
running total. It never influences whether a move is legal.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .config import GameSettings
from .enums import ActionTag, PileKind
from .events import EventBus, EventType, GameEvent

_SCORED_TAGS = (ActionTag.USER_ACTION, ActionTag.AUTO_FINISH)


@dataclass(frozen=True)
class ScoringSchema:
    """
    Rule table for standard Klondike scoring.

    Attributes:
        move_to_foundation: Any card reaching a foundation.
        waste_to_tableau: A waste card played onto a tableau.
        flipped_at_tableau: A tableau card revealed by a move.
        foundation_to_tableau: A card taken back off a foundation.
        pass_allowance: Free waste re-collections per difficulty.
        pass_penalty: Delta for each re-collection beyond the allowance.
    """

    move_to_foundation: int = 10
    waste_to_tableau: int = 5
    flipped_at_tableau: int = 5
    foundation_to_tableau: int = -15
    pass_allowance: Mapping[int, int] = field(default_factory=lambda: {1: 1, 3: 4})
    pass_penalty: Mapping[int, int] = field(default_factory=lambda: {1: -10, 3: -20})

    def move_delta(self, data: Mapping[str, Any], difficulty: int) -> int:
        """Delta for one ``move-cards`` payload."""
        tag = data['action_tag']
        from_kind = data['from_pile'].tag
        to_kind = data['to_pile'].tag

        if tag == ActionTag.COLLECT_WASTE:
            passes = data['to_pile'].passes
            if passes > self.pass_allowance.get(difficulty, 0):
                return self.pass_penalty.get(difficulty, 0)
            return 0
        if tag not in _SCORED_TAGS:
            return 0
        if to_kind == PileKind.FOUNDATION:
            return self.move_to_foundation
        if to_kind == PileKind.TABLEAU and from_kind == PileKind.WASTE:
            return self.waste_to_tableau
        if to_kind == PileKind.TABLEAU and from_kind == PileKind.FOUNDATION:
            return self.foundation_to_tableau
        return 0

    def flip_delta(self, data: Mapping[str, Any]) -> int:
        """Delta for one ``flip-top-n-cards`` payload."""
        if data['action_tag'] not in _SCORED_TAGS:
            return 0
        if data['pile'].tag != PileKind.TABLEAU:
            return 0
        return self.flipped_at_tableau * data['n']


class Scoring:
    """
    Running score kept from bus notifications.

    Enabled at each ``game-initialized`` / ``game-data-loaded`` according to
    the settings carried by the event. The score never drops below zero.
    """

    def __init__(self, event_bus: EventBus, schema: Optional[ScoringSchema] = None,
                 logger: Optional[logging.Logger] = None):
        self._event_bus = event_bus
        self.schema = schema or ScoringSchema()
        self._logger = logger or logging.getLogger(__name__)
        self.score = 0
        self.enabled = False
        self._difficulty = GameSettings().difficulty
        self._handlers: Dict[EventType, Any] = {
            EventType.GAME_INITIALIZED: self._on_game_started,
            EventType.GAME_DATA_LOADED: self._on_game_started,
            EventType.MOVE_CARDS: self._on_move_cards,
            EventType.FLIP_TOP_N_CARDS: self._on_flip,
        }
        for event_type, handler in self._handlers.items():
            event_bus.subscribe(event_type, handler)

    def detach(self) -> None:
        """Stop listening to the bus."""
        for event_type, handler in self._handlers.items():
            self._event_bus.unsubscribe(event_type, handler)

    def _on_game_started(self, event: GameEvent) -> None:
        settings: GameSettings = event.data.get('settings') or GameSettings()
        self.enabled = settings.scoring_active
        self._difficulty = settings.difficulty
        previous, self.score = self.score, 0
        self._logger.debug(f"Scoring {'enabled' if self.enabled else 'disabled'} for new game")
        if self.enabled:
            self._event_bus.emit_simple(EventType.SCORE_UPDATED, current=self.score, previous=previous)

    def _on_move_cards(self, event: GameEvent) -> None:
        if self.enabled:
            self.apply(self.schema.move_delta(event.data, self._difficulty))

    def _on_flip(self, event: GameEvent) -> None:
        if self.enabled:
            self.apply(self.schema.flip_delta(event.data))

    def apply(self, delta: int) -> None:
        """Add a delta, clamp at zero and announce the change."""
        if delta == 0:
            return
        previous = self.score
        self.score = max(0, self.score + delta)
        self._logger.debug(f"Score {previous} -> {self.score} ({delta:+d})")
        self._event_bus.emit_simple(EventType.SCORE_UPDATED, current=self.score, previous=previous)

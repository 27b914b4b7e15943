"""
Core game logic for Klondike Solitaire.

This package contains the fundamental game components: cards, piles,
snapshots, the reversible command model, the event bus and scoring.
"""

from .exceptions import (
    SolitaireError, InvalidSuitError, InvalidCardError, IllegalSequenceError, EmptyPileError,
    UnknownPileError, GameStateError, GameConfigError, SnapshotError, SerializationError,
    DeserializationError,
)
from .enums import Suit, Color, Rank, PileKind, ActionTag, GamePhase
from .cards import Card
from .snapshot.types import PileSnapshot, GameSnapshot
from .piles import Pile, Deck, Waste, Tableau, Foundation, pile_from_snapshot
from .events import EventBus, EventType, GameEvent, Acknowledgement
from .state import GameState
from .commands import (
    Command, HitCommand, CollectWasteCommand, TransferCommand, MoveToTableauCommand,
    MoveToFoundationCommand,
)
from .history import History
from .config import GameSettings
from .scoring import Scoring, ScoringSchema
from .snapshot.serializer import SaveSerializer

__all__ = [
    # Errors
    'SolitaireError', 'InvalidSuitError', 'InvalidCardError', 'IllegalSequenceError', 'EmptyPileError',
    'UnknownPileError', 'GameStateError', 'GameConfigError', 'SnapshotError', 'SerializationError',
    'DeserializationError',

    # Enums
    'Suit', 'Color', 'Rank', 'PileKind', 'ActionTag', 'GamePhase',

    # Cards and piles
    'Card', 'Pile', 'Deck', 'Waste', 'Tableau', 'Foundation', 'pile_from_snapshot',

    # Snapshots
    'PileSnapshot', 'GameSnapshot', 'SaveSerializer',

    # Events
    'EventBus', 'EventType', 'GameEvent', 'Acknowledgement',

    # State and commands
    'GameState', 'Command', 'HitCommand', 'CollectWasteCommand', 'TransferCommand',
    'MoveToTableauCommand', 'MoveToFoundationCommand', 'History',

    # Settings and scoring
    'GameSettings', 'Scoring', 'ScoringSchema',
]

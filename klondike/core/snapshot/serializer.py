"""
Save payload serializer.

Turns a game state plus its settings into the persisted payload and back:

    {
        "settings": {...},
        "piles": {"deck": {...}, "waste": {...},
                  "tableaux": [7 x {...}], "foundations": [4 x {...}]},
        "foundationSuitBindings": {"0": 1, "1": null, ...}
    }

Each pile record is ``{tag, slotIndex?, cards: [cardCode, ...]}``.
"""

import json
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..config import GameSettings
from ..enums import Suit
from ..exceptions import (
    DeserializationError, GameConfigError, GameStateError, SerializationError,
)
from ..state import GameState
from .types import GameSnapshot, PileSnapshot

__all__ = ['SaveSerializer']


class SaveSerializer:
    """
    Save payload serializer.

    Reconstruction restores every card's rank, suit and orientation and every
    pile's order exactly; draggability is re-derived by the piles.
    """

    @staticmethod
    def to_payload(state: GameState, settings: GameSettings) -> Dict[str, Any]:
        """
        Build the save payload as plain data.

        Raises:
            SerializationError: If the state cannot be captured.
        """
        try:
            return {
                'settings': settings.to_record(),
                'piles': state.create_snapshot().to_dict(),
                'foundationSuitBindings': {
                    str(index): (suit.value if suit is not None else None)
                    for index, suit in state.foundation_suits.items()
                },
            }
        except Exception as e:
            raise SerializationError(f"Failed to build save payload: {e}") from e

    @staticmethod
    def serialize(state: GameState, settings: GameSettings) -> str:
        """Build the save payload as JSON text."""
        return SaveSerializer.dump_payload(SaveSerializer.to_payload(state, settings))

    @staticmethod
    def dump_payload(payload: Mapping[str, Any]) -> str:
        """Encode an already built payload as JSON text."""
        try:
            return json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to encode save payload: {e}") from e

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> Tuple[GameState, GameSettings]:
        """
        Rebuild a state and its settings from a payload.

        Returns:
            Tuple of the reconstructed state and settings.

        Raises:
            DeserializationError: If the payload is malformed or describes an
                impossible table.
        """
        if not isinstance(payload, Mapping):
            raise DeserializationError(f"Save payload must be a mapping, got {type(payload).__name__}")
        try:
            settings = GameSettings.from_record(payload.get('settings'))
        except GameConfigError as e:
            raise DeserializationError(f"Save payload has invalid settings: {e}") from e

        piles = payload.get('piles')
        if not isinstance(piles, Mapping):
            raise DeserializationError("Save payload has no 'piles' section")
        try:
            snapshot = GameSnapshot(
                deck=PileSnapshot.from_record(piles['deck']),
                waste=PileSnapshot.from_record(piles['waste']),
                tableaux=tuple(PileSnapshot.from_record(r) for r in piles['tableaux']),
                foundations=tuple(PileSnapshot.from_record(r) for r in piles['foundations']),
            )
        except (KeyError, TypeError) as e:
            raise DeserializationError(f"Save payload piles are incomplete: {e}") from e

        state = GameState.from_snapshot(snapshot)
        try:
            state.check_integrity()
        except GameStateError as e:
            raise DeserializationError(f"Save payload describes an invalid table: {e}") from e

        SaveSerializer._check_bindings(state, payload.get('foundationSuitBindings'))
        return state, settings

    @staticmethod
    def deserialize(data: Union[str, bytes, Mapping[str, Any]]) -> Tuple[GameState, GameSettings]:
        """Rebuild a state and its settings from JSON text or a payload mapping."""
        if isinstance(data, Mapping):
            return SaveSerializer.from_payload(data)
        try:
            payload = json.loads(data)
        except (TypeError, ValueError) as e:
            raise DeserializationError(f"Save data is not valid JSON: {e}") from e
        return SaveSerializer.from_payload(payload)

    @staticmethod
    def serialize_to_file(state: GameState, settings: GameSettings, file_path: str) -> None:
        """Write the save payload to a file."""
        SaveSerializer.write_payload(SaveSerializer.to_payload(state, settings), file_path)

    @staticmethod
    def write_payload(payload: Mapping[str, Any], file_path: str) -> None:
        """Write an already built payload to a file as JSON text."""
        text = SaveSerializer.dump_payload(payload)
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                f.write(text)
        except OSError as e:
            raise SerializationError(f"Failed to write save to {file_path}: {e}") from e

    @staticmethod
    def read_file(file_path: str) -> str:
        """Read saved JSON text from a file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            raise DeserializationError(f"Failed to read save from {file_path}: {e}") from e

    @staticmethod
    def _check_bindings(state: GameState, bindings: Optional[Mapping[str, Any]]) -> None:
        # Bindings are derived from foundation contents; a stored map must agree
        if bindings is None:
            return
        if not isinstance(bindings, Mapping):
            raise DeserializationError("foundationSuitBindings must be a mapping")
        actual = state.foundation_suits
        for key, value in bindings.items():
            try:
                index = int(key)
                suit = Suit.parse(value) if value is not None else None
            except ValueError as e:
                raise DeserializationError(f"Invalid foundation binding {key!r}: {value!r}") from e
            if index not in actual:
                raise DeserializationError(f"Foundation binding for unknown slot {key!r}")
            if actual[index] != suit:
                raise DeserializationError(
                    f"Foundation {index + 1} is bound to {value!r} but holds "
                    f"{actual[index].name.lower() if actual[index] else 'nothing'}"
                )

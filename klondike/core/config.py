"""
Game settings.

Validated with pydantic so that settings coming back from a save file get
the same checks as settings built in code.
"""

from typing import Any, Dict, Mapping, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic.dataclasses import dataclass as pydantic_dataclass

from .exceptions import GameConfigError

VALID_DIFFICULTIES = (1, 3)

# record key -> attribute name
_RECORD_KEYS = {
    'difficulty': 'difficulty',
    'passLimit': 'pass_limit',
    'allowUndo': 'allow_undo',
    'scoringEnabled': 'scoring_enabled',
    'timerMode': 'timer_mode',
    'seed': 'seed',
}


@pydantic_dataclass(frozen=True)
class GameSettings:
    """Settings of one game.

    Undo and scoring are mutually exclusive: allowing undo turns the game
    into Thoughtful Solitaire and switches scoring off.
    """
    difficulty: int = Field(3, description="Cards turned per stock hit (1 or 3)")
    pass_limit: int = Field(0, ge=0, description="Maximum waste re-collections, 0 for unlimited")
    allow_undo: bool = Field(False, description="Whether undo/redo are honoured")
    scoring_enabled: bool = Field(False, description="Whether the score is kept")
    timer_mode: bool = Field(False, description="Whether the presentation shows a timer")
    seed: Optional[int] = Field(None, description="Shuffle seed for reproducible deals")

    @field_validator('difficulty')
    @classmethod
    def validate_difficulty(cls, v: int) -> int:
        """Only draw-1 and draw-3 are supported."""
        if v not in VALID_DIFFICULTIES:
            raise ValueError(f"difficulty must be one of {VALID_DIFFICULTIES}, got {v}")
        return v

    @property
    def scoring_active(self) -> bool:
        """Scoring is kept only when enabled and undo is not allowed."""
        return self.scoring_enabled and not self.allow_undo

    @property
    def has_pass_limit(self) -> bool:
        return self.pass_limit > 0

    def to_record(self) -> Dict[str, Any]:
        """Convert to the camelCase record stored in saves."""
        return {key: getattr(self, attr) for key, attr in _RECORD_KEYS.items()}

    @classmethod
    def from_record(cls, record: Optional[Mapping[str, Any]]) -> 'GameSettings':
        """
        Build settings from a saved record. Unknown keys are ignored.

        Raises:
            GameConfigError: If the record is not a mapping or fails validation.
        """
        if record is None:
            return cls()
        if not isinstance(record, Mapping):
            raise GameConfigError(f"Settings record must be a mapping, got {type(record).__name__}")
        kwargs = {attr: record[key] for key, attr in _RECORD_KEYS.items() if key in record}
        return cls.create(**kwargs)

    @classmethod
    def create(cls, **kwargs: Any) -> 'GameSettings':
        """
        Build settings, reporting validation failures as GameConfigError.

        Raises:
            GameConfigError: If any value is invalid.
        """
        try:
            return cls(**kwargs)
        except ValidationError as e:
            raise GameConfigError(f"Invalid game settings: {e}") from e

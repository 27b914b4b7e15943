"""
Snapshot value types.

The save serializer lives in ``klondike.core.snapshot.serializer``; it is
not imported here because it depends on the piles, which depend on these
types.
"""

from .types import GameSnapshot, PileSnapshot

__all__ = ['GameSnapshot', 'PileSnapshot']

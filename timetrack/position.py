"""Translate between volatile positions and timestamp keys.

Position 0 is the newest checkpoint, 1 the one before it, and so on. A
position is only meaningful against the store as it is *now*: removing or
inserting a checkpoint shifts every older position by one, so callers must
resolve again after each mutation instead of holding on to a timestamp
they looked up earlier by position.
"""

from __future__ import annotations

from bisect import bisect_left
from typing import TYPE_CHECKING

from timetrack.types import Identifier, Position, Timestamp

if TYPE_CHECKING:
    from timetrack.store import CheckpointStore


def resolve(store: CheckpointStore, identifier: Identifier) -> int | None:
    """Resolve an identifier to a timestamp key.

    Timestamps are returned unchanged, existence is the caller's concern.
    Positions walk the store newest-first and return None past the end.
    """
    if isinstance(identifier, Timestamp):
        return identifier.value
    if isinstance(identifier, Position):
        keys = store.timestamps()
        if 0 <= identifier.index < len(keys):
            return keys[len(keys) - 1 - identifier.index]
        return None
    raise TypeError(f"Not an identifier: {identifier!r}")


def exists(store: CheckpointStore, identifier: Identifier) -> bool:
    timestamp = resolve(store, identifier)
    return timestamp is not None and timestamp in store


def position_of(store: CheckpointStore, timestamp: int) -> int | None:
    """Current position of the checkpoint stored at ``timestamp``."""
    keys = store.timestamps()
    index = bisect_left(keys, timestamp)
    if index == len(keys) or keys[index] != timestamp:
        return None
    return len(keys) - 1 - index

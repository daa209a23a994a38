"""Time-ordered checkpoint store.

Maps Unix timestamps (seconds) to checkpoints, kept sorted ascending.
There is at most one checkpoint per second: inserting at a timestamp that
is already taken replaces the old checkpoint.
"""

import logging
from bisect import bisect_left, bisect_right, insort
from collections.abc import Iterator
from dataclasses import dataclass

from timetrack.errors import Result, TimeTrackError, err, not_found, ok
from timetrack.position import resolve
from timetrack.types import NO_TAG, Identifier, TagId

logger = logging.getLogger(__name__)


@dataclass
class Checkpoint:
    """A message and an optional tag id, stored under a timestamp."""

    message: str = ""
    tag_id: TagId = NO_TAG


class CheckpointStore:
    """Ordered mapping of timestamp -> Checkpoint."""

    def __init__(self):
        self._keys: list[int] = []
        self._entries: dict[int, Checkpoint] = {}

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, timestamp: object) -> bool:
        return timestamp in self._entries

    def __iter__(self) -> Iterator[tuple[int, Checkpoint]]:
        for timestamp in list(self._keys):
            yield timestamp, self._entries[timestamp]

    def timestamps(self) -> tuple[int, ...]:
        """Stored timestamps, ascending."""
        return tuple(self._keys)

    def latest(self) -> int | None:
        return self._keys[-1] if self._keys else None

    def insert(self, timestamp: int, message: str, tag_id: int = NO_TAG) -> Checkpoint | None:
        """Insert a checkpoint, returning the one it replaced (if any)."""
        replaced = self._entries.get(timestamp)
        if replaced is None:
            insort(self._keys, timestamp)
        else:
            logger.warning(f"Overwriting checkpoint at {timestamp}: {replaced.message!r}")
        self._entries[timestamp] = Checkpoint(message=message, tag_id=TagId(tag_id))
        logger.debug(f"Inserted checkpoint at {timestamp}")
        return replaced

    def get(self, identifier: Identifier) -> Checkpoint | None:
        """Look up a checkpoint. The returned object is live: edits stick."""
        timestamp = resolve(self, identifier)
        if timestamp is None:
            return None
        return self._entries.get(timestamp)

    def remove(self, identifier: Identifier) -> Checkpoint | None:
        timestamp = resolve(self, identifier)
        if timestamp is None or timestamp not in self._entries:
            return None
        del self._keys[bisect_left(self._keys, timestamp)]
        logger.debug(f"Removed checkpoint at {timestamp}")
        return self._entries.pop(timestamp)

    def range(self, start: int, end: int) -> list[tuple[int, Checkpoint]]:
        """Checkpoints with start <= timestamp <= end, ascending."""
        lo = bisect_left(self._keys, start)
        hi = bisect_right(self._keys, end)
        return [(ts, self._entries[ts]) for ts in self._keys[lo:hi]]

    def next_timestamp(self, timestamp: int) -> int | None:
        """Smallest stored timestamp strictly greater than ``timestamp``."""
        index = bisect_right(self._keys, timestamp)
        if index < len(self._keys):
            return self._keys[index]
        return None

    def set_tag(self, identifier: Identifier, tag_id: int) -> Result[None, TimeTrackError]:
        checkpoint = self.get(identifier)
        if checkpoint is None:
            return err(not_found("checkpoint", identifier))
        checkpoint.tag_id = TagId(tag_id)
        return ok(None)

    def set_message(self, identifier: Identifier, message: str) -> Result[None, TimeTrackError]:
        checkpoint = self.get(identifier)
        if checkpoint is None:
            return err(not_found("checkpoint", identifier))
        checkpoint.message = message
        return ok(None)

    def move(self, identifier: Identifier, new_timestamp: int) -> Result[int, TimeTrackError]:
        """Re-key a checkpoint. A checkpoint already at the target is replaced."""
        checkpoint = self.remove(identifier)
        if checkpoint is None:
            return err(not_found("checkpoint", identifier))
        self.insert(new_timestamp, checkpoint.message, checkpoint.tag_id)
        return ok(new_timestamp)

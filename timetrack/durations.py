"""Duration engine.

The time spent on a checkpoint is the gap until the next checkpoint:

    10:00  "write report"   (duration 1.5h)
    11:30  "lunch"          (untagged, not billable)
    12:15  "review"         (open, no successor yet)

The newest checkpoint has no successor and therefore no duration. Range
queries measure against the global successor, so a window that ends
mid-day does not cut the last entry short.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from timetrack.position import position_of
from timetrack.registry import TagRegistry
from timetrack.store import Checkpoint, CheckpointStore
from timetrack.types import NO_TAG

SECONDS_PER_HOUR = 3600
OPEN_DURATION = "-"


@dataclass(frozen=True)
class TimedCheckpoint:
    """A checkpoint together with its derived position and duration."""

    timestamp: int
    position: int
    checkpoint: Checkpoint
    duration: int | None


def duration_of(store: CheckpointStore, timestamp: int) -> int | None:
    """Seconds until the next checkpoint, or None if open or not stored."""
    if timestamp not in store:
        return None
    following = store.next_timestamp(timestamp)
    if following is None:
        return None
    return following - timestamp


def durations_in_range(store: CheckpointStore, start: int, end: int) -> list[TimedCheckpoint]:
    """Every checkpoint in [start, end] with its position and duration."""
    return [
        TimedCheckpoint(
            timestamp=timestamp,
            position=position_of(store, timestamp),
            checkpoint=checkpoint,
            duration=duration_of(store, timestamp),
        )
        for timestamp, checkpoint in store.range(start, end)
    ]


def is_billable(entry: TimedCheckpoint, registry: TagRegistry) -> bool:
    """Untagged (or dangling) checkpoints and open intervals are not billable."""
    if entry.duration is None:
        return False
    return registry.effective_tag_id(entry.checkpoint.tag_id) != NO_TAG


def billable_total(entries: Iterable[TimedCheckpoint], registry: TagRegistry) -> int:
    return sum(entry.duration for entry in entries if is_billable(entry, registry))


def hours(seconds: int) -> Decimal:
    """Seconds as hours, rounded to one decimal place (half away from zero)."""
    return (Decimal(seconds) / SECONDS_PER_HOUR).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def format_hours(seconds: int) -> str:
    return str(hours(seconds))


def format_duration(seconds: int | None) -> str:
    if seconds is None:
        return OPEN_DURATION
    return format_hours(seconds)

"""Core value types for Timetrack.

A checkpoint is addressed either by its timestamp (stable) or by its
position (volatile, 0 = most recent). Both are wrapped in small frozen
types so the two are never confused:

    Position(0)               # newest checkpoint, whatever it is right now
    Timestamp(1700000000)     # the checkpoint stored at that second

Positions shift on every insert/remove, so they are resolved against the
store right before use (see ``timetrack.position``).
"""

from dataclasses import dataclass
from typing import NewType, Union

from timetrack.errors import Result, TimeTrackError, err, invalid_identifier, ok

TagId = NewType("TagId", int)

# Implicit "no project assigned" id, never stored in the registry
NO_TAG = TagId(0)
MAX_TAG_ID = 0xFFFF

MIN_TIMESTAMP = -(2**63)
MAX_TIMESTAMP = 2**63 - 1

TIMESTAMP_PREFIX = "@"


@dataclass(frozen=True)
class Position:
    """0-based index counted from the most recent checkpoint."""

    index: int

    def __str__(self) -> str:
        return str(self.index)


@dataclass(frozen=True)
class Timestamp:
    """Unix timestamp (seconds) of a stored checkpoint."""

    value: int

    def __str__(self) -> str:
        return f"{TIMESTAMP_PREFIX}{self.value}"


Identifier = Union[Position, Timestamp]


def parse_identifier(raw: str) -> Result[Identifier, TimeTrackError]:
    """Parse a user-supplied identifier.

    ``"3"`` is position 3, ``"@1700000000"`` is a timestamp.
    """
    text = raw.strip()
    if text.startswith(TIMESTAMP_PREFIX):
        digits = text[len(TIMESTAMP_PREFIX):]
        try:
            value = int(digits)
        except ValueError:
            return err(invalid_identifier(raw, "timestamp must be an integer"))
        if not MIN_TIMESTAMP <= value <= MAX_TIMESTAMP:
            return err(invalid_identifier(raw, "timestamp out of range"))
        return ok(Timestamp(value))

    try:
        index = int(text)
    except ValueError:
        return err(invalid_identifier(raw, "position must be a non-negative integer"))
    if index < 0:
        return err(invalid_identifier(raw, "position must be a non-negative integer"))
    return ok(Position(index))


def is_valid_tag_id(value: int) -> bool:
    """True for ids that may be allocated to a real tag."""
    return 0 < value <= MAX_TAG_ID

"""Result types and error values for Timetrack.

Expected failures (unknown position, duplicate tag, unreadable database)
are returned as values instead of raised:

    result = registry.add("w", "Work")
    if result.is_err():
        console.print(format_error(result.unwrap_err()))
    tag_id = result.unwrap()

Both ``Ok`` and ``Err`` expose ``.ok`` so callers can branch with
``if not result.ok:`` and then read ``result.value`` / ``result.error``.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, NoReturn, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")

# Error codes
NOT_FOUND = "NOT_FOUND"
DUPLICATE_SHORT_NAME = "DUPLICATE_SHORT_NAME"
DANGLING_TAG_REFERENCE = "DANGLING_TAG_REFERENCE"
PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
INVALID_DATETIME = "INVALID_DATETIME"
TAG_IDS_EXHAUSTED = "TAG_IDS_EXHAUSTED"
INVALID_SHORT_NAME = "INVALID_SHORT_NAME"


class UnwrapError(Exception):
    """Raised when unwrapping the wrong side of a Result."""


@dataclass(frozen=True)
class TimeTrackError:
    """A typed error with a stable code and optional context."""

    code: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise UnwrapError(f"Called unwrap_err() on Ok: {self.value!r}")


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed result."""

    error: E

    @property
    def ok(self) -> bool:
        return False

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise UnwrapError(f"Called unwrap() on Err: {self.error}")

    def unwrap_err(self) -> E:
        return self.error


Result = Union[Ok[T], Err[E]]


def ok(value: T) -> Ok[T]:
    return Ok(value)


def err(error: E) -> Err[E]:
    return Err(error)


def not_found(what: str, key: Any) -> TimeTrackError:
    return TimeTrackError(
        code=NOT_FOUND,
        message=f"Could not find {what}: {key}",
        context={"what": what, "key": key},
    )


def duplicate_short_name(short_name: str) -> TimeTrackError:
    return TimeTrackError(
        code=DUPLICATE_SHORT_NAME,
        message=f"A tag with short name '{short_name}' already exists",
        context={"short_name": short_name},
    )


def invalid_short_name(short_name: str) -> TimeTrackError:
    return TimeTrackError(
        code=INVALID_SHORT_NAME,
        message=f"Invalid tag short name '{short_name}': must be non-empty with no spaces",
        context={"short_name": short_name},
    )


def dangling_tag_reference(timestamp: int, tag_id: int) -> TimeTrackError:
    return TimeTrackError(
        code=DANGLING_TAG_REFERENCE,
        message=f"Checkpoint at {timestamp} references removed tag {tag_id}",
        context={"timestamp": timestamp, "tag_id": tag_id},
    )


def persistence_error(path: Any, reason: str) -> TimeTrackError:
    return TimeTrackError(
        code=PERSISTENCE_ERROR,
        message=f"Could not use database {path}: {reason}",
        context={"path": str(path), "reason": reason},
    )


def invalid_identifier(raw: str, reason: str) -> TimeTrackError:
    return TimeTrackError(
        code=INVALID_IDENTIFIER,
        message=f"Invalid position or timestamp '{raw}': {reason}",
        context={"raw": raw},
    )


def format_error(error: TimeTrackError) -> str:
    """Render an error for the terminal."""
    return f"Error: {error.message}"

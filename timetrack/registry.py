"""Tag/project registry.

Tags are keyed by a small numeric id. Checkpoints only hold the id, so a
removed tag leaves its checkpoints pointing at nothing; readers go through
``effective_tag_id`` which maps such dangling ids back to ``NO_TAG``.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from timetrack.errors import (
    TAG_IDS_EXHAUSTED,
    Result,
    TimeTrackError,
    duplicate_short_name,
    err,
    invalid_short_name,
    not_found,
    ok,
)
from timetrack.types import MAX_TAG_ID, NO_TAG, TagId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tag:
    """A project/tag with a CLI-friendly short name and a display name."""

    short_name: str
    long_name: str


def is_valid_short_name(short_name: str) -> bool:
    """Short names are typed on the command line, so no blanks or whitespace."""
    return bool(short_name) and not any(c.isspace() for c in short_name)


class TagRegistry:
    """Directory of tags keyed by id, with unique short names."""

    def __init__(self, tags: dict[TagId, Tag] | None = None):
        self._tags: dict[TagId, Tag] = {}
        for tag_id, tag in (tags or {}).items():
            self._tags[tag_id] = tag

    def __len__(self) -> int:
        return len(self._tags)

    def __contains__(self, tag_id: object) -> bool:
        return tag_id in self._tags

    def __iter__(self) -> Iterator[tuple[TagId, Tag]]:
        return self.items()

    def items(self) -> Iterator[tuple[TagId, Tag]]:
        """Yield (id, tag) pairs in id order."""
        for tag_id in sorted(self._tags):
            yield tag_id, self._tags[tag_id]

    def add(
        self,
        short_name: str,
        long_name: str,
        reserved: Iterable[int] = (),
    ) -> Result[TagId, TimeTrackError]:
        """Register a new tag and return its id.

        Ids in ``reserved`` (e.g. ids still referenced by checkpoints) are
        never handed out.
        """
        if not is_valid_short_name(short_name):
            return err(invalid_short_name(short_name))
        if self.lookup_by_short_name(short_name) is not None:
            return err(duplicate_short_name(short_name))

        tag_id = self._allocate_id(set(reserved))
        if tag_id is None:
            return err(
                TimeTrackError(
                    code=TAG_IDS_EXHAUSTED,
                    message=f"No free tag ids left (max {MAX_TAG_ID})",
                )
            )

        self._tags[tag_id] = Tag(short_name=short_name, long_name=long_name)
        logger.info(f"Added tag {tag_id}: {short_name}")
        return ok(tag_id)

    def remove(self, tag_id: int) -> Result[Tag, TimeTrackError]:
        """Remove a tag. Checkpoints referencing it are left untouched."""
        if tag_id == NO_TAG or tag_id not in self._tags:
            return err(not_found("tag", tag_id))
        tag = self._tags.pop(TagId(tag_id))
        logger.info(f"Removed tag {tag_id}: {tag.short_name}")
        return ok(tag)

    def lookup_by_short_name(self, short_name: str) -> TagId | None:
        for tag_id, tag in self._tags.items():
            if tag.short_name == short_name:
                return tag_id
        return None

    def lookup_by_id(self, tag_id: int) -> Tag | None:
        return self._tags.get(TagId(tag_id))

    def effective_tag_id(self, tag_id: int) -> TagId:
        """Return ``tag_id`` if it is registered, otherwise ``NO_TAG``."""
        if tag_id in self._tags:
            return TagId(tag_id)
        return NO_TAG

    def _allocate_id(self, reserved: set[int]) -> TagId | None:
        taken = set(self._tags) | reserved
        highest = max(taken, default=NO_TAG)
        if highest < MAX_TAG_ID:
            return TagId(highest + 1)
        # Top of the range is used, fall back to the lowest gap
        for candidate in range(NO_TAG + 1, MAX_TAG_ID + 1):
            if candidate not in taken:
                return TagId(candidate)
        return None

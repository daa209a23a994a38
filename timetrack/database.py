"""The Timetrack database: checkpoint store plus tag registry.

Persisted as a single pretty-printed JSON file that is read in full at the
start of a command and replaced atomically at the end:

    {
      "checkpoints": {
        "1700000000": {"message": "write report", "tag_id": 1},
        "1700005400": {"message": "lunch", "tag_id": 0}
      },
      "tags": {
        "1": {"short_name": "w", "long_name": "Work"}
      }
    }

Keys are decimal strings written in ascending numeric order. ``tag_id`` 0
means "untagged". A missing or malformed file is an error, never repaired.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from timetrack.atomic import atomic_write_json
from timetrack.errors import (
    Result,
    TimeTrackError,
    dangling_tag_reference,
    err,
    not_found,
    ok,
    persistence_error,
)
from timetrack.registry import Tag, TagRegistry, is_valid_short_name
from timetrack.store import Checkpoint, CheckpointStore
from timetrack.types import (
    MAX_TIMESTAMP,
    MIN_TIMESTAMP,
    NO_TAG,
    Identifier,
    TagId,
    is_valid_tag_id,
)

logger = logging.getLogger(__name__)

_INTEGER_KEY = re.compile(r"-?[0-9]+")


def _is_canonical_int(key: str) -> bool:
    """Decimal integer written the way str(int) writes it (no "007", no "-0")."""
    return bool(_INTEGER_KEY.fullmatch(key)) and str(int(key)) == key


@dataclass
class Database:
    """Checkpoints and tags, loaded and saved together."""

    store: CheckpointStore = field(default_factory=CheckpointStore)
    registry: TagRegistry = field(default_factory=TagRegistry)

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    def add_checkpoint(
        self,
        timestamp: int,
        message: str,
        tag_short_name: str = "",
    ) -> Result[int, TimeTrackError]:
        """Record a checkpoint. An empty short name means untagged."""
        tag_result = self.tag_id_for(tag_short_name)
        if tag_result.is_err():
            return err(tag_result.unwrap_err())
        self.store.insert(timestamp, message, tag_result.unwrap())
        logger.info(f"Added checkpoint at {timestamp}")
        return ok(timestamp)

    def remove_checkpoint(self, identifier: Identifier) -> Result[Checkpoint, TimeTrackError]:
        checkpoint = self.store.remove(identifier)
        if checkpoint is None:
            return err(not_found("checkpoint", identifier))
        logger.info(f"Removed checkpoint {identifier}")
        return ok(checkpoint)

    def edit_message(self, identifier: Identifier, message: str) -> Result[None, TimeTrackError]:
        return self.store.set_message(identifier, message)

    def clear_message(self, identifier: Identifier) -> Result[None, TimeTrackError]:
        return self.store.set_message(identifier, "")

    def retag(self, identifier: Identifier, tag_short_name: str) -> Result[None, TimeTrackError]:
        """Point a checkpoint at another tag. Empty short name clears it."""
        tag_result = self.tag_id_for(tag_short_name)
        if tag_result.is_err():
            return err(tag_result.unwrap_err())
        return self.store.set_tag(identifier, tag_result.unwrap())

    def retime(self, identifier: Identifier, new_timestamp: int) -> Result[int, TimeTrackError]:
        """Move a checkpoint to a new timestamp.

        Positions of other checkpoints may change; resolve them again.
        """
        result = self.store.move(identifier, new_timestamp)
        if result.is_ok():
            logger.info(f"Moved checkpoint {identifier} to {new_timestamp}")
        return result

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def add_tag(self, short_name: str, long_name: str) -> Result[TagId, TimeTrackError]:
        """Register a tag without reusing ids still referenced by checkpoints."""
        return self.registry.add(short_name, long_name, reserved=self.referenced_tag_ids())

    def remove_tag(self, short_name: str) -> Result[Tag, TimeTrackError]:
        tag_id = self.registry.lookup_by_short_name(short_name)
        if tag_id is None:
            return err(not_found("tag", short_name))
        return self.registry.remove(tag_id)

    def tag_id_for(self, short_name: str) -> Result[TagId, TimeTrackError]:
        if not short_name:
            return ok(NO_TAG)
        tag_id = self.registry.lookup_by_short_name(short_name)
        if tag_id is None:
            return err(not_found("tag", short_name))
        return ok(tag_id)

    def tag_for(self, checkpoint: Checkpoint) -> Tag | None:
        """The checkpoint's tag, or None if untagged or the tag was removed."""
        if checkpoint.tag_id == NO_TAG:
            return None
        tag = self.registry.lookup_by_id(checkpoint.tag_id)
        if tag is None:
            logger.debug(f"Tag {checkpoint.tag_id} no longer exists, treating as untagged")
        return tag

    def tag_name(self, checkpoint: Checkpoint) -> str:
        tag = self.tag_for(checkpoint)
        return tag.short_name if tag else ""

    def referenced_tag_ids(self) -> set[int]:
        return {cp.tag_id for _, cp in self.store if cp.tag_id != NO_TAG}

    def dangling_references(self) -> list[TimeTrackError]:
        """Checkpoints whose tag has been removed from the registry."""
        return [
            dangling_tag_reference(timestamp, checkpoint.tag_id)
            for timestamp, checkpoint in self.store
            if checkpoint.tag_id != NO_TAG and checkpoint.tag_id not in self.registry
        ]


# ============================================================================
# Serialization
# ============================================================================


def database_to_dict(db: Database) -> dict[str, Any]:
    return {
        "checkpoints": {
            str(timestamp): {"message": checkpoint.message, "tag_id": int(checkpoint.tag_id)}
            for timestamp, checkpoint in db.store
        },
        "tags": {
            str(tag_id): {"short_name": tag.short_name, "long_name": tag.long_name}
            for tag_id, tag in db.registry.items()
        },
    }


def _validate_database_schema(data: Any) -> str | None:
    """Validate the raw JSON structure.

    Returns None if valid, or an error message if invalid.
    """
    if not isinstance(data, dict):
        return "Database must be a JSON object"

    for section in ("checkpoints", "tags"):
        if section not in data:
            return f"Missing '{section}' key"
        if not isinstance(data[section], dict):
            return f"'{section}' must be an object"

    for key, value in data["checkpoints"].items():
        if not _is_canonical_int(key):
            return f"Checkpoint key '{key}' is not a plain integer timestamp"
        if not MIN_TIMESTAMP <= int(key) <= MAX_TIMESTAMP:
            return f"Checkpoint key '{key}' is out of range"
        if not isinstance(value, dict):
            return f"Checkpoint {key} must be an object"
        if not isinstance(value.get("message", ""), str):
            return f"Checkpoint {key}: 'message' must be a string"
        tag_id = value.get("tag_id", NO_TAG)
        if isinstance(tag_id, bool) or not isinstance(tag_id, int):
            return f"Checkpoint {key}: 'tag_id' must be an integer"
        if tag_id != NO_TAG and not is_valid_tag_id(tag_id):
            return f"Checkpoint {key}: 'tag_id' {tag_id} is out of range"

    short_names: set[str] = set()
    for key, value in data["tags"].items():
        if not _is_canonical_int(key) or not is_valid_tag_id(int(key)):
            return f"Tag key '{key}' is not a valid tag id"
        if not isinstance(value, dict):
            return f"Tag {key} must be an object"
        for name_field in ("short_name", "long_name"):
            if not isinstance(value.get(name_field), str):
                return f"Tag {key}: '{name_field}' must be a string"
        if not is_valid_short_name(value["short_name"]):
            return f"Tag {key}: invalid short name '{value['short_name']}'"
        if value["short_name"] in short_names:
            return f"Duplicate tag short name '{value['short_name']}'"
        short_names.add(value["short_name"])

    return None


def database_from_dict(data: Any, source: Any = "<data>") -> Result[Database, TimeTrackError]:
    """Build a Database from parsed JSON. ``source`` names it in errors."""
    validation_error = _validate_database_schema(data)
    if validation_error:
        logger.debug(f"Invalid database {source}: {validation_error}")
        return err(persistence_error(source, validation_error))

    db = Database(
        registry=TagRegistry(
            {
                TagId(int(key)): Tag(short_name=value["short_name"], long_name=value["long_name"])
                for key, value in data["tags"].items()
            }
        )
    )
    for key, value in data["checkpoints"].items():
        db.store.insert(int(key), value.get("message", ""), value.get("tag_id", NO_TAG))
    return ok(db)


# ============================================================================
# Files
# ============================================================================


def load_database(path: Path) -> Result[Database, TimeTrackError]:
    """Read the whole database from ``path``."""
    path = Path(path)
    if not path.is_file():
        return err(persistence_error(path, "file does not exist"))

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.debug(f"Malformed database {path}: {e}")
        return err(persistence_error(path, f"malformed JSON: {e}"))
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Could not read database {path}: {e}")
        return err(persistence_error(path, f"unreadable: {e}"))

    result = database_from_dict(data, source=path)
    if result.is_ok():
        db = result.unwrap()
        logger.debug(f"Loaded {len(db.store)} checkpoints and {len(db.registry)} tags from {path}")
    return result


def save_database(db: Database, path: Path) -> Result[Path, TimeTrackError]:
    """Replace the file at ``path`` with the current database."""
    result = atomic_write_json(Path(path), database_to_dict(db))
    if result.is_err():
        return err(persistence_error(path, result.unwrap_err().message))
    return result


def init_database(path: Path) -> Result[Path, TimeTrackError]:
    """Create an empty database file. Refuses to overwrite."""
    path = Path(path)
    if path.exists():
        return err(persistence_error(path, "file already exists"))
    return save_database(Database(), path)

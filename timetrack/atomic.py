"""Atomic file writes for the database and config files.

Writes go to a temp file in the target directory which is then renamed
over the target, so a crash mid-write leaves the previous file intact.

All functions return Result types for explicit error handling.

Security:
- Files are created with 0o600 permissions by default
- Parent directories are created with 0o700 permissions
- Temp files are cleaned up on failure
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from timetrack.errors import Err, Ok, Result, TimeTrackError

logger = logging.getLogger(__name__)


def atomic_write_text(
    path: Path,
    content: str,
    mode: int = 0o600,
) -> Result[Path, TimeTrackError]:
    """Atomically replace ``path`` with ``content``.

    Args:
        path: Target file path
        content: Text content to write
        mode: File permissions (default 0o600 - owner read/write only)

    Returns:
        Ok(path) on success, Err(TimeTrackError) on failure
    """
    path = Path(path)
    temp_path: str | None = None

    try:
        path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)

        # Same directory as the target, rename is only atomic within a filesystem
        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.stem}_",
            suffix=f"{path.suffix}.tmp",
        )

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)

            os.chmod(temp_path, mode)
            os.replace(temp_path, path)

            logger.debug(f"Atomic write complete: {path}")
            return Ok(path)

        except Exception:
            _cleanup_temp(temp_path)
            raise

    except PermissionError as e:
        logger.error(f"Permission denied writing {path}: {e}")
        return Err(
            TimeTrackError(
                code="ATOMIC_PERMISSION_DENIED",
                message=f"Permission denied writing to {path}",
                context={"path": str(path)},
            )
        )

    except OSError as e:
        logger.error(f"OS error writing {path}: {e}")
        return Err(
            TimeTrackError(
                code="ATOMIC_WRITE_FAILED",
                message=f"Failed to write {path}: {e}",
                context={"path": str(path), "error": str(e)},
            )
        )


def atomic_write_json(
    path: Path,
    data: Any,
    mode: int = 0o600,
    indent: int | None = 2,
) -> Result[Path, TimeTrackError]:
    """Atomically write JSON data, keeping non-ASCII text readable.

    A trailing newline is added so the file diffs cleanly.
    """
    try:
        content = json.dumps(data, indent=indent, ensure_ascii=False) + "\n"
    except (TypeError, ValueError) as e:
        logger.error(f"JSON serialization failed: {e}")
        return Err(
            TimeTrackError(
                code="JSON_SERIALIZATION_FAILED",
                message=f"Failed to serialize data to JSON: {e}",
                context={"error": str(e)},
            )
        )

    return atomic_write_text(path, content, mode)


def atomic_write_yaml(
    path: Path,
    data: Any,
    mode: int = 0o600,
) -> Result[Path, TimeTrackError]:
    """Atomically write YAML data using yaml.safe_dump."""
    try:
        content = yaml.safe_dump(
            data,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
    except yaml.YAMLError as e:
        logger.error(f"YAML serialization failed: {e}")
        return Err(
            TimeTrackError(
                code="YAML_SERIALIZATION_FAILED",
                message=f"Failed to serialize data to YAML: {e}",
                context={"error": str(e)},
            )
        )

    return atomic_write_text(path, content, mode)


def _cleanup_temp(temp_path: str | None) -> None:
    if temp_path is None:
        return

    try:
        os.unlink(temp_path)
        logger.debug(f"Cleaned up temp file: {temp_path}")
    except OSError:
        # Already gone
        pass

"""Shared fixtures for Timetrack tests."""

from pathlib import Path

import pytest

from timetrack.database import Database
from timetrack.types import NO_TAG


@pytest.fixture
def db() -> Database:
    """Database with one tag and three checkpoints at 100, 200 and 300.

    100: work (tag w)
    200: break (untagged)
    300: work (tag w)
    """
    database = Database()
    tag_id = database.registry.add("w", "Work").unwrap()
    database.store.insert(100, "work", tag_id)
    database.store.insert(200, "break", NO_TAG)
    database.store.insert(300, "work", tag_id)
    return database


@pytest.fixture
def temp_timetrack_dir(tmp_path: Path, monkeypatch) -> Path:
    """Point config and default database paths at a temp directory."""
    timetrack_dir = tmp_path / ".timetrack"
    monkeypatch.setattr("timetrack.config.TIMETRACK_DIR", timetrack_dir)
    monkeypatch.setattr("timetrack.config.CONFIG_PATH", timetrack_dir / "config.yaml")
    monkeypatch.setattr("timetrack.config.DEFAULT_DATABASE_PATH", timetrack_dir / "database.json")
    monkeypatch.delenv("TIMETRACK_DATABASE", raising=False)
    return timetrack_dir

"""Configuration management for Timetrack.

Storage Structure
-----------------
~/.timetrack/
├── config.yaml       # database_path
└── database.json     # checkpoints and tags (default location)

The database location can be overridden per shell with the
``TIMETRACK_DATABASE`` environment variable, which wins over the file.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from timetrack.atomic import atomic_write_yaml
from timetrack.errors import Result, TimeTrackError

logger = logging.getLogger(__name__)

# Standard paths
TIMETRACK_DIR = Path.home() / ".timetrack"
CONFIG_PATH = TIMETRACK_DIR / "config.yaml"
DEFAULT_DATABASE_PATH = TIMETRACK_DIR / "database.json"

DATABASE_ENV_VAR = "TIMETRACK_DATABASE"


@dataclass
class Config:
    """Timetrack configuration."""

    database_path: Path = field(default_factory=lambda: DEFAULT_DATABASE_PATH)

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """Load configuration from file and environment."""
        config_path = config_path or CONFIG_PATH
        config = cls()

        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            config = cls._from_dict(data)
            logger.debug(f"Loaded config from {config_path}")

        # Environment variables override file config
        if env_path := os.environ.get(DATABASE_ENV_VAR):
            config.database_path = Path(env_path).expanduser()

        return config

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        database_path = data.get("database_path")
        if database_path:
            return cls(database_path=Path(database_path).expanduser())
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {"database_path": str(self.database_path)}

    def save(self, config_path: Path | None = None) -> Result[Path, TimeTrackError]:
        """Save configuration to file (0o600)."""
        return atomic_write_yaml(config_path or CONFIG_PATH, self.to_dict())


CONFIG_KEYS = frozenset(Config.__dataclass_fields__)

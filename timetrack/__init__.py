"""Timetrack: checkpoint-based personal time tracking."""

import logging

__version__ = "0.2.0"

# Silent unless the application (tt --debug) configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Identifier and tag id types
from timetrack.types import NO_TAG, Identifier, Position, TagId, Timestamp

__all__ = [
    "__version__",
    "NO_TAG",
    "Identifier",
    "Position",
    "TagId",
    "Timestamp",
]

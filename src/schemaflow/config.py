"""
Engine configuration from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MAX_DEPTH = 10
DEFAULT_POLL_INTERVAL_MS = 250
DEFAULT_MODAL_TEARDOWN_MS = 300


@dataclass
class EngineConfig:
    """Configuration for the schema engine services."""

    max_depth: int = DEFAULT_MAX_DEPTH
    poll_interval: float = DEFAULT_POLL_INTERVAL_MS / 1000
    modal_teardown_delay: float = DEFAULT_MODAL_TEARDOWN_MS / 1000
    catalog_dir: Path = Path("schemas")
    channel_db: Path = Path(".schemaflow/channels.db")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Load configuration from environment variables."""
        return cls(
            max_depth=int(os.environ.get("SCHEMAFLOW_MAX_DEPTH", str(DEFAULT_MAX_DEPTH))),
            poll_interval=int(
                os.environ.get("SCHEMAFLOW_POLL_INTERVAL_MS", str(DEFAULT_POLL_INTERVAL_MS))
            )
            / 1000,
            modal_teardown_delay=int(
                os.environ.get("SCHEMAFLOW_MODAL_TEARDOWN_MS", str(DEFAULT_MODAL_TEARDOWN_MS))
            )
            / 1000,
            catalog_dir=Path(os.environ.get("SCHEMAFLOW_CATALOG_DIR", "schemas")),
            channel_db=Path(os.environ.get("SCHEMAFLOW_CHANNEL_DB", ".schemaflow/channels.db")),
            log_level=os.environ.get("SCHEMAFLOW_LOG_LEVEL", "INFO").upper(),
        )

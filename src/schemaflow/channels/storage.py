"""
Storage media for channel data.

A medium holds the raw JSON text of every channel. ``MemoryChannelStorage``
lives in one process and pushes change notifications; ``SqliteChannelStorage``
is a file shared between processes and is observed by polling.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class ChannelStorage(Protocol):
    """Key/value medium holding raw channel JSON."""

    def read(self, key: str) -> str | None:
        """Return the raw text stored under ``key``, or None."""
        ...

    def write(self, key: str, raw: str) -> None:
        """Store raw text under ``key``, replacing any previous value."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        ...

    def keys(self) -> list[str]:
        """Return all stored keys."""
        ...


@runtime_checkable
class WatchableStorage(ChannelStorage, Protocol):
    """Medium that can push change notifications."""

    def watch(self, callback: ChangeCallback) -> Callable[[], None]:
        """Call ``callback(key)`` after every write or delete; returns an unwatch callable."""
        ...


# =============================================================================
# In-memory medium
# =============================================================================


class MemoryChannelStorage:
    """
    In-process medium with push notifications.

    Example:
        storage = MemoryChannelStorage()
        store = ChannelStore(storage)
        storage.write("testnet.runtime.sonar", '{"raw": {"nodes": 12}}')  # subscribers notified
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})
        self._watchers: list[ChangeCallback] = []

    def read(self, key: str) -> str | None:
        return self._items.get(key)

    def write(self, key: str, raw: str) -> None:
        self._items[key] = raw
        self._notify(key)

    def delete(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._notify(key)

    def keys(self) -> list[str]:
        return list(self._items)

    def watch(self, callback: ChangeCallback) -> Callable[[], None]:
        self._watchers.append(callback)

        def unwatch() -> None:
            if callback in self._watchers:
                self._watchers.remove(callback)

        return unwatch

    def _notify(self, key: str) -> None:
        for callback in list(self._watchers):
            try:
                callback(key)
            except Exception:
                logger.exception("Channel storage watcher failed for %s", key)


# =============================================================================
# SQLite medium
# =============================================================================

_SCHEMA = """
CREATE TABLE IF NOT EXISTS channels (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at REAL NOT NULL DEFAULT (julianday('now'))
)
"""


class SqliteChannelStorage:
    """
    Medium backed by a SQLite file shared by several processes.

    Writes from any process become visible to readers in every other
    process; there is no push notification, so pair it with a
    ``ChannelPoller``.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._lock = threading.Lock()
        with self._lock, self._conn:
            self._conn.execute(_SCHEMA)

    def read(self, key: str) -> str | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM channels WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def write(self, key: str, raw: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO channels (key, value, updated_at) VALUES (?, ?, julianday('now')) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                (key, raw),
            )

    def delete(self, key: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM channels WHERE key = ?", (key,))

    def keys(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute("SELECT key FROM channels ORDER BY key").fetchall()
        return [row[0] for row in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()

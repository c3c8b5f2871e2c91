"""
Reactive channel store.

The store is the one piece of shared mutable state in the engine: a read
cache over a storage medium plus per-channel subscriptions. Every change,
whether pushed by the medium or detected by the poller, goes through
``invalidate``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from schemaflow.channels.storage import ChannelStorage, WatchableStorage

logger = logging.getLogger(__name__)

ChannelCallback = Callable[[Any], None]


class ChannelStore:
    """
    Cache-plus-subscription store of channel data.

    Example:
        store = ChannelStore(MemoryChannelStorage())
        unsubscribe = store.subscribe("testnet.runtime.sonar", print)
        store.publish("testnet.runtime.sonar", {"raw": {"nodes": 12}})
        store.get("testnet.runtime.sonar")  # {"raw": {"nodes": 12}}
        unsubscribe()
    """

    def __init__(self, storage: ChannelStorage) -> None:
        self.storage = storage
        self._cache: dict[str, Any] = {}
        self._subscribers: dict[str, list[ChannelCallback]] = {}
        self._unwatch: Callable[[], None] | None = None

        if isinstance(storage, WatchableStorage):
            self._unwatch = storage.watch(self._on_storage_change)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def read_raw(self, key: str) -> str | None:
        """Read raw text for ``key``, falling back to its lowercased form."""
        raw = self.storage.read(key)
        if raw is None and key.lower() != key:
            raw = self.storage.read(key.lower())
        return raw

    def get(self, key: str, skip_cache: bool = False) -> Any | None:
        """
        Return the data of a channel, or None when there is none yet.

        The cache is consulted unless ``skip_cache`` is set; whatever is
        read from the medium refreshes the cache.
        """
        try:
            if not skip_cache and key in self._cache:
                return self._cache[key]

            raw = self.read_raw(key)
            if raw is None:
                return None

            parsed = json.loads(raw)
            self._cache[key] = parsed
            return parsed
        except Exception:
            logger.warning("Failed to read channel %s", key, exc_info=True)
            return None

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, key: str, callback: ChannelCallback) -> Callable[[], None]:
        """Register ``callback`` for updates of ``key``; returns an unsubscribe callable."""
        self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key)
            if not callbacks:
                return
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                del self._subscribers[key]

        return unsubscribe

    def subscribed_keys(self) -> list[str]:
        """Return keys that currently have at least one subscriber."""
        return list(self._subscribers)

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, ()))

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    def invalidate(self, key: str) -> None:
        """
        Drop the cached value of ``key``, re-read it and notify subscribers.

        Subscribers are called synchronously, once each, only when a value
        exists. A failing subscriber does not stop the others.
        """
        self._cache.pop(key, None)
        data = self.get(key)
        if data is None:
            return

        for callback in list(self._subscribers.get(key, ())):
            try:
                callback(data)
            except Exception:
                logger.exception("Channel subscriber failed for %s", key)

    def clear_cache(self) -> None:
        self._cache.clear()

    # -------------------------------------------------------------------------
    # Producer boundary
    # -------------------------------------------------------------------------

    def publish(self, key: str, value: Any) -> None:
        """Write channel data to the medium and notify subscribers."""
        self.storage.write(key, json.dumps(value))
        # Watchable media already funnel the write into invalidate
        if self._unwatch is None:
            self.invalidate(key)

    def close(self) -> None:
        """Detach from the medium's change notifications and close the medium."""
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None
        close_medium = getattr(self.storage, "close", None)
        if callable(close_medium):
            close_medium()

    def _on_storage_change(self, key: str) -> None:
        self.invalidate(key)
        # Producers may write the lowercased form of a mixed-case channel key
        for subscribed in self.subscribed_keys():
            if subscribed != key and subscribed.lower() == key:
                self.invalidate(subscribed)

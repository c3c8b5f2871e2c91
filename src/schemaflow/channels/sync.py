"""
Polling synchronization for channel media without push notifications.

The poller re-reads the raw text of watched channels at a bounded frequency
and calls ``ChannelStore.invalidate`` for every channel whose text changed,
so subscribers cannot tell a polled change from a pushed one.
"""

from __future__ import annotations

import asyncio
import logging

from schemaflow.channels.store import ChannelStore

logger = logging.getLogger(__name__)


class ChannelPoller:
    """
    Bounded-frequency poll over subscribed (and explicitly watched) channels.

    Example:
        poller = ChannelPoller(store, interval=0.25)
        await poller.start()
        ...
        await poller.stop()
    """

    def __init__(self, store: ChannelStore, interval: float = 0.25) -> None:
        if interval <= 0:
            raise ValueError("Poll interval must be positive")
        self.store = store
        self.interval = interval
        self._watched: set[str] = set()
        self._last_seen: dict[str, str | None] = {}
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def watch(self, key: str) -> None:
        """Poll ``key`` even without subscribers."""
        self._watched.add(key)

    def unwatch(self, key: str) -> None:
        self._watched.discard(key)
        self._last_seen.pop(key, None)

    def watched_keys(self) -> list[str]:
        return sorted(self._watched | set(self.store.subscribed_keys()))

    def poll_once(self) -> list[str]:
        """Check every watched channel once; returns the keys that changed."""
        changed: list[str] = []
        watched = self.watched_keys()
        for stale in self._last_seen.keys() - set(watched):
            del self._last_seen[stale]

        for key in watched:
            try:
                raw = self.store.read_raw(key)
            except Exception:
                logger.warning("Polling channel %s failed", key, exc_info=True)
                continue

            first_seen = key not in self._last_seen
            previous = self._last_seen.get(key)
            self._last_seen[key] = raw
            if first_seen or raw == previous:
                continue

            changed.append(key)
            self.store.invalidate(key)

        return changed

    async def start(self) -> None:
        """Start the poll loop on the running event loop."""
        if self.running:
            return
        self.poll_once()  # establish baselines
        self._task = asyncio.create_task(self._run())
        logger.debug("Channel poller started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("Channel poller stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.poll_once()

"""
Modal orchestration.

Tracks the lifecycle of every modal: open (seeded from its bound channel and
kept fresh by a store subscription), closing (marked closed while the exit
animation runs) and removed (deleted after a fixed, cancellable delay).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from schemaflow.channels.store import ChannelStore
from schemaflow.config import DEFAULT_MODAL_TEARDOWN_MS
from schemaflow.specs.actions import OpenModalAction
from schemaflow.specs.modal import ModalState

logger = logging.getLogger(__name__)

ModalListener = Callable[[ModalState | None, str], None]


class ModalOrchestrator:
    """
    Live set of modals and their channel subscriptions.

    Change listeners receive ``(state, modal_id)`` after every transition;
    ``state`` is None once the modal has been removed.
    """

    def __init__(
        self, store: ChannelStore, teardown_delay: float = DEFAULT_MODAL_TEARDOWN_MS / 1000
    ) -> None:
        self.store = store
        self.teardown_delay = teardown_delay
        self._modals: dict[str, ModalState] = {}
        self._unsubscribers: dict[str, Callable[[], None]] = {}
        self._teardowns: dict[str, asyncio.TimerHandle] = {}
        self._listeners: list[ModalListener] = []

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, modal_id: str) -> ModalState | None:
        return self._modals.get(modal_id)

    def modals(self) -> list[ModalState]:
        return list(self._modals.values())

    def is_tearing_down(self, modal_id: str) -> bool:
        return modal_id in self._teardowns

    def on_change(self, listener: ModalListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def open_modal(self, modal_id: str, action: OpenModalAction) -> None:
        """Open (or reopen) a modal, seeding its data from the bound channel."""
        payload = action.payload
        if payload is None:
            logger.warning("openModal for %s has no payload; ignoring", modal_id)
            return

        self._cancel_teardown(modal_id)

        data: Any = None
        if payload.channel:
            data = self.store.get(payload.channel)

        self._modals[modal_id] = ModalState(
            id=modal_id,
            is_open=True,
            channel=payload.channel,
            config=payload,
            data=data,
        )
        self._bind_channel(modal_id, payload.channel)
        logger.debug("Opened modal %s (channel=%s)", modal_id, payload.channel)
        self._notify(modal_id)

    def close_modal(self, modal_id: str) -> None:
        """Mark a modal closed now; remove it after the teardown delay."""
        modal = self._modals.get(modal_id)
        if modal is None:
            logger.debug("closeModal for unknown modal %s", modal_id)
            return

        self._modals[modal_id] = modal.model_copy(update={"is_open": False})
        self._notify(modal_id)
        self._schedule_teardown(modal_id)

    def backdrop_click(self, modal_id: str) -> None:
        """Close the modal if it is configured to close on backdrop clicks."""
        modal = self._modals.get(modal_id)
        if modal is not None and modal.is_open and modal.closes_on_backdrop:
            self.close_modal(modal_id)

    def update_data(self, modal_id: str, data: Any) -> None:
        modal = self._modals.get(modal_id)
        if modal is None:
            return
        self._modals[modal_id] = modal.model_copy(update={"data": data})
        self._notify(modal_id)

    def refresh(self, modal_id: str) -> None:
        """
        Re-read the bound channel bypassing the cache.

        One-off manual refresh. Periodic polling of open modals is done by
        ``ChannelPoller``, which watches every subscribed key, the modal
        channels included.
        """
        modal = self._modals.get(modal_id)
        if modal is None or not modal.is_open or not modal.channel:
            return
        fresh = self.store.get(modal.channel, skip_cache=True)
        if fresh is not None:
            self.update_data(modal_id, fresh)

    def shutdown(self) -> None:
        """Cancel pending teardowns and drop every modal and subscription."""
        for handle in self._teardowns.values():
            handle.cancel()
        self._teardowns.clear()
        for modal_id in list(self._modals):
            self._remove(modal_id)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _bind_channel(self, modal_id: str, channel: str | None) -> None:
        previous = self._unsubscribers.pop(modal_id, None)
        if previous is not None:
            previous()
        if not channel:
            return

        def on_update(data: Any) -> None:
            modal = self._modals.get(modal_id)
            if modal is not None and modal.is_open:
                self.update_data(modal_id, data)

        self._unsubscribers[modal_id] = self.store.subscribe(channel, on_update)

    def _schedule_teardown(self, modal_id: str) -> None:
        self._cancel_teardown(modal_id)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; removing modal %s immediately", modal_id)
            self._remove(modal_id)
            return
        self._teardowns[modal_id] = loop.call_later(self.teardown_delay, self._teardown, modal_id)

    def _cancel_teardown(self, modal_id: str) -> None:
        handle = self._teardowns.pop(modal_id, None)
        if handle is not None:
            handle.cancel()
            logger.debug("Cancelled teardown of modal %s", modal_id)

    def _teardown(self, modal_id: str) -> None:
        self._teardowns.pop(modal_id, None)
        self._remove(modal_id)

    def _remove(self, modal_id: str) -> None:
        unsubscribe = self._unsubscribers.pop(modal_id, None)
        if unsubscribe is not None:
            unsubscribe()
        if self._modals.pop(modal_id, None) is not None:
            logger.debug("Removed modal %s", modal_id)
            self._notify(modal_id)

    def _notify(self, modal_id: str) -> None:
        state = self._modals.get(modal_id)
        for listener in list(self._listeners):
            try:
                listener(state, modal_id)
            except Exception:
                logger.exception("Modal listener failed for %s", modal_id)

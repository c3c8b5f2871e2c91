"""
Action dispatch.

Rendered event handlers forward their bound action to an ``ActionDispatcher``.
Modal actions go to the attached modal host; ``emit`` actions are broadcast
on the dispatcher's event bus for collaborators outside the engine.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import ValidationError

from schemaflow.specs.actions import (
    CloseModalAction,
    EmitAction,
    OpenModalAction,
    parse_action,
)

logger = logging.getLogger(__name__)

UI_EVENT_NAME = "ui-engine-event"

AnyAction = OpenModalAction | CloseModalAction | EmitAction


# =============================================================================
# Event bus
# =============================================================================


@dataclass(frozen=True)
class UIEvent:
    """Event broadcast for an ``emit`` action."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)


UIEventListener = Callable[[UIEvent], None]


class UIEventBus:
    """Synchronous broadcast of UI events to listeners."""

    def __init__(self) -> None:
        self._listeners: list[UIEventListener] = []

    def subscribe(self, listener: UIEventListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: UIEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("UI event listener failed for %s", event.name)


# =============================================================================
# Dispatcher
# =============================================================================


class ModalHost(Protocol):
    """What the dispatcher needs from a modal orchestrator."""

    def open_modal(self, modal_id: str, action: OpenModalAction) -> None: ...

    def close_modal(self, modal_id: str) -> None: ...


class ActionDispatcher:
    """
    Routes actions to the modal host or the event bus.

    Example:
        dispatcher = ActionDispatcher()
        dispatcher.attach(ModalOrchestrator(store))
        dispatcher.dispatch(OpenModalAction(payload=ActionPayload(modal_id="m1", channel="c1")))
    """

    def __init__(self, event_bus: UIEventBus | None = None) -> None:
        self.event_bus = event_bus or UIEventBus()
        self._host: ModalHost | None = None

    @property
    def is_attached(self) -> bool:
        return self._host is not None

    def attach(self, host: ModalHost) -> None:
        self._host = host

    def detach(self) -> None:
        self._host = None

    def dispatch(self, action: AnyAction | Mapping[str, Any]) -> None:
        """Dispatch an action; a no-op (with a warning) until a host is attached."""
        if self._host is None:
            logger.warning("Action dispatched before a modal host was attached; ignoring")
            return

        if isinstance(action, Mapping):
            try:
                action = parse_action(action)
            except ValidationError as exc:
                logger.warning("Ignoring invalid action: %s", exc)
                return

        match action:
            case OpenModalAction(payload=payload) if payload is not None and payload.modal_id:
                self._host.open_modal(payload.modal_id, action)
            case CloseModalAction(payload=payload) if payload is not None and payload.modal_id:
                self._host.close_modal(payload.modal_id)
            case OpenModalAction() | CloseModalAction():
                logger.warning("Ignoring %s without modalId", action.type)
            case EmitAction(payload=payload):
                event_payload = payload.as_document() if payload is not None else {}
                self.event_bus.publish(UIEvent(name=UI_EVENT_NAME, payload=event_payload))
            case _:
                logger.warning("Unknown action type: %r", action)

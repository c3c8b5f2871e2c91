"""
Unit tests for action parsing and dispatch.
"""

import logging

import pytest
from pydantic import ValidationError

from schemaflow.runtime.dispatcher import UI_EVENT_NAME, ActionDispatcher, UIEvent, UIEventBus
from schemaflow.specs.actions import (
    ActionPayload,
    BackdropKind,
    CloseModalAction,
    EmitAction,
    OpenModalAction,
    parse_action,
)


class TestParseAction:
    """Tests for action documents."""

    def test_open_modal_document(self):
        action = parse_action(
            {
                "type": "openModal",
                "payload": {
                    "modalId": "details",
                    "channel": "ch.1",
                    "maxWidth": "600px",
                    "backdrop": "blur",
                    "closeOnBackdrop": True,
                },
            }
        )

        assert isinstance(action, OpenModalAction)
        assert action.payload.modal_id == "details"
        assert action.payload.max_width == "600px"
        assert action.payload.backdrop is BackdropKind.BLUR
        assert action.payload.close_on_backdrop is True

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_action({"type": "navigate", "payload": {}})

    def test_emit_keeps_extra_payload_keys(self):
        action = parse_action({"type": "emit", "payload": {"channel": "ch.1", "symbol": "BTC"}})
        assert isinstance(action, EmitAction)
        assert action.payload.as_document() == {"channel": "ch.1", "symbol": "BTC"}


class TestActionDispatcher:
    """Tests for ActionDispatcher routing."""

    def test_dispatch_before_attach_is_ignored(self, caplog):
        dispatcher = ActionDispatcher()
        events: list[UIEvent] = []
        dispatcher.event_bus.subscribe(events.append)

        with caplog.at_level(logging.WARNING):
            dispatcher.dispatch(EmitAction(payload=ActionPayload(channel="ch.1")))

        assert not dispatcher.is_attached
        assert events == []
        assert "before a modal host was attached" in caplog.text

    def test_open_modal_routed_to_host(self, dispatcher, host):
        action = OpenModalAction(payload=ActionPayload(modal_id="m1", channel="ch.1"))
        dispatcher.dispatch(action)
        assert host.opened == [("m1", action)]

    def test_close_modal_routed_to_host(self, dispatcher, host):
        dispatcher.dispatch({"type": "closeModal", "payload": {"modalId": "m1"}})
        assert host.closed == ["m1"]

    def test_modal_action_without_id_ignored(self, dispatcher, host):
        dispatcher.dispatch(OpenModalAction(payload=ActionPayload(channel="ch.1")))
        dispatcher.dispatch(CloseModalAction())
        assert host.opened == []
        assert host.closed == []

    def test_invalid_document_ignored(self, dispatcher, host, caplog):
        with caplog.at_level(logging.WARNING):
            dispatcher.dispatch({"type": "bogus"})
        assert host.opened == [] and host.closed == []
        assert "Ignoring invalid action" in caplog.text

    def test_emit_broadcast(self, dispatcher):
        events: list[UIEvent] = []
        dispatcher.event_bus.subscribe(events.append)

        dispatcher.dispatch({"type": "emit", "payload": {"channel": "ch.1", "side": "buy"}})

        assert events == [UIEvent(name=UI_EVENT_NAME, payload={"channel": "ch.1", "side": "buy"})]

    def test_emit_without_payload(self, dispatcher):
        events: list[UIEvent] = []
        dispatcher.event_bus.subscribe(events.append)
        dispatcher.dispatch(EmitAction())
        assert events == [UIEvent(name=UI_EVENT_NAME, payload={})]

    def test_detach(self, dispatcher, host):
        dispatcher.detach()
        dispatcher.dispatch(OpenModalAction(payload=ActionPayload(modal_id="m1")))
        assert host.opened == []


class TestUIEventBus:
    """Tests for the UI event bus."""

    def test_failing_listener_does_not_stop_others(self):
        bus = UIEventBus()
        received: list[UIEvent] = []

        def broken(_event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        bus.publish(UIEvent(name=UI_EVENT_NAME))

        assert len(received) == 1

    def test_unsubscribe(self):
        bus = UIEventBus()
        received: list[UIEvent] = []
        unsubscribe = bus.subscribe(received.append)
        unsubscribe()
        bus.publish(UIEvent(name=UI_EVENT_NAME))
        assert received == []

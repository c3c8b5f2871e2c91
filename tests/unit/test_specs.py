"""
Unit tests for schema document models.
"""

import pytest

from schemaflow.errors import SchemaValidationError
from schemaflow.specs.actions import EmitAction, OpenModalAction
from schemaflow.specs.modal import ModalState
from schemaflow.specs.node import ConditionalStyle, EventKind, PercentageStyle, UINode, parse_ui_node
from schemaflow.specs.schema import SchemaKind, SchemaProject


class TestUINode:
    """Tests for node documents."""

    def test_document_field_names(self):
        node = UINode.model_validate(
            {
                "type": "div",
                "className": "flex",
                "schemaRef": "w.a",
                "selfChannel": "ch.self",
                "refreshInterval": 1000,
                "unknownField": "ignored",
            }
        )

        assert node.class_name == "flex"
        assert node.schema_ref == "w.a"
        assert node.self_channel == "ch.self"
        assert node.refresh_interval == 1000
        assert node.has_reference

    def test_defaults(self):
        node = UINode()
        assert node.type == "div"
        assert node.children is None
        assert not node.has_reference

    def test_void_kinds(self):
        assert UINode(type="img").is_void
        assert UINode(type="BR").is_void
        assert not UINode(type="span").is_void

    def test_style_values_are_classified(self):
        node = UINode.model_validate(
            {
                "style": {
                    "color": {"condition": {"key": "x"}, "true": "a", "false": "b"},
                    "width": {"calculate": "percentage", "value": "{a}", "max": "{b}"},
                    "padding": 4,
                    "display": "flex",
                    "grid": {"rows": 2},
                }
            }
        )

        assert isinstance(node.style["color"], ConditionalStyle)
        assert isinstance(node.style["width"], PercentageStyle)
        assert node.style["padding"] == 4
        assert node.style["display"] == "flex"
        assert node.style["grid"] == {"rows": 2}

    def test_event_bindings(self):
        node = UINode.model_validate(
            {
                "events": {
                    "onMouseEnter": {"type": "emit", "payload": {"channel": "ch.1"}},
                    "onClick": {"type": "openModal", "payload": {"modalId": "m1"}},
                }
            }
        )

        bound = node.events.bound()

        assert [kind for kind, _ in bound] == [EventKind.CLICK, EventKind.MOUSE_ENTER]
        assert isinstance(bound[0][1], OpenModalAction)
        assert isinstance(bound[1][1], EmitAction)

    def test_as_document_roundtrip(self):
        document = {"type": "span", "className": "x", "children": [{"type": "b", "text": "{a}"}]}
        assert UINode.model_validate(document).as_document() == document

    def test_parse_ui_node_error(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            parse_ui_node({"children": 5}, source="channel ch.1")
        assert exc_info.value.source == "channel ch.1"
        assert "channel ch.1" in exc_info.value.message


class TestSchemaProject:
    """Tests for catalog records."""

    def test_project_document(self):
        project = SchemaProject.model_validate(
            {
                "id": "schema-1",
                "name": "Ticker",
                "widgetKey": "w.ticker",
                "type": "static",
                "schema": {"text": "{btc.raw.last}"},
                "channelKeys": ["ch.btc"],
                "channelAliases": [{"channelKey": "ch.btc", "alias": "btc"}],
                "createdAt": "2024-01-01T00:00:00Z",
            }
        )

        resolved = project.to_resolved()

        assert project.type is SchemaKind.STATIC
        assert resolved.root.text == "{btc.raw.last}"
        assert resolved.channel_keys == ["ch.btc"]
        assert resolved.channel_aliases[0].channel_key == "ch.btc"


class TestModalState:
    """Tests for modal state defaults."""

    def test_defaults(self):
        modal = ModalState(id="m1")
        assert modal.is_open
        assert modal.backdrop.value == "dark"
        assert not modal.closes_on_backdrop

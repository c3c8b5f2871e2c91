"""
Schema specification types.

Pydantic models for schema documents, actions, catalog records and modal
state.
"""

from schemaflow.specs.actions import (
    Action,
    ActionPayload,
    BackdropKind,
    CloseModalAction,
    EmitAction,
    OpenModalAction,
    parse_action,
)
from schemaflow.specs.modal import BACKDROP_CLASSES, ModalState
from schemaflow.specs.node import (
    ITEM_MARKER,
    VOID_ELEMENTS,
    ConditionalStyle,
    ConditionSpec,
    EventBindings,
    EventKind,
    FormatKind,
    FormatSpec,
    IterateSpec,
    PercentageStyle,
    StyleValue,
    UINode,
    parse_ui_node,
)
from schemaflow.specs.schema import (
    ChannelAlias,
    ResolvedSchemaData,
    SchemaKind,
    SchemaProject,
)

__all__ = [
    # Actions
    "Action",
    "ActionPayload",
    "BackdropKind",
    "CloseModalAction",
    "EmitAction",
    "OpenModalAction",
    "parse_action",
    # Modal
    "BACKDROP_CLASSES",
    "ModalState",
    # Nodes
    "ITEM_MARKER",
    "VOID_ELEMENTS",
    "ConditionalStyle",
    "ConditionSpec",
    "EventBindings",
    "EventKind",
    "FormatKind",
    "FormatSpec",
    "IterateSpec",
    "PercentageStyle",
    "StyleValue",
    "UINode",
    "parse_ui_node",
    # Schema projects
    "ChannelAlias",
    "ResolvedSchemaData",
    "SchemaKind",
    "SchemaProject",
]

"""
Schema runtime.

Reference resolution, channel collection, action dispatch, modal
orchestration, rendering and widget sessions.
"""

from schemaflow.runtime.collector import collect_required_channels, collect_self_channels, unique_channel_keys
from schemaflow.runtime.context import SELF_ALIAS, build_data_context
from schemaflow.runtime.dispatcher import (
    UI_EVENT_NAME,
    ActionDispatcher,
    ModalHost,
    UIEvent,
    UIEventBus,
)
from schemaflow.runtime.html import to_html
from schemaflow.runtime.modals import ModalOrchestrator
from schemaflow.runtime.renderer import (
    InteractionEvent,
    OutputNode,
    Renderer,
    RenderResult,
    flatten,
    render_modal,
)
from schemaflow.runtime.resolver import (
    CancellationToken,
    has_unresolved_refs,
    merge_presentation,
    placeholder_node,
    resolve_schema_refs,
)
from schemaflow.runtime.session import WidgetSession

__all__ = [
    # Collection
    "collect_required_channels",
    "collect_self_channels",
    "unique_channel_keys",
    # Data context
    "SELF_ALIAS",
    "build_data_context",
    # Dispatch
    "UI_EVENT_NAME",
    "ActionDispatcher",
    "ModalHost",
    "UIEvent",
    "UIEventBus",
    "ModalOrchestrator",
    # Rendering
    "InteractionEvent",
    "OutputNode",
    "Renderer",
    "RenderResult",
    "flatten",
    "render_modal",
    "to_html",
    # Resolution
    "CancellationToken",
    "has_unresolved_refs",
    "merge_presentation",
    "placeholder_node",
    "resolve_schema_refs",
    # Sessions
    "WidgetSession",
]

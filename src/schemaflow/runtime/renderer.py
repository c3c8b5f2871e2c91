"""
Schema renderer.

Turns a resolved schema tree plus a data context into an output tree:
conditions gate nodes, iteration expands them per array element, text and
image attributes are interpolated and formatted, styles are computed, and
event bindings become handlers that forward actions to the dispatcher.

Rendering is synchronous and a pure function of (node, data, item); the
only side effects happen when a produced handler is invoked.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from schemaflow.errors import SchemaValidationError
from schemaflow.runtime.context import SELF_ALIAS
from schemaflow.runtime.dispatcher import ActionDispatcher, AnyAction
from schemaflow.specs.modal import BACKDROP_CLASSES, ModalState
from schemaflow.specs.node import EventKind, IterateSpec, UINode, parse_ui_node
from schemaflow.utils.expression_eval import evaluate_condition, interpolate, lookup, resolve_style
from schemaflow.utils.formatting import format_template

logger = logging.getLogger(__name__)

MODAL_BACKDROP_CLASS = "fixed inset-0 z-50 flex items-center justify-center {backdrop} animate-in fade-in duration-200"
MODAL_CONTENT_CLASS = (
    "bg-zinc-900 rounded-lg shadow-2xl border border-zinc-700 animate-in zoom-in-95 duration-200"
)
MODAL_MESSAGE_CLASS = "flex items-center justify-center p-8"


# =============================================================================
# Output tree
# =============================================================================


@dataclass
class InteractionEvent:
    """An interaction delivered to a rendered handler."""

    kind: str
    propagation_stopped: bool = False

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


Handler = Callable[[InteractionEvent | None], None]


@dataclass
class OutputNode:
    """A concrete rendered element."""

    tag: str
    key: int | str = 0
    class_name: str | None = None
    style: dict[str, Any] | None = None
    text: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    children: list[OutputNode] = field(default_factory=list)
    handlers: dict[str, Handler] = field(default_factory=dict)

    def walk(self) -> Iterator[OutputNode]:
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view of the tree; handlers are listed by event name."""
        result: dict[str, Any] = {"tag": self.tag, "key": self.key}
        if self.class_name:
            result["className"] = self.class_name
        if self.style:
            result["style"] = self.style
        if self.text is not None:
            result["text"] = self.text
        if self.attributes:
            result["attributes"] = self.attributes
        if self.handlers:
            result["events"] = sorted(self.handlers)
        if self.children:
            result["children"] = [child.to_dict() for child in self.children]
        return result


RenderResult = OutputNode | list[OutputNode] | None


def flatten(results: list[RenderResult]) -> list[OutputNode]:
    """Flatten rendered children (iteration yields lists, gated nodes yield None)."""
    nodes: list[OutputNode] = []
    for result in results:
        if result is None:
            continue
        if isinstance(result, list):
            nodes.extend(result)
        else:
            nodes.append(result)
    return nodes


# =============================================================================
# Renderer
# =============================================================================


class Renderer:
    """
    Renders resolved schema trees.

    Example:
        renderer = Renderer(dispatcher)
        output = renderer.render(resolved_schema, {"btc": {"raw": {"last": 64000}}})

    When ``channel_lookup`` is given, a node carrying ``self_channel`` (set by
    the resolver on spliced schemas) renders its subtree with ``self`` bound
    to that channel's data.
    """

    def __init__(
        self,
        dispatcher: ActionDispatcher,
        channel_lookup: Callable[[str], Any] | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.channel_lookup = channel_lookup

    def render(self, node: UINode, data: Mapping[str, Any], item: Any = None, *, key: int | str = 0) -> RenderResult:
        """Render a node; returns None when gated off, a list when iterated."""
        data = self._bind_self_channel(node, data)

        if node.condition is not None and not evaluate_condition(node.condition, data, item):
            return None

        if node.iterate is not None:
            return self._render_iteration(node, node.iterate, data, item)

        return self._render_element(node, data, item, key)

    def _bind_self_channel(self, node: UINode, data: Mapping[str, Any]) -> Mapping[str, Any]:
        if not node.self_channel or self.channel_lookup is None:
            return data
        self_data = self.channel_lookup(node.self_channel)
        if self_data is None:
            return data
        return {**data, SELF_ALIAS: self_data}

    def _render_iteration(
        self, node: UINode, spec: IterateSpec, data: Mapping[str, Any], item: Any
    ) -> list[OutputNode] | None:
        items = lookup(spec.source, data, item)
        if not isinstance(items, list | tuple):
            logger.debug("Iteration source %s is not an array", spec.source)
            return None

        limit = spec.limit or len(items)
        ordered = list(items[:limit])
        if spec.reverse:
            ordered.reverse()

        # The gate was evaluated once above; each copy renders unconditionally
        template = node.model_copy(update={"iterate": None, "condition": None})
        results: list[RenderResult] = []
        for index, element in enumerate(ordered):
            results.append(self._render_element(template, data, element, index))
        return flatten(results)

    def _render_element(self, node: UINode, data: Mapping[str, Any], item: Any, key: int | str) -> OutputNode:
        style = resolve_style(node.style, data, item) if node.style else None

        text: str | None = None
        children: list[OutputNode] = []
        if not node.is_void:
            if node.text:
                if node.format is not None:
                    text = format_template(node.text, node.format, data, item)
                else:
                    text = interpolate(node.text, data, item)
            children = self._render_children(node, data, item)

        attributes: dict[str, str] = {}
        if node.src is not None:
            attributes["src"] = interpolate(node.src, data, item)
        if node.alt is not None:
            attributes["alt"] = interpolate(node.alt, data, item)

        return OutputNode(
            tag=node.type,
            key=key,
            class_name=node.class_name,
            style=style,
            text=text,
            attributes=attributes,
            children=children,
            handlers=self._bind_events(node),
        )

    def _render_children(self, node: UINode, data: Mapping[str, Any], item: Any) -> list[OutputNode]:
        results: list[RenderResult] = []
        for index, child in enumerate(node.children or []):
            try:
                results.append(self.render(child, data, item, key=index))
            except Exception:
                logger.exception("Failed to render child %d of <%s>", index, node.type)
        return flatten(results)

    def _bind_events(self, node: UINode) -> dict[str, Handler]:
        if node.events is None:
            return {}
        return {kind.value: self._make_handler(kind, action) for kind, action in node.events.bound()}

    def _make_handler(self, kind: EventKind, action: AnyAction) -> Handler:
        def handler(event: InteractionEvent | None = None) -> None:
            if event is not None:
                event.stop_propagation()
            self.dispatcher.dispatch(action)

        handler.__name__ = f"{kind.value}_handler"
        return handler


# =============================================================================
# Modal chrome
# =============================================================================


def _modal_body(modal: ModalState, renderer: Renderer) -> list[OutputNode]:
    data = modal.data
    if isinstance(data, Mapping) and data.get("ui") and "raw" in data:
        try:
            schema = parse_ui_node(data["ui"], source=f"channel {modal.channel}")
        except SchemaValidationError:
            logger.warning("Channel %s carries an invalid UI schema", modal.channel, exc_info=True)
            message = "Invalid UI schema in channel data"
        else:
            raw = data["raw"] if isinstance(data["raw"], Mapping) else {"value": data["raw"]}
            return flatten([renderer.render(schema, raw)])
    elif isinstance(data, Mapping):
        message = f"No UI data available. Keys: {', '.join(data)}"
    elif data is not None:
        message = "No UI data available."
    else:
        message = "Loading channel data..."

    return [
        OutputNode(
            tag="div",
            class_name=MODAL_MESSAGE_CLASS,
            children=[OutputNode(tag="div", class_name="text-zinc-500", text=message)],
        )
    ]


def render_modal(modal: ModalState, renderer: Renderer, on_backdrop_click: Callable[[str], None]) -> OutputNode | None:
    """
    Render the overlay for one modal; None while it is closing.

    The backdrop handler calls ``on_backdrop_click(modal_id)`` (normally
    ``ModalOrchestrator.backdrop_click``); the content handler only stops
    propagation so clicks inside the modal never reach the backdrop.
    """
    if not modal.is_open:
        return None

    config = modal.config
    style = {
        "width": config.width if config else None,
        "height": config.height if config else None,
        "maxWidth": (config.max_width if config else None) or "90vw",
        "maxHeight": (config.max_height if config else None) or "90vh",
        "overflow": "auto",
    }

    def on_content_click(event: InteractionEvent | None = None) -> None:
        if event is not None:
            event.stop_propagation()

    def on_backdrop(event: InteractionEvent | None = None) -> None:
        on_backdrop_click(modal.id)

    content = OutputNode(
        tag="div",
        class_name=MODAL_CONTENT_CLASS,
        style={name: value for name, value in style.items() if value is not None},
        children=_modal_body(modal, renderer),
        handlers={EventKind.CLICK.value: on_content_click},
    )
    return OutputNode(
        tag="div",
        key=modal.id,
        class_name=MODAL_BACKDROP_CLASS.format(backdrop=BACKDROP_CLASSES[modal.backdrop]),
        children=[content],
        handlers={EventKind.CLICK.value: on_backdrop},
    )

"""
Schema reference resolution.

Replaces every ``schemaRef`` node with the fully resolved tree of the
referenced schema, merging the reference site's class names and style into
the resolved root. Recursion is bounded by a depth counter, which also
terminates cyclic reference graphs.
"""

from __future__ import annotations

import logging

from schemaflow.catalog import SchemaCatalog
from schemaflow.config import DEFAULT_MAX_DEPTH
from schemaflow.errors import ResolutionCancelled
from schemaflow.specs.node import UINode

logger = logging.getLogger(__name__)

PLACEHOLDER_CLASS = "p-4 bg-red-500/10 border border-red-500/20 rounded"


class CancellationToken:
    """
    Flag checked by a resolution after every catalog lookup.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(resolve_schema_refs(node, catalog, token=token))
        token.cancel()  # a newer resolution superseded this one
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self, widget_key: str | None = None) -> None:
        if self._cancelled:
            raise ResolutionCancelled(widget_key)


def placeholder_node(message: str) -> UINode:
    """Visible stand-in for a reference that could not be resolved."""
    return UINode(type="div", class_name=PLACEHOLDER_CLASS, text=message)


def merge_presentation(reference: UINode, resolved: UINode, self_channel: str | None) -> UINode:
    """
    Merge a reference site's presentation into the resolved root.

    Reference class names are appended after the resolved root's own;
    reference style entries win over same-named resolved entries.
    """
    update: dict[str, object] = {}

    if reference.class_name:
        update["class_name"] = (
            f"{resolved.class_name} {reference.class_name}" if resolved.class_name else reference.class_name
        )

    if reference.style:
        update["style"] = {**(resolved.style or {}), **reference.style}

    if self_channel and not resolved.self_channel:
        update["self_channel"] = self_channel

    return resolved.model_copy(update=update) if update else resolved


async def resolve_schema_refs(
    node: UINode,
    catalog: SchemaCatalog,
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    parent_self_channel: str | None = None,
    *,
    token: CancellationToken | None = None,
) -> UINode:
    """
    Resolve composition references recursively.

    A missing schema becomes a placeholder node naming the widget key; the
    depth guard returns the node unresolved. Neither raises.

    Raises:
        ResolutionCancelled: If ``token`` was cancelled during a catalog lookup.
    """
    if depth >= max_depth:
        logger.warning("Max depth %d reached, stopping recursion at %s", max_depth, node.schema_ref or node.type)
        return node

    if node.schema_ref:
        widget_key = node.schema_ref
        try:
            schema_data = await catalog.get_schema_by_widget_key(widget_key)
        except Exception:
            if token is not None:
                token.raise_if_cancelled(widget_key)
            logger.error("Failed to resolve schema %s", widget_key, exc_info=True)
            return placeholder_node(f"Error loading schema: {widget_key}")

        if token is not None:
            token.raise_if_cancelled(widget_key)

        if schema_data is None:
            logger.warning("Schema not found: %s", widget_key)
            return placeholder_node(f"Schema not found: {widget_key}")

        nested_self_channel = node.self_channel or parent_self_channel
        resolved = await resolve_schema_refs(
            schema_data.root,
            catalog,
            depth + 1,
            max_depth,
            nested_self_channel,
            token=token,
        )
        return merge_presentation(node, resolved, nested_self_channel)

    if node.children:
        resolved_children = [
            await resolve_schema_refs(child, catalog, depth, max_depth, parent_self_channel, token=token)
            for child in node.children
        ]
        return node.model_copy(update={"children": resolved_children})

    return node


def has_unresolved_refs(node: UINode) -> bool:
    """Check whether any node in the tree still carries a composition reference."""
    if node.schema_ref:
        return True
    return any(has_unresolved_refs(child) for child in node.children or [])

"""
Required channel collection.

Walks a schema tree, following composition references through the catalog,
and lists every (channel, alias) pair the schema transitively depends on.
"""

from __future__ import annotations

import logging

from schemaflow.catalog import SchemaCatalog
from schemaflow.config import DEFAULT_MAX_DEPTH
from schemaflow.runtime.resolver import CancellationToken
from schemaflow.specs.node import UINode
from schemaflow.specs.schema import ChannelAlias

logger = logging.getLogger(__name__)


async def collect_required_channels(
    node: UINode,
    catalog: SchemaCatalog,
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    collected: list[ChannelAlias] | None = None,
    *,
    token: CancellationToken | None = None,
) -> list[ChannelAlias]:
    """
    Collect the channel aliases a schema depends on.

    A referenced schema contributes its declared aliases, then its own tree
    is walked one level deeper. Children are walked at the same depth.
    Pairs are appended in document order and never deduplicated, so the
    same channel may appear under several aliases.

    Lookups run one at a time in document order: the same catalog always
    yields the same list.

    Raises:
        ResolutionCancelled: If ``token`` was cancelled during a catalog lookup.
    """
    if collected is None:
        collected = []

    if depth >= max_depth:
        logger.warning(
            "Max depth %d reached while collecting channels at %s", max_depth, node.schema_ref or node.type
        )
        return collected

    if node.schema_ref:
        try:
            schema_data = await catalog.get_schema_by_widget_key(node.schema_ref)
        except Exception:
            if token is not None:
                token.raise_if_cancelled(node.schema_ref)
            logger.error("Failed to collect channels from %s", node.schema_ref, exc_info=True)
            schema_data = None

        if token is not None:
            token.raise_if_cancelled(node.schema_ref)

        if schema_data is not None:
            collected.extend(schema_data.channel_aliases)
            await collect_required_channels(
                schema_data.root, catalog, depth + 1, max_depth, collected, token=token
            )

    for child in node.children or []:
        await collect_required_channels(child, catalog, depth, max_depth, collected, token=token)

    return collected


def unique_channel_keys(required: list[ChannelAlias]) -> list[str]:
    """Distinct channel keys of a required channel list, in first-seen order."""
    return list(dict.fromkeys(pair.channel_key for pair in required))


def collect_self_channels(node: UINode, collected: list[str] | None = None) -> list[str]:
    """Distinct self channels recorded on a resolved tree, in document order."""
    if collected is None:
        collected = []
    if node.self_channel and node.self_channel not in collected:
        collected.append(node.self_channel)
    for child in node.children or []:
        collect_self_channels(child, collected)
    return collected

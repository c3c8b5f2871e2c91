"""
Data context assembly.

Merges channel data from the store into the mapping a schema renders
against: the self channel under ``self`` and every required channel under
its alias.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from schemaflow.channels.store import ChannelStore
from schemaflow.specs.schema import ChannelAlias

logger = logging.getLogger(__name__)

SELF_ALIAS = "self"


def build_data_context(
    store: ChannelStore,
    required: Iterable[ChannelAlias],
    self_channel: str | None = None,
    base: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build the data context for a schema.

    Starts from ``base``, binds ``self`` from ``self_channel``, then binds
    each required channel under its alias. An alias already present is
    skipped, so the first binding of an alias wins; channels without data
    (or whose data is not an object) are left out until they load.
    """
    data: dict[str, Any] = dict(base or {})

    if self_channel:
        self_data = store.get(self_channel)
        if self_data is not None:
            data[SELF_ALIAS] = self_data

    for pair in required:
        if pair.alias in data:
            continue
        channel_data = store.get(pair.channel_key)
        if not isinstance(channel_data, Mapping):
            logger.debug("No data yet for %s (alias %s)", pair.channel_key, pair.alias)
            continue
        data[pair.alias] = channel_data

    return data

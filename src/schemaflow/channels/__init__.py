"""
Channel data layer.

Storage media, the reactive channel store and the polling synchronizer.
"""

from schemaflow.channels.storage import (
    ChannelStorage,
    MemoryChannelStorage,
    SqliteChannelStorage,
    WatchableStorage,
)
from schemaflow.channels.store import ChannelCallback, ChannelStore
from schemaflow.channels.sync import ChannelPoller

__all__ = [
    "ChannelCallback",
    "ChannelPoller",
    "ChannelStorage",
    "ChannelStore",
    "MemoryChannelStorage",
    "SqliteChannelStorage",
    "WatchableStorage",
]

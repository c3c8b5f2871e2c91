"""Shared fixtures for schemaflow unit tests."""

from __future__ import annotations

import pytest
from factories import RecordingHost

from schemaflow.catalog import InMemorySchemaCatalog
from schemaflow.channels import ChannelStore, MemoryChannelStorage, SqliteChannelStorage
from schemaflow.runtime.dispatcher import ActionDispatcher


@pytest.fixture
def memory_storage() -> MemoryChannelStorage:
    return MemoryChannelStorage()


@pytest.fixture
def store(memory_storage: MemoryChannelStorage) -> ChannelStore:
    """Channel store over a push-notifying in-memory medium."""
    return ChannelStore(memory_storage)


@pytest.fixture
def sqlite_store():
    """Channel store over an in-memory SQLite medium (no push notifications)."""
    store = ChannelStore(SqliteChannelStorage(":memory:"))
    yield store
    store.close()


@pytest.fixture
def catalog() -> InMemorySchemaCatalog:
    return InMemorySchemaCatalog()


@pytest.fixture
def host() -> RecordingHost:
    return RecordingHost()


@pytest.fixture
def dispatcher(host: RecordingHost) -> ActionDispatcher:
    """Dispatcher attached to a recording host."""
    dispatcher = ActionDispatcher()
    dispatcher.attach(host)
    return dispatcher

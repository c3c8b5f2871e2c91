"""
schemaflow - declarative UI schemas rendered against live channel data.

Schemas are JSON node trees that may embed each other by widget key; the
engine resolves those references, subscribes to the data channels the tree
needs and re-renders as the channels change.
"""

__version__ = "0.1.0"

from schemaflow.catalog import InMemorySchemaCatalog, JsonDirectoryCatalog, SchemaCatalog  # noqa: E402
from schemaflow.channels import ChannelPoller, ChannelStore  # noqa: E402
from schemaflow.config import EngineConfig  # noqa: E402
from schemaflow.errors import SchemaFlowError  # noqa: E402
from schemaflow.runtime import (  # noqa: E402
    ActionDispatcher,
    ModalOrchestrator,
    Renderer,
    WidgetSession,
    resolve_schema_refs,
)
from schemaflow.specs import SchemaProject, UINode  # noqa: E402

__all__ = [
    "__version__",
    "ActionDispatcher",
    "ChannelPoller",
    "ChannelStore",
    "EngineConfig",
    "InMemorySchemaCatalog",
    "JsonDirectoryCatalog",
    "ModalOrchestrator",
    "Renderer",
    "SchemaCatalog",
    "SchemaFlowError",
    "SchemaProject",
    "UINode",
    "WidgetSession",
    "resolve_schema_refs",
]

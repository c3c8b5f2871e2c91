"""
Schema catalogs.

The engine consumes a catalog only through ``SchemaCatalog``: given a widget
key, return the schema's node tree plus its declared channels, or None.
Two implementations are provided, an in-memory registry and a directory of
JSON schema documents.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from schemaflow.errors import CatalogError, CatalogLoadError
from schemaflow.specs.node import UINode
from schemaflow.specs.schema import ResolvedSchemaData, SchemaProject

logger = logging.getLogger(__name__)


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class SchemaCatalog(Protocol):
    """Lookup service for schemas by widget key."""

    async def get_schema_by_widget_key(self, widget_key: str) -> ResolvedSchemaData | None:
        """Return the schema registered under ``widget_key``, or None when not found."""
        ...


# =============================================================================
# In-memory catalog
# =============================================================================


class InMemorySchemaCatalog:
    """
    Catalog backed by a dict of schema projects.

    Example:
        catalog = InMemorySchemaCatalog()
        catalog.register(project)
        data = await catalog.get_schema_by_widget_key(project.widget_key)
    """

    def __init__(self, projects: list[SchemaProject] | None = None) -> None:
        self._projects: dict[str, SchemaProject] = {}
        for project in projects or []:
            self.register(project)

    def register(self, project: SchemaProject) -> None:
        """Add or replace a project under its widget key."""
        if project.widget_key in self._projects:
            logger.debug("Replacing schema %s", project.widget_key)
        self._projects[project.widget_key] = project

    def remove(self, widget_key: str) -> None:
        self._projects.pop(widget_key, None)

    def get_project(self, widget_key: str) -> SchemaProject | None:
        return self._projects.get(widget_key)

    def projects(self) -> list[SchemaProject]:
        return list(self._projects.values())

    async def get_schema_by_widget_key(self, widget_key: str) -> ResolvedSchemaData | None:
        project = self._projects.get(widget_key)
        if project is None:
            return None
        return project.to_resolved()


# =============================================================================
# JSON directory catalog
# =============================================================================


def load_schema_project(path: Path) -> SchemaProject:
    """Load one schema project document.

    ``widgetKey`` defaults to the file stem, ``id`` to ``schema-<widgetKey>``
    and ``name`` to the widget key.

    Raises:
        CatalogLoadError: If the file is unreadable, not JSON, or not a valid project.
    """
    try:
        document: Any = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogLoadError(path, str(exc)) from exc

    if not isinstance(document, dict):
        raise CatalogLoadError(path, "schema document must be a JSON object")

    widget_key = document.get("widgetKey") or path.stem
    document = {
        "id": f"schema-{widget_key}",
        "name": widget_key,
        **document,
        "widgetKey": widget_key,
    }

    try:
        return SchemaProject.model_validate(document)
    except ValidationError as exc:
        raise CatalogLoadError(path, f"invalid schema project: {exc}") from exc


class JsonDirectoryCatalog(InMemorySchemaCatalog):
    """
    Catalog loaded from ``*.json`` schema project documents in a directory.

    Example:
        catalog = JsonDirectoryCatalog(Path("schemas"))
        catalog.load()
    """

    def __init__(self, directory: Path) -> None:
        super().__init__()
        self.directory = Path(directory)

    def load(self) -> int:
        """(Re)load every document in the directory; returns the number loaded.

        Raises:
            CatalogError: If the directory does not exist.
            CatalogLoadError: If any document is malformed.
        """
        if not self.directory.is_dir():
            raise CatalogError(f"Schema directory not found: {self.directory}")

        projects = [load_schema_project(path) for path in sorted(self.directory.glob("*.json"))]
        self._projects.clear()
        for project in projects:
            self.register(project)

        logger.info("Loaded %d schemas from %s", len(projects), self.directory)
        return len(projects)


# =============================================================================
# Catalog utilities
# =============================================================================


def extract_schema_refs(node: UINode) -> list[str]:
    """Return the widget keys referenced in a node tree, unique, in document order."""
    refs: list[str] = []

    def walk(current: UINode) -> None:
        if current.schema_ref and current.schema_ref not in refs:
            refs.append(current.schema_ref)
        for child in current.children or []:
            walk(child)

    walk(node)
    return refs


def find_schemas_by_channel_key(
    catalog: InMemorySchemaCatalog, channel_key: str
) -> list[SchemaProject]:
    """Return projects declaring ``channel_key`` directly or through an alias."""
    return [
        project
        for project in catalog.projects()
        if channel_key in project.channel_keys
        or any(alias.channel_key == channel_key for alias in project.channel_aliases)
    ]


def collect_nested_schemas(
    catalog: InMemorySchemaCatalog,
    widget_key: str,
    visited: set[str] | None = None,
) -> list[SchemaProject]:
    """
    Collect a project and every project it references, for export.

    Follows both ``nestedSchemas`` and ``schemaRef`` nodes. Each widget key
    is visited once, so cyclic references terminate.
    """
    visited = visited if visited is not None else set()
    if widget_key in visited:
        return []
    visited.add(widget_key)

    project = catalog.get_project(widget_key)
    if project is None:
        logger.debug("Nested schema not in catalog: %s", widget_key)
        return []

    pending = list(dict.fromkeys([*project.nested_schemas, *extract_schema_refs(project.root)]))
    result = [project]
    for nested_key in pending:
        result.extend(collect_nested_schemas(catalog, nested_key, visited))
    return result

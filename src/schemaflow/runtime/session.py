"""
Widget session.

Ties the pieces together for one active widget: resolve its references,
collect the channels it needs, keep subscriptions on them, and re-render
whenever one of them changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from schemaflow.catalog import InMemorySchemaCatalog, SchemaCatalog
from schemaflow.channels.store import ChannelStore
from schemaflow.config import EngineConfig
from schemaflow.errors import CatalogError, ResolutionCancelled
from schemaflow.runtime.collector import collect_required_channels, collect_self_channels, unique_channel_keys
from schemaflow.runtime.context import build_data_context
from schemaflow.runtime.dispatcher import ActionDispatcher
from schemaflow.runtime.renderer import Renderer, RenderResult
from schemaflow.runtime.resolver import CancellationToken, resolve_schema_refs
from schemaflow.specs.node import UINode
from schemaflow.specs.schema import ChannelAlias, SchemaProject

logger = logging.getLogger(__name__)

UpdateListener = Callable[[RenderResult], None]


class WidgetSession:
    """
    One active widget and its live data.

    Example:
        session = WidgetSession(catalog, store, dispatcher)
        await session.activate("widget.app.sonar")
        output = session.render()
        session.on_update(lambda output: print(to_html(output)))
    """

    def __init__(
        self,
        catalog: SchemaCatalog,
        store: ChannelStore,
        dispatcher: ActionDispatcher,
        config: EngineConfig | None = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.dispatcher = dispatcher
        self.config = config or EngineConfig()
        self.renderer = Renderer(dispatcher, channel_lookup=store.get)

        self.project: SchemaProject | None = None
        self.resolved: UINode | None = None
        self.required: list[ChannelAlias] = []

        self._token: CancellationToken | None = None
        self._unsubscribers: list[Callable[[], None]] = []
        self._listeners: list[UpdateListener] = []

    @property
    def active(self) -> bool:
        return self.resolved is not None

    async def activate(self, target: str | SchemaProject) -> bool:
        """
        Make ``target`` the active widget.

        Any activation still in flight is cancelled. Returns False when this
        activation was itself superseded before it finished.

        Raises:
            CatalogError: If ``target`` is a widget key the catalog does not hold.
        """
        if self._token is not None:
            self._token.cancel()
        token = CancellationToken()
        self._token = token

        project = await self._load_project(target)
        if token.cancelled:
            return False

        try:
            resolved = await resolve_schema_refs(
                project.root, self.catalog, max_depth=self.config.max_depth, token=token
            )
            nested = await collect_required_channels(
                project.root, self.catalog, max_depth=self.config.max_depth, token=token
            )
        except ResolutionCancelled:
            logger.debug("Activation of %s superseded", project.widget_key)
            return False

        if token.cancelled:
            logger.debug("Activation of %s superseded", project.widget_key)
            return False

        self._unsubscribe_all()
        self.project = project
        self.resolved = resolved
        self.required = [*project.channel_aliases, *nested]
        self._subscribe_all()
        logger.info(
            "Activated %s (%d channel aliases)", project.widget_key, len(self.required)
        )
        self._notify()
        return True

    def deactivate(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
        self._unsubscribe_all()
        self.project = None
        self.resolved = None
        self.required = []

    def data_context(self) -> dict[str, Any]:
        self_channel = self.project.self_channel_key if self.project else None
        return build_data_context(self.store, self.required, self_channel)

    def render(self) -> RenderResult:
        if self.resolved is None:
            return None
        return self.renderer.render(self.resolved, self.data_context())

    def on_update(self, listener: UpdateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _load_project(self, target: str | SchemaProject) -> SchemaProject:
        if isinstance(target, SchemaProject):
            return target

        if isinstance(self.catalog, InMemorySchemaCatalog):
            project = self.catalog.get_project(target)
            if project is not None:
                return project

        schema_data = await self.catalog.get_schema_by_widget_key(target)
        if schema_data is None:
            raise CatalogError(f"Schema not found: {target}")
        return SchemaProject(
            id=f"schema-{target}",
            name=target,
            widget_key=target,
            root=schema_data.root,
            channel_keys=schema_data.channel_keys,
            channel_aliases=schema_data.channel_aliases,
        )

    def _watched_channels(self) -> list[str]:
        keys = unique_channel_keys(self.required)
        if self.project and self.project.self_channel_key:
            keys.append(self.project.self_channel_key)
        if self.resolved is not None:
            # nested references rebind "self" to these at render time
            keys.extend(collect_self_channels(self.resolved))
        return list(dict.fromkeys(keys))

    def _subscribe_all(self) -> None:
        for key in self._watched_channels():
            self._unsubscribers.append(self.store.subscribe(key, self._on_channel_update))

    def _unsubscribe_all(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_channel_update(self, _data: Any) -> None:
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        output = self.render()
        for listener in list(self._listeners):
            try:
                listener(output)
            except Exception:
                logger.exception("Widget update listener failed")

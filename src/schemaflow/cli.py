"""
schemaflow command line.

Commands:
- render:   resolve a schema and print its output tree (JSON or HTML)
- channels: list the (channel, alias) pairs a schema depends on
- catalog:  inspect the schema catalog directory
- publish:  write channel data into the channel database
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from schemaflow import __version__
from schemaflow.catalog import InMemorySchemaCatalog, JsonDirectoryCatalog, load_schema_project
from schemaflow.channels import ChannelStore, MemoryChannelStorage, SqliteChannelStorage
from schemaflow.config import EngineConfig
from schemaflow.errors import SchemaFlowError
from schemaflow.logging_setup import configure_logging
from schemaflow.runtime.collector import collect_required_channels
from schemaflow.runtime.dispatcher import ActionDispatcher
from schemaflow.runtime.html import to_html
from schemaflow.runtime.renderer import OutputNode
from schemaflow.runtime.session import WidgetSession
from schemaflow.specs.schema import SchemaProject

app = typer.Typer(
    help="schemaflow - render declarative UI schemas against live channel data",
    no_args_is_help=True,
)
catalog_app = typer.Typer(help="Inspect the schema catalog", no_args_is_help=True)
app.add_typer(catalog_app, name="catalog")

console = Console()

CATALOG_OPTION_HELP = "Directory of schema project documents (default: SCHEMAFLOW_CATALOG_DIR)"
CHANNELS_OPTION_HELP = "Channel database file (default: SCHEMAFLOW_CHANNEL_DB)"


def version_callback(value: bool) -> None:
    if value:
        console.print(f"schemaflow {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (default: SCHEMAFLOW_LOG_LEVEL or INFO)",
    ),
) -> None:
    """schemaflow CLI main callback for global options."""
    configure_logging(log_level or EngineConfig.from_env().log_level)


# =============================================================================
# Helpers
# =============================================================================


def _load_catalog(directory: Path | None) -> JsonDirectoryCatalog:
    catalog = JsonDirectoryCatalog(directory or EngineConfig.from_env().catalog_dir)
    if catalog.directory.is_dir():
        catalog.load()
    return catalog


def _find_project(target: str, catalog: InMemorySchemaCatalog) -> SchemaProject:
    """Resolve a schema file path or a widget key from the catalog."""
    path = Path(target)
    if path.suffix == ".json" and path.is_file():
        project = load_schema_project(path)
        if catalog.get_project(project.widget_key) is None:
            catalog.register(project)
        return project

    project = catalog.get_project(target)
    if project is None:
        raise SchemaFlowError(f"Schema not found: {target}")
    return project


def _open_store(db_path: Path | None, create: bool = False) -> ChannelStore:
    path = db_path or EngineConfig.from_env().channel_db
    if path.exists() or create:
        path.parent.mkdir(parents=True, exist_ok=True)
        return ChannelStore(SqliteChannelStorage(path))
    return ChannelStore(MemoryChannelStorage())


# =============================================================================
# Commands
# =============================================================================


@app.command(name="render")
def render_command(
    schema: str = typer.Argument(..., help="Schema project file or widget key"),
    catalog_dir: Path | None = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
    channel_db: Path | None = typer.Option(None, "--channels", help=CHANNELS_OPTION_HELP),
    output_format: str = typer.Option("json", "--format", "-f", help="Output format: json or html"),
) -> None:
    """Resolve a schema and render it against the channel database."""
    if output_format not in ("json", "html"):
        console.print(f"[red]Unknown format: {output_format}[/red]")
        raise typer.Exit(1)

    try:
        catalog = _load_catalog(catalog_dir)
        project = _find_project(schema, catalog)
    except SchemaFlowError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    store = _open_store(channel_db)
    session = WidgetSession(catalog, store, ActionDispatcher(), EngineConfig.from_env())
    try:
        asyncio.run(session.activate(project))
        output = session.render()
    finally:
        session.deactivate()
        store.close()

    if output_format == "html":
        typer.echo(str(to_html(output)))
        return

    if output is None:
        document: object = None
    elif isinstance(output, OutputNode):
        document = output.to_dict()
    else:
        document = [node.to_dict() for node in output]
    typer.echo(json.dumps(document, indent=2))


@app.command(name="channels")
def channels_command(
    schema: str = typer.Argument(..., help="Schema project file or widget key"),
    catalog_dir: Path | None = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
) -> None:
    """List the channels a schema depends on, including nested references."""
    try:
        catalog = _load_catalog(catalog_dir)
        project = _find_project(schema, catalog)
    except SchemaFlowError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    nested = asyncio.run(collect_required_channels(project.root, catalog))

    table = Table(title=f"Channels for {project.widget_key}")
    table.add_column("Channel", style="cyan")
    table.add_column("Alias", style="green")
    table.add_column("Source")
    for pair in project.channel_aliases:
        table.add_row(pair.channel_key, pair.alias, "declared")
    for pair in nested:
        table.add_row(pair.channel_key, pair.alias, "nested")
    console.print(table)


@catalog_app.command(name="list")
def catalog_list_command(
    catalog_dir: Path | None = typer.Option(None, "--catalog", "-c", help=CATALOG_OPTION_HELP),
) -> None:
    """List the schemas in the catalog directory."""
    catalog = JsonDirectoryCatalog(catalog_dir or EngineConfig.from_env().catalog_dir)
    try:
        catalog.load()
    except SchemaFlowError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Schemas in {catalog.directory}")
    table.add_column("Widget key", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Channels", justify="right")
    for project in sorted(catalog.projects(), key=lambda p: p.widget_key):
        table.add_row(project.widget_key, project.name, project.type.value, str(len(project.channel_aliases)))
    console.print(table)


@app.command(name="publish")
def publish_command(
    key: str = typer.Argument(..., help="Channel key"),
    value: str = typer.Argument(..., help="Channel data as JSON"),
    channel_db: Path | None = typer.Option(None, "--channels", help=CHANNELS_OPTION_HELP),
) -> None:
    """Write channel data into the channel database."""
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON: {e}[/red]")
        raise typer.Exit(1)

    store = _open_store(channel_db, create=True)
    try:
        store.publish(key, data)
    finally:
        store.close()
    console.print(f"[green]Published {key}[/green]")


# =============================================================================
# Main Entry Point
# =============================================================================


def main() -> None:
    app(standalone_mode=True)


if __name__ == "__main__":
    main()

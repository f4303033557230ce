"""
Resource admin CLI.

Resource types are registered by application modules; pass them with
``--module`` (repeatable) so their registrations run before the command.

Usage:
    resource-admin resources --module blog.admin
    resource-admin export articles --module blog.admin --scope published -o articles.csv
    resource-admin serve --module blog.admin --create-tables
"""

import json
import os
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from admin_shared.config.settings import settings
from resource_admin import __version__
from resource_admin.resources.registry import ResourceRegistry, load_registry as import_registry

app = typer.Typer(
    name="resource-admin",
    help="Generic resource admin CLI",
    add_completion=False,
)
console = Console()


def load_registry(modules: list[str]) -> ResourceRegistry:
    """Import the given modules and return the registry they populated."""
    try:
        return import_registry(modules)
    except ImportError as e:
        console.print(f"[red]✗ Cannot import module: {e}[/red]")
        raise typer.Exit(1)


# =============================================================================
# Server Commands
# =============================================================================


@app.command()
def serve(
    module: list[str] = typer.Option([], "--module", "-m", help="Module registering resources"),
    host: str = typer.Option(settings.rest_api_host, help="Bind host"),
    port: int = typer.Option(settings.rest_api_port, help="Bind port"),
    create_tables: bool = typer.Option(False, "--create-tables", help="Create missing tables on startup"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the admin API server."""
    import uvicorn

    from resource_admin.main import create_app

    registry = load_registry(module)
    if not len(registry):
        console.print("[yellow]No resources registered; pass --module[/yellow]")

    console.print(f"[blue]Serving {len(registry)} resource(s) on {host}:{port}{settings.api_prefix}[/blue]")
    if reload:
        # The reloader imports the app in a fresh process, which rebuilds
        # the registry from these variables.
        os.environ["RESOURCE_MODULES"] = json.dumps(module)
        os.environ["CREATE_TABLES"] = "true" if create_tables else "false"
        uvicorn.run(
            "resource_admin.main:create_app_from_settings",
            factory=True,
            host=host,
            port=port,
            reload=True,
        )
    else:
        uvicorn.run(create_app(registry, create_tables=create_tables), host=host, port=port)


# =============================================================================
# Resource Commands
# =============================================================================


@app.command()
def resources(
    module: list[str] = typer.Option([], "--module", "-m", help="Module registering resources"),
):
    """List registered resource types."""
    registry = load_registry(module)

    table = Table(title="Registered Resources")
    table.add_column("Key", style="cyan")
    table.add_column("Model", style="green")
    table.add_column("Scopes")
    table.add_column("Filters")
    table.add_column("Batch Actions", style="yellow")

    for entry in registry:
        descriptor = entry.descriptor
        scopes = [
            f"{name}*" if name == descriptor.default_scope else name
            for name in descriptor.scopes
        ]
        table.add_row(
            entry.key,
            descriptor.model.__name__,
            ", ".join(scopes) or "-",
            ", ".join(descriptor.filters) or "-",
            ", ".join(descriptor.batch_actions) or "-",
        )

    console.print(table)


@app.command()
def export(
    key: str = typer.Argument(..., help="Resource key"),
    module: list[str] = typer.Option([], "--module", "-m", help="Module registering resources"),
    scope: Optional[str] = typer.Option(None, help="Scope name"),
    filter_: list[str] = typer.Option([], "--filter", "-f", help="Filter as field=value (repeatable)"),
    order: Optional[str] = typer.Option(None, help="Order, e.g. title_desc"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write CSV here instead of stdout"),
):
    """Export a resource type as CSV."""
    from admin_shared.infrastructure.correlation import correlation_scope
    from admin_shared.infrastructure.db import get_db_context
    from admin_shared.utils.exceptions import UnknownResourceError
    from resource_admin.resources.export import export_csv

    registry = load_registry(module)
    try:
        entry = registry.get(key)
    except UnknownResourceError:
        console.print(f"[red]✗ Unknown resource '{key}'[/red]")
        raise typer.Exit(1)

    filters = {}
    for item in filter_:
        name, separator, value = item.partition("=")
        if not separator:
            console.print(f"[red]✗ Filter must be field=value: {item}[/red]")
            raise typer.Exit(1)
        filters[name] = value

    params = {"scope": scope, "filter": filters, "order": order}
    with correlation_scope(), get_db_context() as db:
        content = export_csv(entry.service_class(db), params)

    if output is None:
        sys.stdout.write(content)
    else:
        output.write_text(content, encoding="utf-8")
        console.print(f"[green]✓ Exported {key} to {output}[/green]")


@app.command()
def version():
    """Show version information."""
    table = Table(title="Resource Admin Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("Resource Admin", __version__)
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()

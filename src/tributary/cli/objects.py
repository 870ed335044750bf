"""
tributary objects - List catalogued objects.
"""

from pathlib import Path

import typer
from rich.table import Table

from tributary.cli.common import check_format, cli_errors, console, open_context, print_json
from tributary.core.catalog import parse_kind, parse_layer


def objects(
    layer: str | None = typer.Option(None, "--layer", "-l", help="Filter by layer"),
    kind: str | None = typer.Option(None, "--kind", "-k", help="Filter by object kind"),
    active_only: bool = typer.Option(False, "--active-only", help="Hide dropped objects"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
) -> None:
    """
    List objects in the catalog, sorted by id.
    """
    check_format(output_format, ("table", "json"))
    with cli_errors():
        if layer is not None:
            layer = parse_layer(layer)
        if kind is not None:
            kind = parse_kind(kind)
        context = open_context(project_dir, env=env)
        try:
            found = context.catalog.list(layer=layer, kind=kind, include_inactive=not active_only)
        finally:
            context.close()

    if output_format == "json":
        print_json({"objects": [obj.to_dict() for obj in found], "total": len(found)})
        return

    if not found:
        console.print("[dim]No objects found[/dim]")
        return

    table = Table(title=f"Objects ({len(found)})", show_header=True)
    table.add_column("Id", style="cyan")
    table.add_column("Kind", style="green")
    table.add_column("Layer", style="magenta")
    table.add_column("Active", style="dim")
    for obj in found:
        table.add_row(obj.id, obj.kind.value, obj.layer.value, "yes" if obj.active else "[red]no[/red]")
    console.print(table)

"""
tributary map - The full layer-to-layer lineage map.
"""

from pathlib import Path

import typer
from rich.table import Table

from tributary.cli.common import check_format, cli_errors, console, open_context, print_json
from tributary.core.catalog import parse_layer


def lineage_map(
    layer: str | None = typer.Option(None, "--layer", "-l", help="Only rows touching this layer"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Build a fresh lineage snapshot and print it.

    Rows are ordered by source layer, source, target layer, target.
    """
    check_format(output_format, ("table", "json"))
    with cli_errors():
        if layer is not None:
            layer = parse_layer(layer)
        context = open_context(project_dir, env=env, verbose=verbose)
        try:
            snapshot = context.materializer.rebuild()
        finally:
            context.close()

    if output_format == "json":
        print_json(snapshot.to_dict(layer))
        return

    rows = snapshot.filter(layer)
    if not rows:
        console.print("[yellow]No edges recorded[/yellow]")
        return

    table = Table(title=f"Lineage Map (v{snapshot.version})")
    table.add_column("Source Layer", style="magenta")
    table.add_column("Source", style="cyan")
    table.add_column("Target Layer", style="magenta")
    table.add_column("Target", style="cyan")
    table.add_column("Relation", style="dim")
    for row in rows:
        table.add_row(
            row.source_layer.value,
            row.source_path,
            row.target_layer.value,
            row.target_path,
            row.relation_kind or "-",
        )
    console.print(table)

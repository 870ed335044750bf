"""
tributary snapshot - Rebuild and inspect the materialized lineage snapshot.
"""

from pathlib import Path

import typer
from rich.table import Table

from tributary.cli.common import check_format, cli_errors, console, open_context, print_json

app = typer.Typer(name="snapshot", help="Lineage snapshot commands", no_args_is_help=True)


@app.command("rebuild")
def rebuild(
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Rebuild the lineage snapshot and persist it to the state database.
    """
    with cli_errors():
        context = open_context(project_dir, env=env, verbose=verbose)
        try:
            snapshot = context.materializer.rebuild()
            persisted = context.state_store is not None
        finally:
            context.close()

    console.print(
        f"[green]Published snapshot v{snapshot.version}[/green] "
        f"with {snapshot.edge_count} edge(s) across {snapshot.object_count} object(s)"
    )
    if not persisted:
        console.print("[dim]No state database configured; snapshot was not persisted[/dim]")


@app.command("status")
def status(
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
) -> None:
    """
    Show the last persisted snapshot and the size of the live graph.
    """
    check_format(output_format, ("table", "json"))
    with cli_errors():
        context = open_context(project_dir, env=env)
        try:
            persisted = context.state_store.latest_snapshot_info() if context.state_store else None
            data = {
                "objects": len(context.catalog),
                "edges": len(context.edges),
                "snapshot": persisted,
            }
        finally:
            context.close()

    if output_format == "json":
        print_json(data)
        return

    table = Table(title="Lineage Snapshot", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Objects", str(data["objects"]))
    table.add_row("Edges", str(data["edges"]))
    if persisted is None:
        table.add_row("Snapshot", "[yellow]never persisted[/yellow]")
    else:
        table.add_row("Version", str(persisted["version"]))
        table.add_row("Built at", persisted["built_at"].isoformat() if persisted["built_at"] else "-")
        table.add_row("Snapshot edges", str(persisted["edge_count"]))
    console.print(table)

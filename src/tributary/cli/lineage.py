"""
tributary lineage - Where an object's data came from.
"""

from pathlib import Path

import typer

from tributary.cli.common import check_format, cli_errors, open_context, render_traversal


def lineage(
    object_id: str = typer.Argument(..., help="Qualified object id, e.g. analytics.v_daily_sales"),
    depth: int | None = typer.Option(None, "--depth", help="Maximum hops (default from config)"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, tree, json"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Show every object OBJECT_ID was derived from, directly or transitively.

    Examples:
        tributary lineage analytics.v_daily_sales
        tributary lineage analytics.v_daily_sales --format json
    """
    check_format(output_format)
    with cli_errors():
        context = open_context(project_dir, env=env, verbose=verbose)
        try:
            result = context.queries.lineage_of(object_id, depth)
        finally:
            context.close()
    render_traversal(result, output_format, "Lineage")

"""
Shared helpers for CLI commands: project loading, error exits and output.
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from tributary.core.context import LineageContext
from tributary.core.types import TraversalResult
from tributary.exceptions import (
    SnapshotError,
    StoreUnavailableError,
    TraversalCancelledError,
    TributaryError,
)
from tributary.utils.logging import get_logger, setup_logging_from_config

logger = get_logger("tributary.cli")
console = Console()
err_console = Console(stderr=True)

OUTPUT_FORMATS = ("table", "tree", "json")

# Exit code 2: the graph could not be read or written; 1: the request itself was bad
_UNAVAILABLE = (StoreUnavailableError, SnapshotError, TraversalCancelledError)


def exit_code_for(error: TributaryError) -> int:
    return 2 if isinstance(error, _UNAVAILABLE) else 1


@contextmanager
def cli_errors() -> Iterator[None]:
    """Print domain errors and exit with the matching code."""
    try:
        yield
    except TributaryError as e:
        logger.debug(f"Command failed: {e!r}")
        err_console.print(f"[red]Error:[/red] {escape(e.message)}", highlight=False)
        raise typer.Exit(exit_code_for(e)) from e


def open_context(project_dir: Path, env: str | None = None, verbose: bool = False) -> LineageContext:
    """Load the project's lineage context and configure logging from its config."""
    context = LineageContext.from_project(project_dir, env=env)
    logging_config = dict(context.config.data)
    if verbose:
        logging_config["logging"] = {**(logging_config.get("logging") or {}), "level": "DEBUG"}
    setup_logging_from_config(logging_config, project_dir)
    return context


def print_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


def check_format(output_format: str, allowed: tuple[str, ...] = OUTPUT_FORMATS) -> str:
    if output_format not in allowed:
        raise typer.BadParameter(f"expected one of: {', '.join(allowed)}", param_hint="--format")
    return output_format


def render_traversal(result: TraversalResult, output_format: str, title: str) -> None:
    """Render a traversal result as a rich table, a level tree or JSON."""
    if output_format == "json":
        print_json(result.to_dict())
        return

    if not result.steps:
        console.print(f"[yellow]No objects reachable from {result.root_id} within depth {result.max_depth}[/yellow]")
        return

    if output_format == "tree":
        tree = Tree(f"[bold blue]{result.root_id}[/bold blue] [dim]({title.lower()})[/dim]")
        kinds = {step.object_id: step.object_kind for step in result.steps}
        for level, object_ids in result.by_level().items():
            branch = tree.add(f"[magenta]level {level}[/magenta]")
            for object_id in object_ids:
                branch.add(f"[cyan]{object_id}[/cyan] [dim]({kinds[object_id]})[/dim]")
        console.print(tree)
        return

    table = Table(title=f"{title}: {result.root_id}")
    table.add_column("Level", style="magenta", justify="right")
    table.add_column("Object", style="cyan")
    table.add_column("Kind", style="green")
    for step in result.steps:
        table.add_row(str(step.level), step.object_id, step.object_kind.value)
    console.print(table)
    console.print(f"[dim]{len(result)} object(s), max depth {result.max_depth}[/dim]")

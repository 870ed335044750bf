"""
tributary ingest - Record a derivation edge in the project's state database.
"""

from pathlib import Path

import typer

from tributary.cli.common import cli_errors, console, open_context
from tributary.exceptions import ConfigurationError


def ingest(
    source: str = typer.Argument(..., help="Source object id"),
    target: str = typer.Argument(..., help="Target object id (derived from source)"),
    source_kind: str = typer.Option(..., "--source-kind", help="Source object kind, e.g. raw-table"),
    target_kind: str = typer.Option(..., "--target-kind", help="Target object kind, e.g. staging-table"),
    relation: str = typer.Option("", "--relation", "-r", help="How the target is derived, e.g. 'COPY INTO'"),
    source_layer: str | None = typer.Option(None, "--source-layer", help="Override inferred source layer"),
    target_layer: str | None = typer.Option(None, "--target-layer", help="Override inferred target layer"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
) -> None:
    """
    Record that TARGET is derived from SOURCE.

    Both objects are registered on first reference. Needs `state.path` in
    config.yaml so the edge outlives the command.

    Example:
        tributary ingest raw.sales staging.stg_sales --source-kind raw-table \\
            --target-kind staging-table --relation "COPY INTO"
    """
    with cli_errors():
        context = open_context(project_dir, env=env)
        try:
            if context.state_store is None:
                raise ConfigurationError(
                    "No state database configured; set state.path in config.yaml to persist edges"
                )
            edge = context.ingestor.report(
                source,
                source_kind,
                target,
                target_kind,
                relation,
                source_layer=source_layer,
                target_layer=target_layer,
            )
        finally:
            context.close()

    relation_label = f" [dim]({edge.relation_kind})[/dim]" if edge.relation_kind else ""
    console.print(f"[green]Recorded[/green] {edge.source_id} -> {edge.target_id}{relation_label}")

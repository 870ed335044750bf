"""
Main CLI entry point.
"""

import typer

from tributary import __version__
from tributary.cli import impact, ingest, lineage, lineage_map, objects, serve, snapshot


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"tributary version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="tributary",
    help="Tributary - Lineage and impact analysis for layered data pipelines",
    add_completion=True,
)

# Register commands
app.command("impact")(impact.impact)
app.command("lineage")(lineage.lineage)
app.command("map")(lineage_map.lineage_map)
app.command("objects")(objects.objects)
app.command("ingest")(ingest.ingest)
app.command("serve")(serve.serve)
app.add_typer(snapshot.app, name="snapshot")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    Tributary - Lineage and impact analysis for layered data pipelines.

    Run 'tributary <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        if not version:
            typer.echo(ctx.get_help())
            raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()

"""
tributary serve - Long-running lineage service.

Runs Tributary as an HTTP service with:
- GET /api/v1/objects/{id}/impact - Forward impact analysis
- GET /api/v1/objects/{id}/lineage - Backward lineage
- GET /api/v1/lineage/map - Latest lineage snapshot
- POST /api/v1/edges - Report a derivation
- Background snapshot rebuilds and rule evaluation
"""

from pathlib import Path

import typer

from tributary.service.server import run_service


def serve(
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    no_background: bool = typer.Option(
        False, "--no-background", help="Disable background snapshot rebuilds and rule evaluation"
    ),
    host: str | None = typer.Option(None, help="Host to bind to (default: service.host or 127.0.0.1)"),
    port: int | None = typer.Option(None, help="Port to bind to (default: service.port or 8080)"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Run Tributary as a long-running service.
    """
    run_service(
        project_dir=project_dir,
        env=env,
        host=host,
        port=port,
        verbose=verbose,
        enable_background=not no_background,
    )

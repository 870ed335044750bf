"""
Tributary long-running service (HTTP API + background loops).

Provides:
- REST API for lineage queries and edge reporting
- Background snapshot rebuilds on ``snapshot.every_s``
- Background rule evaluation, ticked every second
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

from aiohttp import web

from tributary.core.context import LineageContext
from tributary.exceptions import SnapshotError, TributaryError
from tributary.service.api import setup_routes
from tributary.service.api.middleware import error_middleware
from tributary.utils.logging import get_logger, setup_logging_from_config

logger = get_logger("tributary.service")

DEFAULT_SNAPSHOT_EVERY_S = 300.0
RULE_TICK_S = 1.0


class TributaryService:
    def __init__(
        self,
        project_dir: Path | None = None,
        env: str | None = None,
        verbose: bool = False,
        context: LineageContext | None = None,
    ):
        self.project_dir = Path(project_dir) if project_dir is not None else None
        self.env = env
        self.verbose = verbose
        self.context: LineageContext = context or LineageContext()

        self.background_running = False
        self._background_tasks: list[asyncio.Task] = []
        self._stopping = asyncio.Event()

    def initialize(self) -> None:
        """Load the project's lineage context and configure logging."""
        if self.project_dir is None:
            raise TributaryError("Cannot initialize service without a project directory")
        self.context = LineageContext.from_project(self.project_dir, env=self.env)
        logging_config = dict(self.context.config.data)
        if self.verbose:
            logging_config["logging"] = {**(logging_config.get("logging") or {}), "level": "DEBUG"}
        setup_logging_from_config(logging_config, self.project_dir)
        logger.info(
            f"Initialized with {len(self.context.catalog)} object(s) and {len(self.context.edges)} edge(s)"
        )

    @property
    def snapshot_every_s(self) -> float:
        return float(self.context.config.get("snapshot.every_s", DEFAULT_SNAPSHOT_EVERY_S))

    def start_background_tasks(self) -> None:
        """Start the snapshot and rule loops."""
        self._stopping.clear()
        self.background_running = True
        self._background_tasks.append(asyncio.create_task(self._snapshot_loop()))
        self._background_tasks.append(asyncio.create_task(self._rule_loop()))

    async def stop_background_tasks(self) -> None:
        self._stopping.set()
        for t in list(self._background_tasks):
            t.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self.background_running = False

    async def _snapshot_loop(self) -> None:
        """
        Rebuild the lineage snapshot at startup, then every ``snapshot.every_s``.

        Config:
          snapshot:
            every_s: 300   # 0 disables periodic rebuilds
        """
        every_s = self.snapshot_every_s
        if every_s <= 0:
            return

        next_run = 0.0
        while not self._stopping.is_set():
            now = time.monotonic()
            if now >= next_run:
                try:
                    await asyncio.to_thread(self.context.materializer.rebuild)
                except SnapshotError as e:
                    # Previous snapshot stays published; retry on the next interval
                    logger.warning(f"Scheduled snapshot rebuild failed: {e}")
                next_run = now + every_s
            await asyncio.sleep(0.5)

    async def _rule_loop(self) -> None:
        if not self.context.rules.rules:
            return

        while not self._stopping.is_set():
            try:
                evaluations = await asyncio.to_thread(self.context.rules.tick)
                for evaluation in evaluations:
                    if evaluation.triggered:
                        logger.debug(f"Rule '{evaluation.rule_name}' fired: {evaluation.message}")
            except Exception as e:
                logger.error(f"rule loop error: {e}")
            await asyncio.sleep(RULE_TICK_S)


def create_app(svc: TributaryService, *, enable_background: bool = True) -> web.Application:
    """Build the aiohttp application for a service."""
    app = web.Application(middlewares=[error_middleware])
    setup_routes(app, svc)

    async def on_startup(app: web.Application) -> None:
        if enable_background:
            svc.start_background_tasks()

    async def on_cleanup(app: web.Application) -> None:
        await svc.stop_background_tasks()
        svc.context.close()

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)
    return app


def run_service(
    *,
    project_dir: Path,
    env: str | None,
    host: str | None = None,
    port: int | None = None,
    verbose: bool = False,
    enable_background: bool = True,
) -> None:
    """
    Run the Tributary service (blocking).

    Args:
        project_dir: Project directory path
        env: Environment name (dev, staging, prod)
        host: Host to bind to (default: ``service.host`` or 127.0.0.1)
        port: Port to bind to (default: ``service.port`` or 8080)
        verbose: Enable verbose logging
        enable_background: Run snapshot rebuilds and rule evaluation in the background
    """
    svc = TributaryService(project_dir=project_dir, env=env, verbose=verbose)
    try:
        svc.initialize()
    except TributaryError as e:
        raise RuntimeError(f"Initialization failed: {e}") from None

    host = host or svc.context.config.get("service.host", "127.0.0.1")
    port = port or int(svc.context.config.get("service.port", 8080))

    app = create_app(svc, enable_background=enable_background)
    logger.info(f"Tributary service starting on http://{host}:{port}")
    logger.info(f"API available at http://{host}:{port}/api/v1/")

    # Cancel in-flight handlers (and so their traversals) when the client disconnects
    web.run_app(app, host=host, port=port, access_log=None, handler_cancellation=True)

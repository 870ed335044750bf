"""
Lineage context: one explicitly owned graph and everything built on it.

Several contexts can coexist (one per environment, one per test) since no
catalog or edge state is global.

Project startup order:
1. Config (with validation)
2. State store (optional), hydrating catalog and edges
3. Edge manifest (optional)
4. Rules
"""

from __future__ import annotations

import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from tributary.config.loader import Config, load_config
from tributary.config.singleton import GlobalConfig
from tributary.core.catalog import ObjectCatalog
from tributary.core.edges import DependencyEdgeStore
from tributary.core.ingestion import EdgeIngestor
from tributary.core.lineage import LineageQueryService
from tributary.core.rules import RuleEngine, rules_from_config
from tributary.core.snapshot import LineageSnapshotMaterializer
from tributary.core.state import StateStore
from tributary.core.traversal import GraphTraversalEngine
from tributary.utils.logging import get_logger

logger = get_logger("tributary.context")


class LineageContext:
    """Owns a catalog, its edge store, and the engine/services over them."""

    def __init__(
        self,
        config: Config | None = None,
        state_store: StateStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or Config({})
        self.state_store = state_store
        self.catalog = ObjectCatalog(state_store=state_store, clock=clock)
        self.edges = DependencyEdgeStore(self.catalog, state_store=state_store, clock=clock)
        self.engine = GraphTraversalEngine(
            self.catalog,
            self.edges,
            default_max_depth=self.config.default_max_depth,
            max_depth_limit=self.config.max_depth_limit,
        )
        self.materializer = LineageSnapshotMaterializer(self.catalog, self.edges, state_store=state_store, clock=clock)
        self.queries = LineageQueryService(self.engine, self.materializer)
        self.ingestor = EdgeIngestor(self.catalog, self.edges)
        self.rules = RuleEngine(self.queries)

    @classmethod
    def from_project(cls, project_dir: Path, env: str | None = None) -> LineageContext:
        """
        Build a context from a project directory containing config.yaml.

        Raises:
            ConfigurationError: If config, manifest or rules are invalid
            StoreUnavailableError: If the configured state database cannot be opened
        """
        project_dir = Path(project_dir)
        env = env or os.environ.get("TRIBUTARY_ENV", "dev")

        config = load_config(project_dir, env=env)
        GlobalConfig.set_config(config)

        state_store = StateStore.from_config(config.data, project_dir)
        context = cls(config, state_store)
        if state_store is not None:
            state_store.load_into(context.catalog, context.edges)
            persisted = state_store.latest_snapshot_info()
            if persisted is not None:
                context.materializer.resume_from(persisted["version"])

        manifest = config.get("manifest")
        if manifest:
            manifest_path = Path(manifest)
            if not manifest_path.is_absolute():
                manifest_path = project_dir / manifest_path
            context.ingestor.load_manifest(manifest_path)

        for rule in rules_from_config(config.rules):
            context.rules.register(rule)

        logger.debug(
            f"Context ready for {project_dir} ({env}): {len(context.catalog)} object(s), "
            f"{len(context.edges)} edge(s), {len(context.rules.rules)} rule(s)"
        )
        return context

    def close(self) -> None:
        if self.state_store is not None:
            self.state_store.close()

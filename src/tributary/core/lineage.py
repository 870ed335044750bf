"""
Public lineage queries: forward impact, backward lineage and the full map.

All operations are reads; they never mutate the catalog or the edge set.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from tributary.core.snapshot import LineageSnapshotMaterializer
from tributary.core.traversal import CancellationToken, GraphTraversalEngine
from tributary.core.types import Direction, LineageSnapshot, TraversalRequest, TraversalResult
from tributary.utils.logging import get_logger

logger = get_logger("tributary.lineage")


class LineageQueryService:
    """Answers "what breaks downstream" and "where did this come from"."""

    def __init__(self, engine: GraphTraversalEngine, materializer: LineageSnapshotMaterializer) -> None:
        self.engine = engine
        self.materializer = materializer

    def impact_of(
        self,
        object_id: str,
        max_depth: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> TraversalResult:
        """Objects derived, directly or transitively, from ``object_id``."""
        return self.engine.traverse(self._request(object_id, Direction.FORWARD, max_depth), cancel_token)

    def lineage_of(
        self,
        object_id: str,
        max_depth: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> TraversalResult:
        """Objects that ``object_id`` was derived from, directly or transitively."""
        return self.engine.traverse(self._request(object_id, Direction.BACKWARD, max_depth), cancel_token)

    async def impact_of_async(
        self,
        object_id: str,
        max_depth: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> TraversalResult:
        return await self.engine.traverse_async(self._request(object_id, Direction.FORWARD, max_depth), cancel_token)

    async def lineage_of_async(
        self,
        object_id: str,
        max_depth: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> TraversalResult:
        return await self.engine.traverse_async(self._request(object_id, Direction.BACKWARD, max_depth), cancel_token)

    def full_map(self) -> LineageSnapshot:
        """The latest materialized snapshot; does not traverse live."""
        return self.materializer.current()

    def snapshot_status(self, now: datetime | None = None) -> dict[str, Any]:
        """Staleness information for monitoring the snapshot."""
        snapshot = self.materializer.current()
        return {
            "version": snapshot.version,
            "built_at": snapshot.built_at.isoformat() if snapshot.built_at else None,
            "age_seconds": self.materializer.age_seconds(now),
            "edge_count": snapshot.edge_count,
            "object_count": snapshot.object_count,
            "rebuild_count": self.materializer.rebuild_count,
            "last_error": self.materializer.last_error,
        }

    def _request(self, object_id: str, direction: Direction, max_depth: int | None) -> TraversalRequest:
        return TraversalRequest(
            root_id=object_id,
            direction=direction,
            max_depth=self.engine.resolve_depth(max_depth),
        )

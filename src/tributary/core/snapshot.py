"""
Lineage snapshot materialization.

Flattens the full edge set into denormalised rows for cheap full-graph reads.
A rebuild is assembled off to the side and published with a single reference
assignment, so readers always see a complete snapshot, old or new.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from tributary.core.catalog import ObjectCatalog
from tributary.core.edges import DependencyEdgeStore
from tributary.core.types import LineageSnapshot, SnapshotRow
from tributary.exceptions import SnapshotError, StoreUnavailableError
from tributary.utils.logging import get_logger

if TYPE_CHECKING:
    from tributary.core.state import StateStore

logger = get_logger("tributary.snapshot")


class LineageSnapshotMaterializer:
    """
    Rebuilds and publishes LineageSnapshot instances.

    Not self-scheduling: callers (CLI, HTTP trigger, the service's interval
    loop) decide when to call :meth:`rebuild`.
    """

    def __init__(
        self,
        catalog: ObjectCatalog,
        edges: DependencyEdgeStore,
        state_store: StateStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.catalog = catalog
        self.edges = edges
        self._state_store = state_store
        self._clock = clock or (lambda: datetime.now(UTC))
        self._current = LineageSnapshot()
        self._rebuild_lock = threading.Lock()
        self.rebuild_count = 0
        self.last_error: str | None = None

    def current(self) -> LineageSnapshot:
        """The latest published snapshot (an empty one before the first rebuild)."""
        return self._current

    @property
    def last_rebuilt_at(self) -> datetime | None:
        return self._current.built_at

    def age_seconds(self, now: datetime | None = None) -> float | None:
        """Seconds since the last successful rebuild, None if never rebuilt."""
        built_at = self._current.built_at
        if built_at is None:
            return None
        return ((now or self._clock()) - built_at).total_seconds()

    def resume_from(self, version: int) -> None:
        """Continue numbering after a previously persisted version; publishes nothing."""
        with self._rebuild_lock:
            if version > self._current.version:
                self._current = LineageSnapshot(version=version)

    def rebuild(self) -> LineageSnapshot:
        """
        Rebuild the snapshot from the current edge set and publish it.

        Returns:
            The newly published snapshot

        Raises:
            SnapshotError: If the rebuild fails; the previous snapshot stays published
        """
        with self._rebuild_lock:
            previous = self._current
            try:
                snapshot = self._build(previous.version + 1)
            except Exception as e:
                self.last_error = str(e)
                logger.error(f"Snapshot rebuild failed, keeping version {previous.version}: {e}")
                raise SnapshotError(
                    f"Snapshot rebuild failed: {e}", details={"published_version": previous.version}
                ) from e

            self._current = snapshot
            self.rebuild_count += 1
            self.last_error = None
            logger.info(f"Published lineage snapshot v{snapshot.version} with {snapshot.edge_count} edge(s)")
            # Persisted under the lock so stored versions never go backwards
            self._persist(snapshot)

        return snapshot

    def _build(self, version: int) -> LineageSnapshot:
        rows = []
        for edge in self.edges.all_edges():
            source = self.catalog.get(edge.source_id)
            target = self.catalog.get(edge.target_id)
            rows.append(
                SnapshotRow(
                    source_path=source.id,
                    source_kind=source.kind,
                    target_path=target.id,
                    target_kind=target.kind,
                    source_layer=source.layer,
                    target_layer=target.layer,
                    relation_kind=edge.relation_kind,
                )
            )
        rows.sort(key=SnapshotRow.sort_key)
        return LineageSnapshot(
            rows=tuple(rows),
            built_at=self._clock(),
            version=version,
            object_count=len(self.catalog),
        )

    def _persist(self, snapshot: LineageSnapshot) -> None:
        # The in-memory snapshot is authoritative; a persistence failure never un-publishes it
        if self._state_store is None:
            return
        try:
            self._state_store.save_snapshot(snapshot)
        except StoreUnavailableError as e:
            logger.warning(f"Could not persist snapshot v{snapshot.version}: {e}")

"""
Dependency edge store.

Append/update-only store of directed "target derived from source" edges,
indexed by both endpoints so that outgoing and incoming lookups cost
O(degree) rather than O(total edges).
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from tributary.core.catalog import ObjectCatalog, normalize_id
from tributary.core.types import DependencyEdge
from tributary.exceptions import SelfReferentialEdgeError, UnknownObjectError
from tributary.utils.logging import get_logger

if TYPE_CHECKING:
    from tributary.core.state import StateStore

logger = get_logger("tributary.edges")


class DependencyEdgeStore:
    """
    Thread-safe, doubly indexed edge set.

    Edges are immutable values; an update replaces the edge under its
    ``(source_id, target_id)`` key in one step, so concurrent readers see
    either the previous or the new edge, never a mix. Concurrent updates to
    the same key are last-writer-wins.
    """

    def __init__(
        self,
        catalog: ObjectCatalog,
        state_store: StateStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.catalog = catalog
        self._edges: dict[tuple[str, str], DependencyEdge] = {}
        self._outgoing: dict[str, dict[str, DependencyEdge]] = defaultdict(dict)  # source -> target -> edge
        self._incoming: dict[str, dict[str, DependencyEdge]] = defaultdict(dict)  # target -> source -> edge
        self._lock = threading.RLock()
        self._state_store = state_store
        self._clock = clock or (lambda: datetime.now(UTC))

    def add_edge(self, source_id: str, target_id: str, relation_kind: str = "") -> DependencyEdge:
        """
        Record that ``target_id`` is derived from ``source_id``.

        Re-observing an existing pair refreshes ``observed_at`` and replaces
        ``relation_kind``. Nothing is applied when validation fails.

        Returns:
            The stored edge

        Raises:
            InvalidIdentityError: If either id is malformed
            SelfReferentialEdgeError: If source and target are the same object
            UnknownObjectError: If either endpoint is not registered
            StoreUnavailableError: If write-through persistence fails
        """
        source = normalize_id(source_id)
        target = normalize_id(target_id)
        if source == target:
            raise SelfReferentialEdgeError(source)
        if not self.catalog.exists(source):
            raise UnknownObjectError(source, role="source object")
        if not self.catalog.exists(target):
            raise UnknownObjectError(target, role="target object")

        relation_kind = (relation_kind or "").strip()

        with self._lock:
            previous = self._edges.get((source, target))
            edge = DependencyEdge(
                source_id=source,
                target_id=target,
                relation_kind=relation_kind,
                observed_at=self._clock(),
            )
            if self._state_store is not None:
                self._state_store.save_edge(edge)
            self._put(edge)

        if previous is None:
            logger.debug(f"Added edge {source} -> {target} ({relation_kind or 'unspecified'})")
        elif previous.relation_kind != relation_kind:
            logger.debug(
                f"Updated edge {source} -> {target}: {previous.relation_kind!r} -> {relation_kind!r}"
            )
        return edge

    def _put(self, edge: DependencyEdge) -> None:
        self._edges[edge.key] = edge
        self._outgoing[edge.source_id][edge.target_id] = edge
        self._incoming[edge.target_id][edge.source_id] = edge

    def edges_from(self, object_id: str) -> frozenset[DependencyEdge]:
        """Outgoing edges: objects derived from ``object_id``."""
        normalized = normalize_id(object_id)
        with self._lock:
            targets = self._outgoing.get(normalized)
            return frozenset(targets.values()) if targets else frozenset()

    def edges_to(self, object_id: str) -> frozenset[DependencyEdge]:
        """Incoming edges: objects ``object_id`` was derived from."""
        normalized = normalize_id(object_id)
        with self._lock:
            sources = self._incoming.get(normalized)
            return frozenset(sources.values()) if sources else frozenset()

    def get_edge(self, source_id: str, target_id: str) -> DependencyEdge | None:
        return self._edges.get((normalize_id(source_id), normalize_id(target_id)))

    def all_edges(self) -> list[DependencyEdge]:
        """A consistent copy of every edge, taken under the store lock."""
        with self._lock:
            return list(self._edges.values())

    def load(self, edges: Iterable[DependencyEdge]) -> None:
        """Bulk-load already persisted edges without writing them back."""
        with self._lock:
            for edge in edges:
                self._put(edge)

    def __len__(self) -> int:
        return len(self._edges)

"""
Type definitions for Tributary.

Catalog objects, dependency edges, traversal requests/results and lineage
snapshots. Everything here is immutable once constructed so readers can share
instances across threads without copying.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

DEFAULT_MAX_DEPTH = 5


class ObjectKind(StrEnum):
    """Kind of pipeline artifact."""

    RAW_TABLE = "raw-table"
    STAGING_TABLE = "staging-table"
    CURATED_FACT = "curated-fact"
    CURATED_DIMENSION = "curated-dimension"
    VIEW = "view"
    MATERIALIZED_VIEW = "materialized-view"
    AGGREGATE_TABLE = "aggregate-table"
    PIPE = "pipe"
    TASK = "task"
    PROCEDURE = "procedure"
    EXTERNAL_STORAGE = "external-storage"


class Layer(StrEnum):
    """Coarse pipeline stage, used for presentation grouping only."""

    LANDING = "landing"
    STAGING = "staging"
    CURATED = "curated"
    ANALYTICS = "analytics"
    EXTERNAL = "external"


class Direction(StrEnum):
    """Traversal direction."""

    FORWARD = "forward"  # who depends on me (impact)
    BACKWARD = "backward"  # what do I depend on (lineage)


@dataclass(frozen=True)
class SchemaObject:
    """A uniquely identified pipeline artifact."""

    id: str
    kind: ObjectKind
    layer: Layer
    active: bool = True
    registered_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "layer": self.layer.value,
            "active": self.active,
            "registered_at": self.registered_at.isoformat() if self.registered_at else None,
        }


@dataclass(frozen=True)
class DependencyEdge:
    """Directed relation: ``target_id`` is derived from ``source_id``."""

    source_id: str
    target_id: str
    relation_kind: str
    observed_at: datetime

    @property
    def key(self) -> tuple[str, str]:
        return (self.source_id, self.target_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "target_id": self.target_id,
            "relation_kind": self.relation_kind,
            "observed_at": self.observed_at.isoformat(),
        }


@dataclass(frozen=True)
class TraversalRequest:
    """A single bounded walk from ``root_id``. Constructed per query."""

    root_id: str
    direction: Direction = Direction.FORWARD
    max_depth: int = DEFAULT_MAX_DEPTH


@dataclass(frozen=True)
class TraversalStep:
    """One object reached by a traversal, at its shortest hop distance."""

    level: int
    object_id: str
    object_kind: ObjectKind

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level, "object_id": self.object_id, "object_kind": self.object_kind.value}


@dataclass(frozen=True)
class TraversalResult:
    """
    Ordered result of a traversal.

    Steps are sorted by level, then object id. Each reachable object appears
    exactly once; the root itself is never included.
    """

    root_id: str
    direction: Direction
    max_depth: int
    steps: tuple[TraversalStep, ...] = ()

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[TraversalStep]:
        return iter(self.steps)

    def object_ids(self) -> list[str]:
        return [step.object_id for step in self.steps]

    def levels(self) -> dict[str, int]:
        """Map of object id to the level it was reached at."""
        return {step.object_id: step.level for step in self.steps}

    def by_level(self) -> dict[int, list[str]]:
        grouped: dict[int, list[str]] = {}
        for step in self.steps:
            grouped.setdefault(step.level, []).append(step.object_id)
        return grouped

    @property
    def depth_reached(self) -> int:
        return self.steps[-1].level if self.steps else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_id": self.root_id,
            "direction": self.direction.value,
            "max_depth": self.max_depth,
            "total": len(self.steps),
            "steps": [step.to_dict() for step in self.steps],
        }


@dataclass(frozen=True)
class SnapshotRow:
    """One flattened edge in a lineage snapshot."""

    source_path: str
    source_kind: ObjectKind
    target_path: str
    target_kind: ObjectKind
    source_layer: Layer
    target_layer: Layer
    relation_kind: str = ""

    def sort_key(self) -> tuple[str, str, str, str]:
        return (self.source_layer.value, self.source_path, self.target_layer.value, self.target_path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_path": self.source_path,
            "source_kind": self.source_kind.value,
            "target_path": self.target_path,
            "target_kind": self.target_kind.value,
            "source_layer": self.source_layer.value,
            "target_layer": self.target_layer.value,
            "relation_kind": self.relation_kind,
        }


@dataclass(frozen=True)
class LineageSnapshot:
    """A consistent, point-in-time flattening of the full edge set."""

    rows: tuple[SnapshotRow, ...] = ()
    built_at: datetime | None = None
    version: int = 0
    object_count: int = 0
    edge_count: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "edge_count", len(self.rows))

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[SnapshotRow]:
        return iter(self.rows)

    def filter(self, layer: Layer | str | None = None) -> list[SnapshotRow]:
        """Rows whose source or target sits in ``layer`` (all rows when None)."""
        if layer is None:
            return list(self.rows)
        wanted = Layer(layer)
        return [row for row in self.rows if wanted in (row.source_layer, row.target_layer)]

    def to_dict(self, layer: Layer | str | None = None) -> dict[str, Any]:
        rows = self.filter(layer)
        return {
            "version": self.version,
            "built_at": self.built_at.isoformat() if self.built_at else None,
            "object_count": self.object_count,
            "edge_count": self.edge_count,
            "rows": [row.to_dict() for row in rows],
        }

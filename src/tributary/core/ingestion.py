"""
Edge ingestion from collaborators.

Schema-deployment tooling and catalog watchers report derivations as
``(source, source_kind, target, target_kind, relation_kind)`` observations.
Objects are registered on first reference. A YAML manifest can declare a
documented pipeline flow in bulk.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from tributary.core.catalog import ObjectCatalog, coerce_kind, coerce_layer, infer_layer, normalize_id
from tributary.core.edges import DependencyEdgeStore
from tributary.core.types import DependencyEdge, Layer, ObjectKind
from tributary.exceptions import ConfigurationError, InvalidIdentityError, SelfReferentialEdgeError
from tributary.utils.logging import get_logger

logger = get_logger("tributary.ingestion")


@dataclass(frozen=True)
class EdgeObservation:
    """A single reported derivation."""

    source_object: str
    source_kind: ObjectKind | str
    target_object: str
    target_kind: ObjectKind | str
    relation_kind: str = ""
    source_layer: Layer | str | None = None
    target_layer: Layer | str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EdgeObservation:
        return cls(
            source_object=data["source"],
            source_kind=data["source_kind"],
            target_object=data["target"],
            target_kind=data["target_kind"],
            relation_kind=str(data.get("relation") or data.get("relation_kind") or ""),
            source_layer=data.get("source_layer"),
            target_layer=data.get("target_layer"),
        )


class EdgeIngestor:
    """Registers endpoints and records edges for incoming observations."""

    def __init__(self, catalog: ObjectCatalog, edges: DependencyEdgeStore) -> None:
        self.catalog = catalog
        self.edges = edges

    def report(
        self,
        source_object: str,
        source_kind: ObjectKind | str,
        target_object: str,
        target_kind: ObjectKind | str,
        relation_kind: str = "",
        *,
        source_layer: Layer | str | None = None,
        target_layer: Layer | str | None = None,
        refresh_existing: bool = True,
    ) -> DependencyEdge:
        """
        Record a derivation, registering both endpoints if needed.

        Everything is validated before the catalog is touched, so a rejected
        observation leaves no half-registered objects behind.

        With ``refresh_existing=False`` an edge already recorded with the same
        relation kind is returned untouched, keeping its ``observed_at``.

        Raises:
            InvalidIdentityError: If an id, kind or layer is invalid
            SelfReferentialEdgeError: If source and target are the same object
            StoreUnavailableError: If write-through persistence fails
        """
        source = normalize_id(source_object)
        target = normalize_id(target_object)
        if source == target:
            raise SelfReferentialEdgeError(source)
        source_layer = self._resolve_layer(source, source_layer)
        target_layer = self._resolve_layer(target, target_layer)
        source_kind = coerce_kind(source, source_kind)
        target_kind = coerce_kind(target, target_kind)

        self.catalog.register(source, source_kind, source_layer)
        self.catalog.register(target, target_kind, target_layer)
        if not refresh_existing:
            existing = self.edges.get_edge(source, target)
            if existing is not None and existing.relation_kind == (relation_kind or "").strip():
                return existing
        return self.edges.add_edge(source, target, relation_kind)

    def report_observation(self, observation: EdgeObservation, *, refresh_existing: bool = True) -> DependencyEdge:
        return self.report(
            observation.source_object,
            observation.source_kind,
            observation.target_object,
            observation.target_kind,
            observation.relation_kind,
            source_layer=observation.source_layer,
            target_layer=observation.target_layer,
            refresh_existing=refresh_existing,
        )

    def report_many(self, observations: Iterable[EdgeObservation]) -> list[DependencyEdge]:
        """Report observations in order; stops at the first rejected one."""
        return [self.report_observation(o) for o in observations]

    def load_manifest(self, path: str | Path) -> int:
        """
        Load objects and edges declared in a YAML manifest.

        Format::

            objects:
              - {id: raw.sales, kind: raw-table}
            edges:
              - {source: raw.sales, source_kind: raw-table,
                 target: staging.stg_sales, target_kind: staging-table,
                 relation: COPY INTO}

        Returns:
            Number of edges recorded

        Raises:
            ConfigurationError: If the file is unreadable or an entry is malformed
        """
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Could not read lineage manifest {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Lineage manifest {path} must be a mapping with 'objects' and/or 'edges'")

        for index, entry in enumerate(data.get("objects") or []):
            try:
                self.catalog.register(entry["id"], entry["kind"], entry.get("layer"))
            except (KeyError, TypeError, InvalidIdentityError) as e:
                raise ConfigurationError(
                    f"Invalid object entry #{index} in {path}: {e}", details={"index": index}
                ) from e

        count = 0
        for index, entry in enumerate(data.get("edges") or []):
            try:
                # Declared edges already known keep the time they were first observed
                self.report_observation(EdgeObservation.from_dict(entry), refresh_existing=False)
            except (KeyError, TypeError, InvalidIdentityError, SelfReferentialEdgeError) as e:
                raise ConfigurationError(
                    f"Invalid edge entry #{index} in {path}: {e}", details={"index": index}
                ) from e
            count += 1

        logger.info(f"Loaded {count} edge(s) from manifest {path.name}")
        return count

    def _resolve_layer(self, object_id: str, layer: Layer | str | None) -> Layer:
        # Explicit layer, else the one already registered, else inferred from the id
        if layer is not None:
            return coerce_layer(object_id, layer)
        existing = self.catalog.find(object_id)
        if existing is not None:
            return existing.layer
        inferred = infer_layer(object_id)
        if inferred is None:
            raise InvalidIdentityError(object_id, "cannot infer layer from schema; pass layer explicitly")
        return inferred

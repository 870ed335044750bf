"""
Core lineage engine: catalog, edges, traversal, queries and snapshots.
"""

from tributary.core.catalog import ObjectCatalog
from tributary.core.context import LineageContext
from tributary.core.edges import DependencyEdgeStore
from tributary.core.ingestion import EdgeIngestor, EdgeObservation
from tributary.core.lineage import LineageQueryService
from tributary.core.rules import Rule, RuleEngine, RuleOutcome
from tributary.core.snapshot import LineageSnapshotMaterializer
from tributary.core.state import StateStore
from tributary.core.traversal import CancellationToken, GraphTraversalEngine

__all__ = [
    "ObjectCatalog",
    "DependencyEdgeStore",
    "GraphTraversalEngine",
    "CancellationToken",
    "LineageQueryService",
    "LineageSnapshotMaterializer",
    "EdgeIngestor",
    "EdgeObservation",
    "Rule",
    "RuleEngine",
    "RuleOutcome",
    "StateStore",
    "LineageContext",
]

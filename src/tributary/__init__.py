"""
Tributary - dependency-graph lineage and impact analysis for data pipelines.
"""

__version__ = "0.1.0"

from tributary.core.catalog import ObjectCatalog
from tributary.core.context import LineageContext
from tributary.core.edges import DependencyEdgeStore
from tributary.core.ingestion import EdgeIngestor, EdgeObservation
from tributary.core.lineage import LineageQueryService
from tributary.core.rules import Rule, RuleEngine, RuleOutcome
from tributary.core.snapshot import LineageSnapshotMaterializer
from tributary.core.state import StateStore
from tributary.core.traversal import CancellationToken, GraphTraversalEngine
from tributary.core.types import (
    DependencyEdge,
    Direction,
    Layer,
    LineageSnapshot,
    ObjectKind,
    SchemaObject,
    SnapshotRow,
    TraversalRequest,
    TraversalResult,
    TraversalStep,
)

# Exceptions
from tributary.exceptions import (
    ConfigurationError,
    InvalidDepthError,
    InvalidIdentityError,
    RuleError,
    SelfReferentialEdgeError,
    SnapshotError,
    StoreUnavailableError,
    TraversalCancelledError,
    TributaryError,
    UnknownObjectError,
    UnknownRootError,
    ValidationError,
)

# Logging utilities
from tributary.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Context and components
    "LineageContext",
    "ObjectCatalog",
    "DependencyEdgeStore",
    "GraphTraversalEngine",
    "CancellationToken",
    "LineageQueryService",
    "LineageSnapshotMaterializer",
    "EdgeIngestor",
    "EdgeObservation",
    "StateStore",
    "Rule",
    "RuleEngine",
    "RuleOutcome",
    # Types
    "SchemaObject",
    "DependencyEdge",
    "ObjectKind",
    "Layer",
    "Direction",
    "TraversalRequest",
    "TraversalResult",
    "TraversalStep",
    "LineageSnapshot",
    "SnapshotRow",
    # Logging
    "setup_logging",
    "setup_logging_from_config",
    "get_logger",
    # Exceptions
    "TributaryError",
    "ConfigurationError",
    "ValidationError",
    "InvalidIdentityError",
    "SelfReferentialEdgeError",
    "InvalidDepthError",
    "UnknownObjectError",
    "UnknownRootError",
    "TraversalCancelledError",
    "StoreUnavailableError",
    "SnapshotError",
    "RuleError",
]

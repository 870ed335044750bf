"""
Tributary exception hierarchy.

All domain-specific exceptions inherit from TributaryError, making it easy
to catch any engine error with a single base class while still allowing
callers to tell "object doesn't exist" from "system is unavailable" from
"you asked for something that doesn't make sense".

Hierarchy::

    TributaryError
    ├── ConfigurationError          - config loading, parsing, validation
    ├── ValidationError             - rejected input, never partially applied
    │   ├── InvalidIdentityError    - empty or malformed object id
    │   ├── SelfReferentialEdgeError - edge from an object to itself
    │   └── InvalidDepthError       - negative, non-integer or too deep
    ├── UnknownObjectError          - reference to an unregistered object
    │   └── UnknownRootError        - traversal root not registered
    ├── TraversalCancelledError     - caller aborted a walk mid-flight
    ├── StoreUnavailableError       - backing store unreachable
    ├── SnapshotError               - snapshot rebuild failed
    └── RuleError                   - rule registration / evaluation
"""

from __future__ import annotations


class TributaryError(Exception):
    """Base exception for all Tributary errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(TributaryError):
    """Raised when configuration loading, parsing, or validation fails."""


# --- Validation --------------------------------------------------------------


class ValidationError(TributaryError):
    """Raised when a request is rejected before touching any state."""


class InvalidIdentityError(ValidationError):
    """Raised when an object id is empty or not a qualified ``layer.name``."""

    def __init__(self, object_id: object, reason: str) -> None:
        super().__init__(f"Invalid object id {object_id!r}: {reason}", details={"object_id": object_id})
        self.object_id = object_id
        self.reason = reason


class SelfReferentialEdgeError(ValidationError):
    """Raised when an edge would connect an object to itself."""

    def __init__(self, object_id: str) -> None:
        super().__init__(
            f"Edge from '{object_id}' to itself is not allowed",
            details={"source_id": object_id, "target_id": object_id},
        )
        self.object_id = object_id


class InvalidDepthError(ValidationError):
    """Raised when a traversal depth is negative, not an int, or over the limit."""

    def __init__(self, max_depth: object, reason: str) -> None:
        super().__init__(f"Invalid max_depth {max_depth!r}: {reason}", details={"max_depth": max_depth})
        self.max_depth = max_depth


# --- Lookups -----------------------------------------------------------------


class UnknownObjectError(TributaryError):
    """Raised when an operation references an object that is not registered."""

    def __init__(self, object_id: str, *, role: str = "object") -> None:
        super().__init__(f"Unknown {role}: {object_id}", details={"object_id": object_id, "role": role})
        self.object_id = object_id
        self.role = role


class UnknownRootError(UnknownObjectError):
    """Raised when a traversal starts from an unregistered object."""

    def __init__(self, object_id: str) -> None:
        super().__init__(object_id, role="traversal root")


# --- Traversal ---------------------------------------------------------------


class TraversalCancelledError(TributaryError):
    """Raised when a traversal is cancelled or times out before completing.

    No partial result is ever attached.
    """

    def __init__(self, root_id: str, level: int, reason: str = "cancelled") -> None:
        super().__init__(
            f"Traversal from '{root_id}' {reason} at level {level}",
            details={"root_id": root_id, "level": level, "reason": reason},
        )
        self.root_id = root_id
        self.level = level
        self.reason = reason


# --- Storage -----------------------------------------------------------------


class StoreUnavailableError(TributaryError):
    """Raised when the edge store or state database cannot be reached."""


class SnapshotError(TributaryError):
    """Raised when a lineage snapshot rebuild fails.

    The previously published snapshot stays in place.
    """


# --- Rules -------------------------------------------------------------------


class RuleError(TributaryError):
    """Raised when a rule cannot be registered or built from config."""

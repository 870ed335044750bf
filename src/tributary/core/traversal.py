"""
Bounded, cycle-safe graph traversal.

A level-synchronous breadth-first walk over the edge store in either
direction. The visited set gives both cycle safety and diamond dedup: an
object is reported once, at the first (and therefore shortest) level it is
reached, and can never be expanded twice.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Iterable

from tributary.core.catalog import ObjectCatalog, normalize_id
from tributary.core.edges import DependencyEdgeStore
from tributary.core.types import (
    DEFAULT_MAX_DEPTH,
    Direction,
    TraversalRequest,
    TraversalResult,
    TraversalStep,
)
from tributary.exceptions import (
    InvalidDepthError,
    StoreUnavailableError,
    TraversalCancelledError,
    TributaryError,
    UnknownRootError,
)
from tributary.utils.logging import get_logger

logger = get_logger("tributary.traversal")

DEFAULT_MAX_DEPTH_LIMIT = 50


class CancellationToken:
    """
    Cooperative cancellation for a running traversal.

    Cancelled explicitly via :meth:`cancel` or implicitly once ``timeout_s``
    has elapsed since construction.
    """

    def __init__(self, timeout_s: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout_s if timeout_s else None
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("timed out")
            return True
        return False

    def raise_if_cancelled(self, root_id: str, level: int) -> None:
        if self.cancelled:
            raise TraversalCancelledError(root_id, level, self.reason or "cancelled")


class GraphTraversalEngine:
    """
    Walks the dependency graph from a root object.

    Read-only: traversals may run in parallel with each other and with edge
    insertions. An insertion racing a traversal may or may not be seen.
    """

    def __init__(
        self,
        catalog: ObjectCatalog,
        edges: DependencyEdgeStore,
        default_max_depth: int = DEFAULT_MAX_DEPTH,
        max_depth_limit: int = DEFAULT_MAX_DEPTH_LIMIT,
    ) -> None:
        self.catalog = catalog
        self.edges = edges
        self.default_max_depth = default_max_depth
        self.max_depth_limit = max_depth_limit

    def resolve_depth(self, max_depth: int | None) -> int:
        """
        Apply the default and validate a requested depth.

        Raises:
            InvalidDepthError: If the depth is not an int, negative, or above the limit
        """
        if max_depth is None:
            return self.default_max_depth
        if isinstance(max_depth, bool) or not isinstance(max_depth, int):
            raise InvalidDepthError(max_depth, "must be an integer")
        if max_depth < 0:
            raise InvalidDepthError(max_depth, "must not be negative")
        if max_depth > self.max_depth_limit:
            raise InvalidDepthError(max_depth, f"exceeds the limit of {self.max_depth_limit}")
        return max_depth

    def traverse(self, request: TraversalRequest, cancel_token: CancellationToken | None = None) -> TraversalResult:
        """
        Run a bounded breadth-first walk.

        Args:
            request: Root, direction and depth bound
            cancel_token: Optional token checked before every expansion

        Returns:
            TraversalResult ordered by level, then object id

        Raises:
            InvalidIdentityError: If the root id is malformed
            UnknownRootError: If the root is not registered
            InvalidDepthError: If the depth is invalid
            TraversalCancelledError: If cancelled or timed out mid-walk
            StoreUnavailableError: If the edge store fails; no partial result
        """
        root = normalize_id(request.root_id)
        max_depth = self.resolve_depth(request.max_depth)
        direction = Direction(request.direction)
        if not self.catalog.exists(root):
            raise UnknownRootError(root)

        started = time.perf_counter()
        visited: set[str] = {root}
        frontier: list[str] = [root]
        steps: list[TraversalStep] = []
        level = 0

        while frontier and level < max_depth:
            level += 1
            discovered: set[str] = set()
            for object_id in frontier:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(root, level)
                for neighbor in self._neighbors(object_id, direction):
                    if neighbor in visited:
                        continue
                    visited.add(neighbor)
                    discovered.add(neighbor)

            frontier = sorted(discovered)
            for object_id in frontier:
                steps.append(TraversalStep(level=level, object_id=object_id, object_kind=self.catalog.get(object_id).kind))

        logger.debug(
            f"{direction} traversal from {root}: {len(steps)} objects over {level} level(s) "
            f"in {(time.perf_counter() - started) * 1000:.1f}ms"
        )
        return TraversalResult(root_id=root, direction=direction, max_depth=max_depth, steps=tuple(steps))

    async def traverse_async(
        self, request: TraversalRequest, cancel_token: CancellationToken | None = None
    ) -> TraversalResult:
        """
        Run :meth:`traverse` in a worker thread.

        If the awaiting task is cancelled (client disconnect, timeout), the
        token is cancelled so the worker abandons the walk at its next check.
        """
        token = cancel_token or CancellationToken()
        try:
            return await asyncio.to_thread(self.traverse, request, token)
        except asyncio.CancelledError:
            token.cancel("cancelled by caller")
            raise

    def _neighbors(self, object_id: str, direction: Direction) -> Iterable[str]:
        try:
            if direction is Direction.FORWARD:
                return [edge.target_id for edge in self.edges.edges_from(object_id)]
            return [edge.source_id for edge in self.edges.edges_to(object_id)]
        except TributaryError:
            raise
        except Exception as e:
            raise StoreUnavailableError(
                f"Edge store failed while expanding '{object_id}': {e}",
                details={"object_id": object_id, "direction": direction.value},
            ) from e

"""
Object catalog: the registry of known pipeline objects.

Objects are identified by qualified names (``layer.name`` or
``database.layer.name``). They are never deleted, only marked inactive, so
edges that reference a dropped object keep their historical lineage.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from tributary.core.types import Layer, ObjectKind, SchemaObject
from tributary.exceptions import InvalidIdentityError, UnknownObjectError, ValidationError
from tributary.utils.logging import get_logger

if TYPE_CHECKING:
    from tributary.core.state import StateStore

logger = get_logger("tributary.catalog")

_SEGMENT = r"[a-z_][a-z0-9_$]*"
_IDENTITY_RE = re.compile(rf"^{_SEGMENT}(\.{_SEGMENT})+$")

# Schema segment -> layer; anything else needs an explicit layer
LAYER_ALIASES: dict[str, Layer] = {
    "raw": Layer.LANDING,
    "landing": Layer.LANDING,
    "staging": Layer.STAGING,
    "stg": Layer.STAGING,
    "curated": Layer.CURATED,
    "analytics": Layer.ANALYTICS,
    "external": Layer.EXTERNAL,
    "s3": Layer.EXTERNAL,
}


def normalize_id(object_id: object) -> str:
    """
    Validate and normalise an object id.

    Ids are case-insensitive and stored lower case.

    Raises:
        InvalidIdentityError: If the id is empty, not a string, or not qualified
    """
    if not isinstance(object_id, str):
        raise InvalidIdentityError(object_id, "must be a string")
    normalized = object_id.strip().lower()
    if not normalized:
        raise InvalidIdentityError(object_id, "must not be empty")
    if not _IDENTITY_RE.match(normalized):
        raise InvalidIdentityError(object_id, "expected a qualified name like 'staging.stg_sales'")
    return normalized


def infer_layer(object_id: str) -> Layer | None:
    """Infer the pipeline layer from the schema segment of a normalised id."""
    schema = object_id.split(".")[-2]
    return LAYER_ALIASES.get(schema)


class ObjectCatalog:
    """
    Thread-safe registry of pipeline objects.

    Registration is an idempotent upsert. When a state store is attached,
    every change is written through before it becomes visible in memory.
    """

    def __init__(
        self,
        state_store: StateStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._objects: dict[str, SchemaObject] = {}
        self._lock = threading.RLock()
        self._state_store = state_store
        self._clock = clock or (lambda: datetime.now(UTC))

    def register(self, object_id: str, kind: ObjectKind | str, layer: Layer | str | None = None) -> SchemaObject:
        """
        Register an object, or update the kind/layer of an existing one.

        Args:
            object_id: Qualified object name
            kind: Object kind (enum member or its string value)
            layer: Pipeline layer; when omitted an existing object keeps its
                layer and a new one has it inferred from the id

        Returns:
            The registered SchemaObject

        Raises:
            InvalidIdentityError: If the id is malformed, the kind/layer is
                unknown, or the layer cannot be inferred
            StoreUnavailableError: If write-through persistence fails
        """
        normalized = normalize_id(object_id)
        kind = coerce_kind(normalized, kind)
        explicit_layer = coerce_layer(normalized, layer) if layer is not None else None

        with self._lock:
            existing = self._objects.get(normalized)
            # Without an explicit layer an existing object keeps its own
            if explicit_layer is not None:
                resolved_layer = explicit_layer
            elif existing is not None:
                resolved_layer = existing.layer
            else:
                resolved_layer = infer_layer(normalized)
            if resolved_layer is None:
                raise InvalidIdentityError(object_id, "cannot infer layer from schema; pass layer explicitly")
            if (
                existing is not None
                and existing.active
                and existing.kind == kind
                and existing.layer == resolved_layer
            ):
                return existing

            obj = SchemaObject(
                id=normalized,
                kind=kind,
                layer=resolved_layer,
                active=True,
                registered_at=existing.registered_at if existing else self._clock(),
            )
            if self._state_store is not None:
                self._state_store.save_object(obj)
            self._objects[normalized] = obj

        if existing is None:
            logger.debug(f"Registered {obj.id} ({obj.kind}, {obj.layer})")
        else:
            logger.debug(f"Updated {obj.id} ({obj.kind}, {obj.layer})")
        return obj

    def exists(self, object_id: str) -> bool:
        try:
            normalized = normalize_id(object_id)
        except InvalidIdentityError:
            return False
        return normalized in self._objects

    def find(self, object_id: str) -> SchemaObject | None:
        """Return the object or None; malformed ids are simply not found."""
        try:
            normalized = normalize_id(object_id)
        except InvalidIdentityError:
            return None
        return self._objects.get(normalized)

    def get(self, object_id: str) -> SchemaObject:
        """
        Return a registered object.

        Raises:
            InvalidIdentityError: If the id is malformed
            UnknownObjectError: If the object is not registered
        """
        normalized = normalize_id(object_id)
        obj = self._objects.get(normalized)
        if obj is None:
            raise UnknownObjectError(normalized)
        return obj

    def deactivate(self, object_id: str) -> SchemaObject:
        """Mark an object as dropped. Its edges are kept for historical lineage."""
        with self._lock:
            obj = self.get(object_id)
            if not obj.active:
                return obj
            inactive = SchemaObject(
                id=obj.id, kind=obj.kind, layer=obj.layer, active=False, registered_at=obj.registered_at
            )
            if self._state_store is not None:
                self._state_store.save_object(inactive)
            self._objects[obj.id] = inactive
        logger.info(f"Marked {obj.id} inactive")
        return inactive

    def list(
        self,
        layer: Layer | str | None = None,
        kind: ObjectKind | str | None = None,
        include_inactive: bool = True,
    ) -> list[SchemaObject]:
        """List objects sorted by id, optionally filtered by layer and kind."""
        with self._lock:
            objects = list(self._objects.values())
        if layer is not None:
            objects = [o for o in objects if o.layer == Layer(layer)]
        if kind is not None:
            objects = [o for o in objects if o.kind == ObjectKind(kind)]
        if not include_inactive:
            objects = [o for o in objects if o.active]
        return sorted(objects, key=lambda o: o.id)

    def load(self, objects: list[SchemaObject]) -> None:
        """Bulk-load already persisted objects without writing them back."""
        with self._lock:
            for obj in objects:
                self._objects[obj.id] = obj

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, object_id: object) -> bool:
        return isinstance(object_id, str) and self.exists(object_id)


def coerce_kind(object_id: str, kind: ObjectKind | str) -> ObjectKind:
    try:
        return ObjectKind(kind)
    except ValueError:
        allowed = ", ".join(k.value for k in ObjectKind)
        raise InvalidIdentityError(object_id, f"unknown kind {kind!r} (expected one of: {allowed})") from None


def coerce_layer(object_id: str, layer: Layer | str) -> Layer:
    try:
        return Layer(layer)
    except ValueError:
        allowed = ", ".join(x.value for x in Layer)
        raise InvalidIdentityError(object_id, f"unknown layer {layer!r} (expected one of: {allowed})") from None


def parse_layer(value: Layer | str) -> Layer:
    """Parse a layer filter value. Raises ValidationError for unknown layers."""
    try:
        return Layer(value)
    except ValueError:
        allowed = ", ".join(x.value for x in Layer)
        raise ValidationError(f"Unknown layer {value!r} (expected one of: {allowed})") from None


def parse_kind(value: ObjectKind | str) -> ObjectKind:
    """Parse an object kind filter value. Raises ValidationError for unknown kinds."""
    try:
        return ObjectKind(value)
    except ValueError:
        allowed = ", ".join(k.value for k in ObjectKind)
        raise ValidationError(f"Unknown kind {value!r} (expected one of: {allowed})") from None

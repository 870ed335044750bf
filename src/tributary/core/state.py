"""
State database for the catalog, the edge set and published snapshots.

DuckDB through ibis. Creates the ``tributary`` schema and tables on first
use. Any failure to reach the database surfaces as StoreUnavailableError.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import ibis

from tributary.core.types import DependencyEdge, Layer, LineageSnapshot, ObjectKind, SchemaObject
from tributary.exceptions import StoreUnavailableError
from tributary.utils.logging import get_logger

if TYPE_CHECKING:
    from tributary.core.catalog import ObjectCatalog
    from tributary.core.edges import DependencyEdgeStore

logger = get_logger("tributary.state")

SCHEMA_NAME = "tributary"


def _escape_sql_string(value: str) -> str:
    """Escape single quotes for SQL strings."""
    return value.replace("'", "''")


def _sql_value(value: Any) -> str:
    """Convert Python value to SQL string representation."""
    if value is None:
        return "NULL"
    # bool before int: bool is a subclass of int
    elif isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, str):
        return f"'{_escape_sql_string(value)}'"
    elif isinstance(value, datetime):
        # Stored as naive UTC
        if value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return f"TIMESTAMP '{value.isoformat(sep=' ')}'"
    else:
        return f"'{_escape_sql_string(str(value))}'"


def _from_db_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class StateStore:
    """Persists objects, edges and snapshots in a DuckDB database."""

    def __init__(self, path: str | Path = ":memory:"):
        """
        Initialize state store.

        Args:
            path: DuckDB database file, or ``:memory:``
        """
        self.path = str(path)
        self._connection: ibis.BaseBackend | None = None
        self._catalog: str | None = None
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: dict[str, Any], project_dir: Path | None = None) -> StateStore | None:
        """Build a store from the ``state`` config section, or None when not configured."""
        path = (config.get("state") or {}).get("path")
        if not path:
            return None
        if path != ":memory:" and project_dir is not None and not Path(path).is_absolute():
            path = str(project_dir / path)
        return cls(path)

    def _get_connection(self) -> ibis.BaseBackend:
        if self._connection is None:
            try:
                if self.path == ":memory:":
                    self._connection = ibis.duckdb.connect()
                else:
                    Path(self.path).parent.mkdir(parents=True, exist_ok=True)
                    self._connection = ibis.duckdb.connect(self.path)
                # DuckDB names the catalog after the file stem, which may equal SCHEMA_NAME
                self._catalog = self._connection.raw_sql("SELECT current_database()").fetchone()[0]
            except Exception as e:
                self._connection = None
                error_str = str(e)
                if "lock" in error_str.lower() or "conflicting" in error_str.lower():
                    raise StoreUnavailableError(
                        f"Cannot open state database '{self.path}': file is locked by another process",
                        details={"path": self.path},
                    ) from e
                raise StoreUnavailableError(
                    f"Cannot open state database '{self.path}': {error_str}", details={"path": self.path}
                ) from e
            try:
                self._initialize_schema()
            except StoreUnavailableError:
                self._connection = None
                self._catalog = None
                raise
        return self._connection

    def _schema(self) -> str:
        if self._catalog is None:
            with self._lock:
                self._get_connection()
        catalog = self._catalog.replace('"', '""')
        return f'"{catalog}".{SCHEMA_NAME}'

    def _table(self, name: str) -> str:
        """Fully qualified table name, unambiguous whatever the database file is called."""
        return f"{self._schema()}.{name}"

    def _execute(self, sql: str) -> Any:
        with self._lock:
            conn = self._get_connection()
            try:
                return conn.raw_sql(sql)
            except Exception as e:
                raise StoreUnavailableError(f"State database error: {e}", details={"path": self.path}) from e

    def _fetchall(self, sql: str) -> list[tuple]:
        with self._lock:
            cursor = self._execute(sql)
            try:
                return cursor.fetchall()
            except Exception as e:
                raise StoreUnavailableError(f"State database error: {e}", details={"path": self.path}) from e

    def _initialize_schema(self) -> None:
        """Create tributary schema and tables if they don't exist."""
        self._execute(f"CREATE SCHEMA IF NOT EXISTS {self._schema()}")
        self._execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table('objects')} (
                object_id VARCHAR PRIMARY KEY,
                kind VARCHAR NOT NULL,
                layer VARCHAR NOT NULL,
                active BOOLEAN DEFAULT TRUE,
                registered_at TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        self._execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table('edges')} (
                source_id VARCHAR NOT NULL,
                target_id VARCHAR NOT NULL,
                relation_kind VARCHAR,
                observed_at TIMESTAMP NOT NULL,
                PRIMARY KEY (source_id, target_id)
            )
            """
        )
        self._execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table('snapshots')} (
                version INTEGER PRIMARY KEY,
                built_at TIMESTAMP NOT NULL,
                edge_count INTEGER,
                object_count INTEGER
            )
            """
        )
        self._execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table('lineage_snapshot')} (
                version INTEGER NOT NULL,
                source_path VARCHAR NOT NULL,
                source_kind VARCHAR,
                target_path VARCHAR NOT NULL,
                target_kind VARCHAR,
                source_layer VARCHAR,
                target_layer VARCHAR,
                relation_kind VARCHAR
            )
            """
        )
        logger.debug(f"State database initialized with schema '{SCHEMA_NAME}' at {self.path}")

    # ------------------------------------------------------------------
    # Objects and edges
    # ------------------------------------------------------------------

    def save_object(self, obj: SchemaObject) -> None:
        self._execute(
            f"INSERT OR REPLACE INTO {self._table('objects')} "
            f"(object_id, kind, layer, active, registered_at, updated_at) VALUES ("
            f"{_sql_value(obj.id)}, {_sql_value(obj.kind.value)}, {_sql_value(obj.layer.value)}, "
            f"{_sql_value(obj.active)}, {_sql_value(obj.registered_at)}, CURRENT_TIMESTAMP)"
        )

    def save_edge(self, edge: DependencyEdge) -> None:
        self._execute(
            f"INSERT OR REPLACE INTO {self._table('edges')} "
            f"(source_id, target_id, relation_kind, observed_at) VALUES ("
            f"{_sql_value(edge.source_id)}, {_sql_value(edge.target_id)}, "
            f"{_sql_value(edge.relation_kind)}, {_sql_value(edge.observed_at)})"
        )

    def load_objects(self) -> list[SchemaObject]:
        rows = self._fetchall(
            f"SELECT object_id, kind, layer, active, registered_at FROM {self._table('objects')} ORDER BY object_id"
        )
        return [
            SchemaObject(
                id=object_id,
                kind=ObjectKind(kind),
                layer=Layer(layer),
                active=bool(active),
                registered_at=_from_db_timestamp(registered_at),
            )
            for object_id, kind, layer, active, registered_at in rows
        ]

    def load_edges(self) -> list[DependencyEdge]:
        rows = self._fetchall(
            f"SELECT source_id, target_id, relation_kind, observed_at FROM {self._table('edges')} "
            f"ORDER BY source_id, target_id"
        )
        return [
            DependencyEdge(
                source_id=source_id,
                target_id=target_id,
                relation_kind=relation_kind or "",
                observed_at=_from_db_timestamp(observed_at),
            )
            for source_id, target_id, relation_kind, observed_at in rows
        ]

    def load_into(self, catalog: ObjectCatalog, edges: DependencyEdgeStore) -> tuple[int, int]:
        """
        Hydrate an in-memory catalog and edge store from the database.

        Returns:
            (objects loaded, edges loaded)
        """
        objects = self.load_objects()
        catalog.load(objects)
        loaded_edges = self.load_edges()
        edges.load(loaded_edges)
        logger.info(f"Loaded {len(objects)} object(s) and {len(loaded_edges)} edge(s) from {self.path}")
        return len(objects), len(loaded_edges)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def save_snapshot(self, snapshot: LineageSnapshot) -> None:
        """Replace the persisted snapshot rows with ``snapshot`` in one transaction."""
        with self._lock:
            self._execute("BEGIN TRANSACTION")
            try:
                self._write_snapshot(snapshot)
            except StoreUnavailableError:
                self._execute("ROLLBACK")
                raise
            self._execute("COMMIT")

    def _write_snapshot(self, snapshot: LineageSnapshot) -> None:
        self._execute(f"DELETE FROM {self._table('lineage_snapshot')}")
        if snapshot.rows:
            values = ",\n".join(
                "("
                + ", ".join(
                    [
                        _sql_value(snapshot.version),
                        _sql_value(row.source_path),
                        _sql_value(row.source_kind.value),
                        _sql_value(row.target_path),
                        _sql_value(row.target_kind.value),
                        _sql_value(row.source_layer.value),
                        _sql_value(row.target_layer.value),
                        _sql_value(row.relation_kind),
                    ]
                )
                + ")"
                for row in snapshot.rows
            )
            self._execute(
                f"INSERT INTO {self._table('lineage_snapshot')} (version, source_path, source_kind, "
                f"target_path, target_kind, source_layer, target_layer, relation_kind) VALUES\n{values}"
            )
        self._execute(
            f"INSERT OR REPLACE INTO {self._table('snapshots')} (version, built_at, edge_count, object_count) "
            f"VALUES ({_sql_value(snapshot.version)}, {_sql_value(snapshot.built_at)}, "
            f"{_sql_value(snapshot.edge_count)}, {_sql_value(snapshot.object_count)})"
        )

    def latest_snapshot_info(self) -> dict[str, Any] | None:
        rows = self._fetchall(
            f"SELECT version, built_at, edge_count, object_count FROM {self._table('snapshots')} "
            f"ORDER BY version DESC LIMIT 1"
        )
        if not rows:
            return None
        version, built_at, edge_count, object_count = rows[0]
        return {
            "version": version,
            "built_at": _from_db_timestamp(built_at),
            "edge_count": edge_count,
            "object_count": object_count,
        }

    def snapshot_row_count(self) -> int:
        return int(self._fetchall(f"SELECT COUNT(*) FROM {self._table('lineage_snapshot')}")[0][0])

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                try:
                    self._connection.disconnect()
                except Exception as e:
                    logger.debug(f"Error closing state database: {e}")
                self._connection = None
                self._catalog = None

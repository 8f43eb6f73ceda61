"""SQLite-backed persistence for bays, projects and schedules."""

from __future__ import annotations

import pickle
import sqlite3
from typing import Any, Generic, Iterator, List, Optional, Sequence, TypeVar

from .domain import ManufacturingBay, ManufacturingSchedule, Project
from .repository import DuplicateRecordError, RecordNotFoundError

T = TypeVar("T")


class SQLiteRepository(Generic[T]):
    """Repository storing pickled records in one SQLite table.

    When ``index_field`` is given, that attribute of every record is mirrored
    into an indexed ``lookup`` column so :meth:`list_by` can filter in SQL.
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        table: str,
        *,
        index_field: Optional[str] = None,
    ) -> None:
        self._connection = connection
        self._table = table
        self._index_field = index_field
        with connection:
            connection.execute(
                f"CREATE TABLE IF NOT EXISTS {table} ("  # nosec - static table names
                "id TEXT PRIMARY KEY, lookup TEXT, payload BLOB NOT NULL)"
            )
            connection.execute(
                f"CREATE INDEX IF NOT EXISTS {table}_lookup ON {table} (lookup)"
            )

    def _query(self, sql: str, parameters: Sequence[Any] = ()) -> List[sqlite3.Row]:
        return self._connection.execute(sql, parameters).fetchall()

    def _lookup(self, item: T) -> Optional[str]:
        if self._index_field is None:
            return None
        value = getattr(item, self._index_field)
        return None if value is None else str(value)

    def __contains__(self, item_id: object) -> bool:
        if not isinstance(item_id, str):
            return False
        return bool(self._query(f"SELECT 1 FROM {self._table} WHERE id = ?", (item_id,)))

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())

    def __len__(self) -> int:
        (row,) = self._query(f"SELECT COUNT(*) FROM {self._table}")
        return int(row[0])

    def add(self, item_id: str, item: T) -> None:
        try:
            with self._connection:
                self._connection.execute(
                    f"INSERT INTO {self._table} (id, lookup, payload) VALUES (?, ?, ?)",
                    (item_id, self._lookup(item), pickle.dumps(item)),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(f"Record with id {item_id!r} already exists") from exc

    def upsert(self, item_id: str, item: T) -> None:
        with self._connection:
            self._connection.execute(
                f"INSERT INTO {self._table} (id, lookup, payload) VALUES (?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET lookup = excluded.lookup, payload = excluded.payload",
                (item_id, self._lookup(item), pickle.dumps(item)),
            )

    def get(self, item_id: str) -> T:
        rows = self._query(f"SELECT payload FROM {self._table} WHERE id = ?", (item_id,))
        if not rows:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found")
        return pickle.loads(rows[0]["payload"])

    def remove(self, item_id: str) -> None:
        with self._connection:
            deleted = self._connection.execute(
                f"DELETE FROM {self._table} WHERE id = ?", (item_id,)
            ).rowcount
        if not deleted:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found")

    def list(self) -> List[T]:
        rows = self._query(f"SELECT payload FROM {self._table} ORDER BY id")
        return [pickle.loads(row["payload"]) for row in rows]

    def list_by(self, field_name: str, value: Any) -> List[T]:
        """Records whose ``field_name`` equals ``value``."""

        if field_name != self._index_field:
            return [item for item in self.list() if getattr(item, field_name) == value]
        rows = self._query(
            f"SELECT payload FROM {self._table} WHERE lookup = ? ORDER BY id", (str(value),)
        )
        return [pickle.loads(row["payload"]) for row in rows]


class PlanningDatabase:
    """One SQLite file holding the projects, bays and schedules tables."""

    def __init__(self, path: str) -> None:
        self._connection = sqlite3.connect(path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self.projects = SQLiteRepository[Project](self._connection, "projects")
        self.bays = SQLiteRepository[ManufacturingBay](
            self._connection, "manufacturing_bays"
        )
        self.schedules = SQLiteRepository[ManufacturingSchedule](
            self._connection, "manufacturing_schedules", index_field="bay_id"
        )

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "PlanningDatabase":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["SQLiteRepository", "PlanningDatabase"]

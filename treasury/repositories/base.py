"""
Base repository classes and database connection management.
"""

import json
import logging
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Type, TypeVar

from ..models.base import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class DatabaseConnection:
    """Thread-local SQLite connection manager."""

    def __init__(self, db_path: str = "treasury.db", timeout: float = 30.0, foreign_keys: bool = True):
        self.db_path = db_path
        self.timeout = timeout
        self.foreign_keys = foreign_keys
        self._local = threading.local()
        self._lock = threading.Lock()
        self._connections: List[sqlite3.Connection] = []

    @staticmethod
    def _dict_factory(cursor, row):
        """Convert row to dictionary"""
        return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}

    def _connect(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=self.timeout)
            conn.row_factory = self._dict_factory
            if self.foreign_keys:
                conn.execute("PRAGMA foreign_keys = ON")
            self._local.conn = conn
            with self._lock:
                self._connections.append(conn)
        return conn

    @contextmanager
    def get_connection(self):
        """Get a database connection for the current thread."""
        conn = self._connect()
        try:
            yield conn
        except Exception as e:
            conn.rollback()
            logger.error(f"Database error: {e}")
            raise
        else:
            conn.commit()

    def close_all_connections(self) -> None:
        """Close all database connections."""
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()


class BaseRepository(ABC, Generic[T]):
    """Base repository with CRUD operations for pydantic models."""

    json_fields: Sequence[str] = ()
    default_order: str = "created_at DESC"

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self._table_name = self._get_table_name()
        self._model_class = self._get_model_class()
        self._column_cache: Optional[List[str]] = None

    @abstractmethod
    def _get_table_name(self) -> str:
        """Return the table name for this repository."""

    @abstractmethod
    def _get_model_class(self) -> Type[T]:
        """Return the model class for this repository."""

    def _columns(self) -> List[str]:
        if self._column_cache is None:
            with self.db.get_connection() as conn:
                rows = conn.execute(f"PRAGMA table_info({self._table_name})").fetchall()
            self._column_cache = [row["name"] for row in rows]
        return self._column_cache

    def _row_to_model(self, row: Dict[str, Any]) -> T:
        """Convert database row to model instance."""
        data = dict(row)
        for name in self.json_fields:
            if data.get(name) is not None:
                data[name] = json.loads(data[name])
        return self._model_class.model_validate(data)

    def _model_to_dict(self, model: T) -> Dict[str, Any]:
        """Convert model instance to dictionary for database storage."""
        data = model.model_dump(mode="json")
        columns = set(self._columns())
        row = {}
        for key, value in data.items():
            if key not in columns:
                continue
            if key in self.json_fields and value is not None:
                value = json.dumps(value)
            elif isinstance(value, bool):
                value = int(value)
            row[key] = value
        return row

    def find_by_id(self, id: str) -> Optional[T]:
        """Find entity by ID."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {self._table_name} WHERE id = ?", (id,))
            row = cursor.fetchone()
            return self._row_to_model(row) if row else None

    def find_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        """Find all entities with optional pagination."""
        query = f"SELECT * FROM {self._table_name} ORDER BY {self.default_order}"
        params: list = []
        if limit:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        return [self._row_to_model(row) for row in self.execute_query(query, tuple(params))]

    def find_by(self, order_by: Optional[str] = None, limit: Optional[int] = None, **filters) -> List[T]:
        """Find entities whose columns equal the given values (``None`` matches NULL)."""
        where, params = self._build_where(filters)
        query = f"SELECT * FROM {self._table_name}{where} ORDER BY {order_by or self.default_order}"
        if limit:
            query += f" LIMIT {int(limit)}"
        return [self._row_to_model(row) for row in self.execute_query(query, tuple(params))]

    def find_one_by(self, order_by: Optional[str] = None, **filters) -> Optional[T]:
        results = self.find_by(order_by=order_by, limit=1, **filters)
        return results[0] if results else None

    def find_where(self, clause: str, params: Iterable[Any] = (), order_by: Optional[str] = None) -> List[T]:
        """Find entities matching a raw SQL condition."""
        query = f"SELECT * FROM {self._table_name} WHERE {clause} ORDER BY {order_by or self.default_order}"
        return [self._row_to_model(row) for row in self.execute_query(query, tuple(params))]

    def save(self, model: T) -> T:
        """Save (insert or update) an entity."""
        is_new = not model.id or self.find_by_id(model.id) is None
        if not model.id:
            model.id = str(uuid.uuid4())
        if is_new:
            model.created_at = model.created_at or datetime.now()
        model.updated_at = datetime.now()
        data = self._model_to_dict(model)

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            if is_new:
                columns = ", ".join(data.keys())
                placeholders = ", ".join(["?" for _ in data])
                cursor.execute(
                    f"INSERT INTO {self._table_name} ({columns}) VALUES ({placeholders})",
                    list(data.values()),
                )
            else:
                set_clause = ", ".join([f"{k} = ?" for k in data.keys() if k != "id"])
                values = [v for k, v in data.items() if k != "id"]
                values.append(data["id"])
                cursor.execute(f"UPDATE {self._table_name} SET {set_clause} WHERE id = ?", values)

        return self.find_by_id(model.id)

    def update_fields(self, id: str, **fields) -> bool:
        """Update a subset of columns without loading the entity."""
        if not fields:
            return False
        fields["updated_at"] = datetime.now().isoformat()
        set_clause = ", ".join([f"{k} = ?" for k in fields])
        values = [self._to_db_value(v) for v in fields.values()]
        values.append(id)
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"UPDATE {self._table_name} SET {set_clause} WHERE id = ?", values)
            return cursor.rowcount > 0

    def delete(self, id: str) -> bool:
        """Delete entity by ID."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"DELETE FROM {self._table_name} WHERE id = ?", (id,))
            return cursor.rowcount > 0

    def delete_by(self, **filters) -> int:
        where, params = self._build_where(filters)
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"DELETE FROM {self._table_name}{where}", params)
            return cursor.rowcount

    def count(self, **filters) -> int:
        """Count entities, optionally filtered by column values."""
        where, params = self._build_where(filters)
        rows = self.execute_query(f"SELECT COUNT(*) AS total FROM {self._table_name}{where}", tuple(params))
        return rows[0]["total"]

    def execute_query(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute custom query and return rows."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def _build_where(self, filters: Dict[str, Any]):
        clauses = []
        params = []
        for column, value in filters.items():
            if value is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = ?")
                params.append(self._to_db_value(value))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    @staticmethod
    def _to_db_value(value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, (list, dict)):
            return json.dumps(value, default=str)
        return value

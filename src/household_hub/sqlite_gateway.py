"""SQLite-backed data gateway for Household Hub.

This module stores every collection in a local SQLite database file so the
client can run without the hosted service. It implements the same interface
as the in-memory and REST gateways.
"""

import sqlite3
from collections.abc import Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .gateway import (
    Collection,
    Filter,
    GatewayError,
    Op,
    Order,
    Row,
    apply_defaults,
    wire_filters,
    wire_row,
)
from .logging import get_logger

log = get_logger("sqlite")

_BOOLEAN_COLUMNS = {"is_completed", "is_private", "all_day"}

_COMPARISONS = {
    Op.EQ: "=",
    Op.NEQ: "!=",
    Op.GT: ">",
    Op.GTE: ">=",
    Op.LT: "<",
    Op.LTE: "<=",
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _casefold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


class SQLiteGateway:
    """Manages SQLite persistence for household data."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | None = None):
        """Initialize the SQLite gateway.

        Args:
            db_path: Path to the database file. Defaults to ./data/household.db
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "household.db"
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()
        self._columns = self._load_columns()

    @contextmanager
    def _get_connection(self):
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        # SQLite's lower() only folds ASCII
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Initialize database schema if not exists."""
        with self._get_connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                );

                CREATE TABLE IF NOT EXISTS households (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS profiles (
                    id TEXT PRIMARY KEY,
                    name TEXT,
                    email TEXT NOT NULL UNIQUE
                );

                CREATE TABLE IF NOT EXISTS household_members (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'member',
                    joined_at TEXT NOT NULL,
                    UNIQUE (household_id, user_id)
                );

                CREATE TABLE IF NOT EXISTS lists (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL DEFAULT 'grocery',
                    created_by TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS list_items (
                    id TEXT PRIMARY KEY,
                    list_id TEXT NOT NULL,
                    text TEXT NOT NULL,
                    quantity TEXT,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    added_by TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS list_history (
                    id TEXT PRIMARY KEY,
                    list_id TEXT NOT NULL,
                    text TEXT NOT NULL,
                    quantity TEXT,
                    week_start TEXT NOT NULL,
                    added_by TEXT,
                    completed_at TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS notes (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    title TEXT,
                    content TEXT NOT NULL,
                    created_by TEXT,
                    is_private INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                );

                CREATE TABLE IF NOT EXISTS events (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    all_day INTEGER NOT NULL DEFAULT 0,
                    location TEXT,
                    created_by TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    assigned_to TEXT,
                    due_date TEXT,
                    priority TEXT NOT NULL DEFAULT 'medium',
                    status TEXT NOT NULL DEFAULT 'todo',
                    project TEXT,
                    created_by TEXT,
                    is_private INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_members_user ON household_members(user_id);
                CREATE INDEX IF NOT EXISTS idx_list_items_list ON list_items(list_id);
                CREATE INDEX IF NOT EXISTS idx_history_list ON list_history(list_id, week_start);
                CREATE INDEX IF NOT EXISTS idx_notes_household ON notes(household_id);
                CREATE INDEX IF NOT EXISTS idx_events_household ON events(household_id, start_time);
                CREATE INDEX IF NOT EXISTS idx_tasks_household ON tasks(household_id);
            """)

            cursor = conn.execute("SELECT version FROM schema_version")
            row = cursor.fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (self.SCHEMA_VERSION,)
                )

    def _load_columns(self) -> dict[Collection, set[str]]:
        columns: dict[Collection, set[str]] = {}
        with self._get_connection() as conn:
            for collection in Collection:
                info = conn.execute(f"PRAGMA table_info({collection.value})").fetchall()
                columns[collection] = {r["name"] for r in info}
        return columns

    def _check_column(self, collection: Collection, column: str) -> str:
        if column not in self._columns[collection]:
            raise GatewayError(f"Unknown column '{column}' on {collection.value}")
        return column

    def _where(self, collection: Collection, filters: Sequence[Filter]) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for f in wire_filters(filters):
            column = self._check_column(collection, f.field)
            if f.op == Op.IN:
                values = list(f.value)
                if not values:
                    clauses.append("0")
                    continue
                clauses.append(f"{column} IN ({', '.join('?' for _ in values)})")
                params.extend(values)
            elif f.op == Op.ILIKE:
                clauses.append(f"casefold({column}) LIKE ? ESCAPE '\\'")
                params.append(f"%{_escape_like(str(f.value).casefold())}%")
            elif f.op in _COMPARISONS:
                clauses.append(f"{column} {_COMPARISONS[f.op]} ?")
                params.append(f.value)
            else:
                raise GatewayError(f"Unsupported filter operator: {f.op}")
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def _row_to_dict(self, row: sqlite3.Row) -> Row:
        data = dict(row)
        for column in _BOOLEAN_COLUMNS & data.keys():
            if data[column] is not None:
                data[column] = bool(data[column])
        return data

    def select(
        self,
        collection: Collection,
        filters: Sequence[Filter] = (),
        order: Sequence[Order] = (),
        limit: int | None = None,
        columns: Sequence[str] | None = None,
    ) -> list[Row]:
        selected = (
            ", ".join(self._check_column(collection, c) for c in columns) if columns else "*"
        )
        where, params = self._where(collection, filters)

        order_terms = []
        for o in order:
            column = self._check_column(collection, o.field)
            direction = "DESC" if o.descending else "ASC"
            nulls = "NULLS FIRST" if o.effective_nulls_first else "NULLS LAST"
            order_terms.append(f"{column} {direction} {nulls}")
        order_terms.append("rowid ASC")

        sql = f"SELECT {selected} FROM {collection.value}{where} ORDER BY {', '.join(order_terms)}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        try:
            with self._get_connection() as conn:
                rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise GatewayError(f"Select on {collection.value} failed: {e}") from e
        return [self._row_to_dict(r) for r in rows]

    def insert(self, collection: Collection, rows: Sequence[Row]) -> list[Row]:
        inserted = [apply_defaults(collection, row) for row in rows]
        try:
            with self._get_connection() as conn:
                for row in inserted:
                    cols = [self._check_column(collection, c) for c in row]
                    conn.execute(
                        f"INSERT INTO {collection.value} ({', '.join(cols)}) "
                        f"VALUES ({', '.join('?' for _ in cols)})",
                        list(row.values()),
                    )
        except sqlite3.Error as e:
            raise GatewayError(f"Insert into {collection.value} failed: {e}") from e
        log.debug(f"insert {collection.value}: {len(inserted)} row(s)")
        return inserted

    def update(self, collection: Collection, patch: Row, filters: Sequence[Filter]) -> None:
        if not filters:
            raise GatewayError("Refusing to update without filters")
        if not patch:
            return
        patch = wire_row(patch)
        assignments = ", ".join(f"{self._check_column(collection, c)} = ?" for c in patch)
        where, params = self._where(collection, filters)
        try:
            with self._get_connection() as conn:
                conn.execute(
                    f"UPDATE {collection.value} SET {assignments}{where}",
                    list(patch.values()) + params,
                )
        except sqlite3.Error as e:
            raise GatewayError(f"Update on {collection.value} failed: {e}") from e

    def delete(self, collection: Collection, filters: Sequence[Filter]) -> None:
        if not filters:
            raise GatewayError("Refusing to delete without filters")
        where, params = self._where(collection, filters)
        try:
            with self._get_connection() as conn:
                conn.execute(f"DELETE FROM {collection.value}{where}", params)
        except sqlite3.Error as e:
            raise GatewayError(f"Delete from {collection.value} failed: {e}") from e

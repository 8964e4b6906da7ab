"""Data gateway for Household Hub.

Every read and write goes through a gateway exposing four operations:
``select``, ``insert``, ``update`` and ``delete`` over named collections.
Three backends implement it: an in-memory store (tests and scratch use), a
local SQLite file, and a hosted REST relational service.
Use create_gateway() to get the backend chosen by configuration.
"""

import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from pathlib import Path
from typing import Any, Protocol
from uuid import UUID, uuid4

from .logging import get_logger

log = get_logger("gateway")

Row = dict[str, Any]


class Collection(str, Enum):
    """Record collections held by the remote store."""

    HOUSEHOLDS = "households"
    HOUSEHOLD_MEMBERS = "household_members"
    PROFILES = "profiles"
    LISTS = "lists"
    LIST_ITEMS = "list_items"
    LIST_HISTORY = "list_history"
    NOTES = "notes"
    EVENTS = "events"
    TASKS = "tasks"


class Op(str, Enum):
    """Filter operators understood by every backend."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    ILIKE = "ilike"  # case-insensitive substring match
    IN = "in"


@dataclass(frozen=True)
class Filter:
    """A single ``field <op> value`` predicate."""

    field: str
    op: Op
    value: Any


@dataclass(frozen=True)
class Order:
    """Sort instruction; ``nulls_first=None`` means the SQL default."""

    field: str
    descending: bool = False
    nulls_first: bool | None = None

    @property
    def effective_nulls_first(self) -> bool:
        if self.nulls_first is None:
            return self.descending
        return self.nulls_first


def eq(field: str, value: Any) -> Filter:
    return Filter(field, Op.EQ, value)


def neq(field: str, value: Any) -> Filter:
    return Filter(field, Op.NEQ, value)


def gte(field: str, value: Any) -> Filter:
    return Filter(field, Op.GTE, value)


def lte(field: str, value: Any) -> Filter:
    return Filter(field, Op.LTE, value)


def ilike(field: str, substring: str) -> Filter:
    return Filter(field, Op.ILIKE, substring)


def in_(field: str, values: Iterable[Any]) -> Filter:
    return Filter(field, Op.IN, tuple(values))


class GatewayError(Exception):
    """Raised when the data gateway rejects or fails a request."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class BackendType(str, Enum):
    """Data gateway backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"
    REST = "rest"


class GatewayProtocol(Protocol):
    """Protocol defining the data gateway interface."""

    def select(
        self,
        collection: Collection,
        filters: Sequence[Filter] = (),
        order: Sequence[Order] = (),
        limit: int | None = None,
        columns: Sequence[str] | None = None,
    ) -> list[Row]: ...
    def insert(self, collection: Collection, rows: Sequence[Row]) -> list[Row]: ...
    def update(self, collection: Collection, patch: Row, filters: Sequence[Filter]) -> None: ...
    def delete(self, collection: Collection, filters: Sequence[Filter]) -> None: ...


def to_wire(value: Any) -> Any:
    """Convert Python values into the JSON-friendly form rows are stored in."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    return value


def wire_row(row: Row) -> Row:
    return {key: to_wire(value) for key, value in row.items()}


def wire_filters(filters: Sequence[Filter]) -> list[Filter]:
    return [Filter(f.field, f.op, to_wire(f.value)) for f in filters]


# Column defaults applied by local backends, mirroring the hosted schema.
_DEFAULTS: dict[Collection, dict[str, Any]] = {
    Collection.HOUSEHOLD_MEMBERS: {"role": "member"},
    Collection.LISTS: {"name": "Grocery List", "type": "grocery"},
    Collection.LIST_ITEMS: {"is_completed": False, "quantity": None},
    Collection.LIST_HISTORY: {"quantity": None},
    Collection.NOTES: {"is_private": False},
    Collection.EVENTS: {"all_day": False},
    Collection.TASKS: {"priority": "medium", "status": "todo", "is_private": False},
}

_TIMESTAMP_DEFAULTS: dict[Collection, tuple[str, ...]] = {
    Collection.HOUSEHOLDS: ("created_at",),
    Collection.HOUSEHOLD_MEMBERS: ("joined_at",),
    Collection.LISTS: ("created_at",),
    Collection.LIST_ITEMS: ("created_at",),
    Collection.LIST_HISTORY: ("created_at",),
    Collection.NOTES: ("created_at", "updated_at"),
    Collection.EVENTS: ("created_at",),
    Collection.TASKS: ("created_at",),
}


def apply_defaults(collection: Collection, row: Row) -> Row:
    """Fill server-side defaults (id, timestamps, flags) for a new row."""
    filled = dict(_DEFAULTS.get(collection, {}))
    filled.update(wire_row(row))
    if not filled.get("id"):
        filled["id"] = str(uuid4())
    now = datetime.now().isoformat()
    for column in _TIMESTAMP_DEFAULTS.get(collection, ()):
        if not filled.get(column):
            filled[column] = now
    return filled


def matches(row: Row, filters: Sequence[Filter]) -> bool:
    """Evaluate filters against a row with SQL NULL semantics."""
    for f in filters:
        actual = row.get(f.field)
        expected = f.value
        if f.op == Op.IN:
            if actual is None or actual not in expected:
                return False
            continue
        if actual is None or expected is None:
            # NULL never compares true, not even for neq
            return False
        if f.op == Op.EQ:
            ok = actual == expected
        elif f.op == Op.NEQ:
            ok = actual != expected
        elif f.op == Op.GT:
            ok = actual > expected
        elif f.op == Op.GTE:
            ok = actual >= expected
        elif f.op == Op.LT:
            ok = actual < expected
        elif f.op == Op.LTE:
            ok = actual <= expected
        elif f.op == Op.ILIKE:
            ok = str(expected).casefold() in str(actual).casefold()
        else:
            raise GatewayError(f"Unsupported filter operator: {f.op}")
        if not ok:
            return False
    return True


def sort_rows(rows: list[Row], order: Sequence[Order]) -> list[Row]:
    """Stable multi-key sort honouring null placement."""
    result = list(rows)
    for o in reversed(order):
        present = [r for r in result if r.get(o.field) is not None]
        missing = [r for r in result if r.get(o.field) is None]
        present.sort(key=lambda r: r[o.field], reverse=o.descending)
        result = missing + present if o.effective_nulls_first else present + missing
    return result


def project(row: Row, columns: Sequence[str] | None) -> Row:
    if not columns:
        return dict(row)
    return {c: row.get(c) for c in columns}


class InMemoryGateway:
    """Keeps every collection in process memory.

    Rows are kept in insertion order, so an unordered select returns them the
    way they were written.
    """

    def __init__(self, seed: dict[Collection, list[Row]] | None = None):
        self._tables: dict[Collection, list[Row]] = {c: [] for c in Collection}
        self._lock = threading.Lock()
        for collection, rows in (seed or {}).items():
            self.insert(collection, rows)

    def select(
        self,
        collection: Collection,
        filters: Sequence[Filter] = (),
        order: Sequence[Order] = (),
        limit: int | None = None,
        columns: Sequence[str] | None = None,
    ) -> list[Row]:
        filters = wire_filters(filters)
        with self._lock:
            rows = [r for r in self._tables[collection] if matches(r, filters)]
        rows = sort_rows(rows, order)
        if limit is not None:
            rows = rows[:limit]
        return [project(r, columns) for r in rows]

    def insert(self, collection: Collection, rows: Sequence[Row]) -> list[Row]:
        inserted = [apply_defaults(collection, row) for row in rows]
        with self._lock:
            self._tables[collection].extend(inserted)
        log.debug(f"insert {collection.value}: {len(inserted)} row(s)")
        return [dict(r) for r in inserted]

    def update(self, collection: Collection, patch: Row, filters: Sequence[Filter]) -> None:
        if not filters:
            raise GatewayError("Refusing to update without filters")
        filters = wire_filters(filters)
        patch = wire_row(patch)
        with self._lock:
            for row in self._tables[collection]:
                if matches(row, filters):
                    row.update(patch)

    def delete(self, collection: Collection, filters: Sequence[Filter]) -> None:
        if not filters:
            raise GatewayError("Refusing to delete without filters")
        filters = wire_filters(filters)
        with self._lock:
            self._tables[collection] = [
                r for r in self._tables[collection] if not matches(r, filters)
            ]


def create_gateway(
    backend: BackendType = BackendType.SQLITE,
    data_dir: Path | None = None,
    db_path: Path | None = None,
    url: str | None = None,
    api_key: str | None = None,
    access_token: str | None = None,
    timeout: int = 30,
) -> GatewayProtocol:
    """Create a data gateway for the given backend.

    Args:
        backend: Which backend to use (memory, sqlite or rest)
        data_dir: Base directory for the SQLite file when db_path is not given
        db_path: Path to the SQLite database file
        url: Base URL of the hosted service (rest backend)
        api_key: Project API key of the hosted service (rest backend)
        access_token: Signed-in user's token (rest backend)
        timeout: HTTP timeout in seconds (rest backend)

    Returns:
        A gateway instance
    """
    if backend == BackendType.MEMORY:
        return InMemoryGateway()
    if backend == BackendType.REST:
        from .rest_gateway import RestGateway

        if not url or not api_key:
            raise GatewayError("The rest backend needs both a service URL and an API key")
        return RestGateway(url, api_key, access_token=access_token, timeout=timeout)

    from .sqlite_gateway import SQLiteGateway

    if db_path is None and data_dir is not None:
        db_path = data_dir / "household.db"
    return SQLiteGateway(db_path=db_path)

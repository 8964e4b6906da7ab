"""Search across grocery items, notes, events and tasks."""

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime

from .gateway import Collection, GatewayProtocol, Row, eq, ilike
from .logging import get_logger
from .models import ListType, SearchKind, SearchResult

log = get_logger("search")

MIN_TERM_LENGTH = 2
PER_KIND_LIMIT = 5
NOTE_TITLE_LENGTH = 50

# Result kinds in the order they are listed.
KIND_ORDER = (SearchKind.GROCERY, SearchKind.NOTE, SearchKind.EVENT, SearchKind.TASK)

_NAVIGATION = {
    SearchKind.GROCERY: "grocery",
    SearchKind.NOTE: "notes",
    SearchKind.EVENT: "calendar",
    SearchKind.TASK: "tasks",
}


def navigation_target(kind: SearchKind) -> str:
    """View a search result belongs to."""
    return _NAVIGATION[kind]


def _as_datetime(value: str | datetime | date) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_day(value: str | datetime | date) -> str:
    """'Jan 7, 2024'."""
    moment = _as_datetime(value)
    return f"{moment:%b} {moment.day}, {moment.year}"


def format_moment(value: str | datetime) -> str:
    """'Jan 7, 2024 9:30 AM'."""
    moment = _as_datetime(value)
    hour = moment.hour % 12 or 12
    return f"{format_day(moment)} {hour}:{moment:%M} {moment:%p}"


def note_title(content: str) -> str:
    if len(content) > NOTE_TITLE_LENGTH:
        return content[:NOTE_TITLE_LENGTH] + "..."
    return content


def grocery_result(row: Row) -> SearchResult:
    quantity = row.get("quantity")
    return SearchResult(
        kind=SearchKind.GROCERY,
        id=str(row["id"]),
        title=row["text"],
        preview=f"Quantity: {quantity}" if quantity else None,
    )


def note_result(row: Row) -> SearchResult:
    return SearchResult(
        kind=SearchKind.NOTE,
        id=str(row["id"]),
        title=note_title(row["content"]),
        preview=format_day(row["created_at"]),
        date=str(row["created_at"]),
    )


def event_result(row: Row) -> SearchResult:
    start = row["start_time"]
    return SearchResult(
        kind=SearchKind.EVENT,
        id=str(row["id"]),
        title=row["title"],
        preview=format_day(start) if row.get("all_day") else format_moment(start),
        date=str(start),
    )


def task_result(row: Row) -> SearchResult:
    due = row.get("due_date")
    if due:
        due_day = _as_datetime(due)
        preview = f"Due {due_day:%b} {due_day.day}"
    else:
        preview = "No due date"
    return SearchResult(
        kind=SearchKind.TASK,
        id=str(row["id"]),
        title=row["title"],
        preview=preview,
        priority=row.get("priority"),
    )


@dataclass
class SearchOutcome:
    """Results of one search, plus the kinds whose lookup failed."""

    results: list[SearchResult] = field(default_factory=list)
    failures: dict[SearchKind, Exception] = field(default_factory=dict)


class SearchAggregator:
    """Runs one substring lookup per entity kind and merges the hits.

    Lookups run in parallel and are independent: a lookup that fails is
    logged and contributes no results, the others still come back.
    """

    def __init__(
        self,
        gateway: GatewayProtocol,
        household_id: str,
        per_kind_limit: int = PER_KIND_LIMIT,
        max_workers: int = len(KIND_ORDER),
    ):
        self.gateway = gateway
        self.household_id = household_id
        self.per_kind_limit = per_kind_limit
        self.max_workers = max_workers

    def search(self, term: str) -> list[SearchResult]:
        """Search every kind for ``term``; fewer than 2 characters finds nothing."""
        return self.lookup(term).results

    def lookup(self, term: str) -> SearchOutcome:
        """Like search, but also reports which kinds failed."""
        term = (term or "").strip()
        if len(term) < MIN_TERM_LENGTH:
            return SearchOutcome()

        lookups: dict[SearchKind, Callable[[str], list[SearchResult]]] = {
            SearchKind.GROCERY: self._search_grocery,
            SearchKind.NOTE: self._search_notes,
            SearchKind.EVENT: self._search_events,
            SearchKind.TASK: self._search_tasks,
        }

        outcome = SearchOutcome()
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {kind: pool.submit(lookups[kind], term) for kind in KIND_ORDER}
            for kind in KIND_ORDER:
                try:
                    outcome.results.extend(futures[kind].result())
                except Exception as e:
                    log.warning(f"{kind.value} search for {term!r} failed: {e}")
                    outcome.failures[kind] = e
        return outcome

    def _search_grocery(self, term: str) -> list[SearchResult]:
        lists = self.gateway.select(
            Collection.LISTS,
            [eq("household_id", self.household_id), eq("type", ListType.GROCERY)],
            columns=["id"],
            limit=1,
        )
        if not lists:
            return []
        rows = self.gateway.select(
            Collection.LIST_ITEMS,
            [eq("list_id", lists[0]["id"]), ilike("text", term)],
            columns=["id", "text", "quantity"],
            limit=self.per_kind_limit,
        )
        return [grocery_result(r) for r in rows]

    def _search_notes(self, term: str) -> list[SearchResult]:
        rows = self.gateway.select(
            Collection.NOTES,
            [eq("household_id", self.household_id), ilike("content", term)],
            columns=["id", "content", "created_at"],
            limit=self.per_kind_limit,
        )
        return [note_result(r) for r in rows]

    def _search_events(self, term: str) -> list[SearchResult]:
        rows = self.gateway.select(
            Collection.EVENTS,
            [eq("household_id", self.household_id), ilike("title", term)],
            columns=["id", "title", "start_time", "all_day"],
            limit=self.per_kind_limit,
        )
        return [event_result(r) for r in rows]

    def _search_tasks(self, term: str) -> list[SearchResult]:
        rows = self.gateway.select(
            Collection.TASKS,
            [eq("household_id", self.household_id), ilike("title", term)],
            columns=["id", "title", "priority", "due_date", "status"],
            limit=self.per_kind_limit,
        )
        return [task_result(r) for r in rows]


class SearchSession:
    """Search-as-you-type bookkeeping.

    Every submitted term gets a generation number. Results are published only
    if their term is still the latest one submitted, so a slow lookup for an
    older term never replaces the results of a newer one.
    """

    def __init__(
        self,
        aggregator: SearchAggregator,
        on_results: Callable[[str, list[SearchResult]], None] | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        self.aggregator = aggregator
        self.on_results = on_results
        self._executor = executor or ThreadPoolExecutor(max_workers=2)
        self._owns_executor = executor is None
        self._lock = threading.Lock()
        self._publish_lock = threading.Lock()
        self._generation = 0
        self._term = ""
        self._results: list[SearchResult] = []

    @property
    def term(self) -> str:
        with self._lock:
            return self._term

    @property
    def results(self) -> list[SearchResult]:
        with self._lock:
            return list(self._results)

    def submit(self, term: str) -> Future:
        """Start a search for term, superseding any search still running."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._term = term
        return self._executor.submit(self._run, term, generation)

    def _run(self, term: str, generation: int) -> list[SearchResult]:
        results = self.aggregator.search(term)
        # check and callback share _publish_lock: publications are serialized,
        # newest last. submit() never takes it.
        with self._publish_lock:
            with self._lock:
                if generation != self._generation:
                    log.debug(f"Dropping stale results for {term!r}")
                    return results
                self._results = results
            if self.on_results is not None:
                self.on_results(term, results)
        return results

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)

"""Tests for cross-entity search."""

import threading
from datetime import date

import pytest

from household_hub.gateway import Collection, GatewayError, InMemoryGateway
from household_hub.models import Priority, SearchKind, SearchResult
from household_hub.search import (
    PER_KIND_LIMIT,
    SearchAggregator,
    SearchSession,
    format_moment,
    navigation_target,
    note_title,
)


class FailingGateway(InMemoryGateway):
    """Raises on selects from chosen collections."""

    def __init__(self, failing: set[Collection]):
        super().__init__()
        self.failing = failing

    def select(self, collection, *args, **kwargs):
        if collection in self.failing:
            raise GatewayError(f"{collection.value} unavailable", status_code=503)
        return super().select(collection, *args, **kwargs)


@pytest.fixture
def aggregator(gateway, household_id):
    return SearchAggregator(gateway, household_id)


@pytest.fixture
def populated(grocery_manager, note_manager, event_manager, task_manager):
    """One matching record of each kind for the term 'mil'."""
    grocery_manager.add_item("Milk", "1 gal")
    grocery_manager.add_item("Bread")
    note_manager.add_note("Something similar to last time")
    event_manager.add_event("Family dinner", date(2024, 1, 7), at="18:00")
    task_manager.add_task("Call Emily", due_date=date(2024, 1, 9), priority=Priority.HIGH)


class TestSearch:
    """Tests for SearchAggregator.search."""

    def test_matches_across_kinds(self, aggregator, populated):
        results = aggregator.search("mil")

        titles = {(r.kind, r.title) for r in results}
        assert (SearchKind.GROCERY, "Milk") in titles
        assert (SearchKind.NOTE, "Something similar to last time") in titles
        assert all(r.title != "Bread" for r in results)

    def test_result_order_is_fixed(self, aggregator, populated):
        results = aggregator.search("mil")

        assert [r.kind for r in results] == [
            SearchKind.GROCERY,
            SearchKind.NOTE,
            SearchKind.EVENT,
            SearchKind.TASK,
        ]

    def test_case_insensitive(self, aggregator, populated):
        assert [r.title for r in aggregator.search("MILK")] == ["Milk"]

    @pytest.mark.parametrize("term", ["", "m", " m ", "  "])
    def test_short_terms_return_nothing(self, aggregator, populated, term):
        assert aggregator.search(term) == []

    def test_term_is_trimmed(self, aggregator, populated):
        assert [r.title for r in aggregator.search("  bread  ")] == ["Bread"]

    def test_no_matches(self, aggregator, populated):
        assert aggregator.search("zucchini") == []

    def test_without_grocery_list(self, aggregator, note_manager):
        note_manager.add_note("milk run")

        results = aggregator.search("milk")
        assert [r.kind for r in results] == [SearchKind.NOTE]

    def test_limit_per_kind(self, aggregator, grocery_manager):
        for i in range(PER_KIND_LIMIT + 2):
            grocery_manager.add_item(f"Apple {i}")

        assert len(aggregator.search("apple")) == PER_KIND_LIMIT

    def test_other_households_excluded(self, gateway, aggregator, populated):
        gateway.insert(
            Collection.NOTES,
            [{"household_id": "someone-else", "content": "milk for the neighbours"}],
        )

        notes = [r for r in aggregator.search("mil") if r.kind == SearchKind.NOTE]
        assert len(notes) == 1

    def test_runs_on_sqlite(self, sqlite_gateway):
        from household_hub.grocery_manager import GroceryManager
        from household_hub.household_manager import create_household

        home, alice = create_household(sqlite_gateway, "Home", "alice@example.com")
        GroceryManager(sqlite_gateway, home.id, alice.id).add_item("50% Milk")
        GroceryManager(sqlite_gateway, home.id, alice.id).add_item("Milk_chocolate")

        aggregator = SearchAggregator(sqlite_gateway, home.id)
        assert [r.title for r in aggregator.search("50%")] == ["50% Milk"]
        assert [r.title for r in aggregator.search("k_c")] == ["Milk_chocolate"]


class TestPartialFailure:
    """A failed lookup only loses its own results."""

    def test_failed_kind_contributes_nothing(self, household_id):
        gateway = FailingGateway({Collection.NOTES})
        gateway.insert(Collection.TASKS, [{"household_id": household_id, "title": "Milk run"}])
        gateway.insert(Collection.NOTES, [{"household_id": household_id, "content": "milk"}])

        outcome = SearchAggregator(gateway, household_id).lookup("milk")

        assert [r.kind for r in outcome.results] == [SearchKind.TASK]
        assert list(outcome.failures) == [SearchKind.NOTE]
        assert isinstance(outcome.failures[SearchKind.NOTE], GatewayError)

    def test_all_failing_returns_empty(self, household_id):
        gateway = FailingGateway(set(Collection))
        aggregator = SearchAggregator(gateway, household_id)

        outcome = aggregator.lookup("milk")

        assert outcome.results == []
        assert len(outcome.failures) == 4
        assert aggregator.search("milk") == []

    def test_failures_belong_to_their_own_lookup(self, household_id):
        gateway = FailingGateway({Collection.NOTES})
        aggregator = SearchAggregator(gateway, household_id)

        failed = aggregator.lookup("milk")
        gateway.failing = set()
        recovered = aggregator.lookup("milk")

        assert list(failed.failures) == [SearchKind.NOTE]
        assert recovered.failures == {}

    def test_short_term_has_no_failures(self, household_id):
        outcome = SearchAggregator(FailingGateway(set(Collection)), household_id).lookup("m")

        assert outcome.results == []
        assert outcome.failures == {}


class TestPreviews:
    """Tests for result titles and previews."""

    def test_grocery_quantity_preview(self, aggregator, grocery_manager):
        grocery_manager.add_item("Milk", "2")
        grocery_manager.add_item("Milkshake")

        previews = {r.title: r.preview for r in aggregator.search("milk")}
        assert previews == {"Milk": "Quantity: 2", "Milkshake": None}

    def test_note_title_truncated(self, aggregator, gateway, household_id):
        content = "milk " + "x" * 60
        gateway.insert(
            Collection.NOTES,
            [{"household_id": household_id, "content": content, "created_at": "2024-01-07T09:30:00"}],
        )

        [result] = aggregator.search("milk")
        assert result.title == content[:50] + "..."
        assert result.preview == "Jan 7, 2024"

    def test_short_note_not_truncated(self):
        assert note_title("milk") == "milk"
        assert note_title("x" * 50) == "x" * 50

    def test_event_preview(self, aggregator, event_manager):
        event_manager.add_event("Dentist", date(2024, 1, 7), at="09:30")
        event_manager.add_event("Dentist holiday", date(2024, 1, 8), all_day=True)

        previews = {r.title: r.preview for r in aggregator.search("dentist")}
        assert previews["Dentist"] == "Jan 7, 2024 9:30 AM"
        assert previews["Dentist holiday"] == "Jan 8, 2024"

    def test_afternoon_time(self):
        assert format_moment("2024-03-15T14:05:00") == "Mar 15, 2024 2:05 PM"
        assert format_moment("2024-03-15T00:15:00") == "Mar 15, 2024 12:15 AM"

    def test_task_preview(self, aggregator, task_manager):
        task_manager.add_task("Water plants", due_date=date(2024, 1, 9), priority=Priority.HIGH)
        task_manager.add_task("Water filter")

        results = {r.title: r for r in aggregator.search("water")}
        assert results["Water plants"].preview == "Due Jan 9"
        assert results["Water plants"].priority == Priority.HIGH
        assert results["Water filter"].preview == "No due date"


class TestNavigation:
    """Tests for navigation targets."""

    @pytest.mark.parametrize(
        ("kind", "target"),
        [
            (SearchKind.GROCERY, "grocery"),
            (SearchKind.NOTE, "notes"),
            (SearchKind.EVENT, "calendar"),
            (SearchKind.TASK, "tasks"),
        ],
    )
    def test_targets(self, kind, target):
        assert navigation_target(kind) == target


class ScriptedAggregator:
    """Aggregator whose searches for 'slow' block until released."""

    def __init__(self):
        self.release = threading.Event()

    def search(self, term):
        if term == "slow":
            self.release.wait(timeout=5)
        return [SearchResult(kind=SearchKind.NOTE, id=term, title=term)]


class TestSearchSession:
    """Tests for last-write-wins search sessions."""

    def test_stale_results_are_dropped(self):
        aggregator = ScriptedAggregator()
        published = []
        session = SearchSession(aggregator, on_results=lambda t, r: published.append(t))

        slow = session.submit("slow")
        fast = session.submit("fast")
        fast.result(timeout=5)

        aggregator.release.set()
        slow.result(timeout=5)
        session.close()

        assert published == ["fast"]
        assert [r.title for r in session.results] == ["fast"]
        assert session.term == "fast"

    def test_latest_result_published(self):
        aggregator = ScriptedAggregator()
        published = []
        session = SearchSession(aggregator, on_results=lambda t, r: published.append(t))

        session.submit("first").result(timeout=5)
        session.submit("second").result(timeout=5)
        session.close()

        assert published == ["first", "second"]
        assert [r.title for r in session.results] == ["second"]

    def test_older_callback_cannot_publish_after_newer(self):
        entered = threading.Event()
        release = threading.Event()
        published = []

        def on_results(term, results):
            if term == "first":
                entered.set()
                release.wait(timeout=5)
            published.append(term)

        session = SearchSession(ScriptedAggregator(), on_results=on_results)

        first = session.submit("first")
        assert entered.wait(timeout=5)
        second = session.submit("second")
        release.set()
        first.result(timeout=5)
        second.result(timeout=5)
        session.close()

        assert published == ["first", "second"]
        assert [r.title for r in session.results] == ["second"]
        assert session.term == "second"

"""Tests for the revision-counted query cache."""

from household_hub.cache import QueryCache
from household_hub.gateway import Collection


class Counter:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.calls


class TestQueryCache:
    """Tests for QueryCache."""

    def test_second_read_is_cached(self):
        cache = QueryCache()
        fetch = Counter()

        assert cache.get_or_fetch("k", [Collection.NOTES], fetch) == 1
        assert cache.get_or_fetch("k", [Collection.NOTES], fetch) == 1
        assert fetch.calls == 1

    def test_invalidate_forces_refetch(self):
        cache = QueryCache()
        fetch = Counter()

        cache.get_or_fetch("k", [Collection.NOTES], fetch)
        cache.invalidate(Collection.NOTES)

        assert cache.get_or_fetch("k", [Collection.NOTES], fetch) == 2

    def test_unrelated_invalidation_keeps_entry(self):
        cache = QueryCache()
        fetch = Counter()

        cache.get_or_fetch("k", [Collection.NOTES], fetch)
        cache.invalidate(Collection.TASKS)

        assert cache.get_or_fetch("k", [Collection.NOTES], fetch) == 1

    def test_multi_collection_dependency(self):
        cache = QueryCache()
        fetch = Counter()
        deps = [Collection.HOUSEHOLD_MEMBERS, Collection.PROFILES]

        cache.get_or_fetch("members", deps, fetch)
        cache.invalidate(Collection.PROFILES)

        assert cache.get_or_fetch("members", deps, fetch) == 2

    def test_mutation_during_fetch_is_not_hidden(self):
        cache = QueryCache()
        calls = []

        def fetch_and_mutate():
            calls.append(1)
            if len(calls) == 1:
                cache.invalidate(Collection.NOTES)
            return len(calls)

        cache.get_or_fetch("k", [Collection.NOTES], fetch_and_mutate)

        assert cache.get_or_fetch("k", [Collection.NOTES], fetch_and_mutate) == 2

    def test_revision_counts_invalidations(self):
        cache = QueryCache()
        cache.invalidate(Collection.TASKS, Collection.NOTES)
        cache.invalidate(Collection.TASKS)

        assert cache.revision(Collection.TASKS) == 2
        assert cache.revision(Collection.NOTES) == 1
        assert cache.revision(Collection.EVENTS) == 0

    def test_clear(self):
        cache = QueryCache()
        fetch = Counter()

        cache.get_or_fetch("k", [Collection.NOTES], fetch)
        cache.clear()

        assert cache.get_or_fetch("k", [Collection.NOTES], fetch) == 2

"""Shared test fixtures for Household Hub."""

import pytest

from household_hub.cache import QueryCache
from household_hub.event_manager import EventManager
from household_hub.gateway import InMemoryGateway
from household_hub.grocery_manager import GroceryManager
from household_hub.household_manager import HouseholdManager, create_household
from household_hub.logging import set_level
from household_hub.note_manager import NoteManager
from household_hub.sqlite_gateway import SQLiteGateway
from household_hub.task_manager import TaskManager


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep user config files and environment overrides out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for name in (
        "HOUSEHOLD_HUB_BACKEND",
        "HOUSEHOLD_HUB_URL",
        "HOUSEHOLD_HUB_API_KEY",
        "HOUSEHOLD_HUB_USER",
        "HOUSEHOLD_HUB_HOUSEHOLD",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    set_level("WARNING")


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def gateway():
    """In-memory gateway."""
    return InMemoryGateway()


@pytest.fixture
def sqlite_gateway(temp_data_dir):
    """SQLite gateway in a temporary directory."""
    return SQLiteGateway(db_path=temp_data_dir / "household.db")


@pytest.fixture
def household(gateway):
    """A household owned by Alice."""
    home, alice = create_household(gateway, "Home", "alice@example.com", "Alice")
    return home, alice


@pytest.fixture
def household_id(household):
    return household[0].id


@pytest.fixture
def user_id(household):
    return household[1].id


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def grocery_manager(gateway, household_id, user_id, cache):
    """GroceryManager for Alice's household."""
    return GroceryManager(gateway, household_id, user_id, cache)


@pytest.fixture
def note_manager(gateway, household_id, user_id, cache):
    return NoteManager(gateway, household_id, user_id, cache)


@pytest.fixture
def event_manager(gateway, household_id, user_id, cache):
    return EventManager(gateway, household_id, user_id, cache)


@pytest.fixture
def task_manager(gateway, household_id, user_id, cache):
    return TaskManager(gateway, household_id, user_id, cache)


@pytest.fixture
def household_manager(gateway, household_id, user_id, cache):
    return HouseholdManager(gateway, household_id, user_id, cache)


"""Household Hub - Shared grocery lists, notes, calendar and tasks."""

from .cache import QueryCache
from .config import ConfigManager
from .dashboard import Dashboard
from .errors import NoHouseholdError, RecordNotFoundError, ValidationError
from .event_manager import EventManager
from .gateway import (
    BackendType,
    Collection,
    GatewayError,
    GatewayProtocol,
    InMemoryGateway,
    create_gateway,
)
from .grocery_manager import GroceryManager
from .history import frequency_ranking, frequent_items, latest_week_items, week_start_for
from .household_manager import HouseholdManager, MemberError, create_household
from .models import (
    AuthSession,
    DashboardSummary,
    Event,
    FrequencyEntry,
    GroceryList,
    HistoryEntry,
    Household,
    ListItem,
    MemberProfile,
    Note,
    Priority,
    Profile,
    SearchKind,
    SearchResult,
    Task,
    TaskStatus,
    WeekItem,
)
from .note_manager import NoteManager
from .output_formatter import OutputFormatter
from .search import SearchAggregator, SearchSession
from .sqlite_gateway import SQLiteGateway
from .task_manager import TaskManager

__version__ = "0.1.0"

__all__ = [
    "AuthSession",
    "BackendType",
    "Collection",
    "ConfigManager",
    "create_gateway",
    "create_household",
    "Dashboard",
    "DashboardSummary",
    "Event",
    "EventManager",
    "FrequencyEntry",
    "frequency_ranking",
    "frequent_items",
    "GatewayError",
    "GatewayProtocol",
    "GroceryList",
    "GroceryManager",
    "HistoryEntry",
    "Household",
    "HouseholdManager",
    "InMemoryGateway",
    "latest_week_items",
    "ListItem",
    "MemberError",
    "MemberProfile",
    "NoHouseholdError",
    "Note",
    "NoteManager",
    "OutputFormatter",
    "Priority",
    "Profile",
    "QueryCache",
    "RecordNotFoundError",
    "SearchAggregator",
    "SearchKind",
    "SearchResult",
    "SearchSession",
    "SQLiteGateway",
    "Task",
    "TaskManager",
    "TaskStatus",
    "ValidationError",
    "week_start_for",
    "WeekItem",
]

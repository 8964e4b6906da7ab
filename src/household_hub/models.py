"""Core data models for Household Hub."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field


class Priority(str, Enum):
    """Task priority levels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatus(str, Enum):
    """Task workflow states."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class MemberRole(str, Enum):
    """Role of an account inside a household."""

    OWNER = "owner"
    MEMBER = "member"


class ListType(str, Enum):
    """Kinds of household lists."""

    GROCERY = "grocery"


class SearchKind(str, Enum):
    """Entity kinds that can appear in search results."""

    GROCERY = "grocery"
    NOTE = "note"
    EVENT = "event"
    TASK = "task"


class Household(BaseModel):
    """A group of accounts sharing lists, notes, calendar and tasks."""

    id: str
    name: str
    created_at: datetime | None = None


class Profile(BaseModel):
    """Public profile of a user account."""

    id: str
    name: str | None = None
    email: str


class HouseholdMember(BaseModel):
    """Membership of a user in a household."""

    household_id: str
    user_id: str
    role: MemberRole = MemberRole.MEMBER
    joined_at: datetime | None = None


class MemberProfile(BaseModel):
    """A household member joined with their profile."""

    user_id: str
    role: MemberRole
    joined_at: datetime | None = None
    name: str | None = None
    email: str | None = None


class GroceryList(BaseModel):
    """A household's grocery list header."""

    id: str
    household_id: str
    name: str = "Grocery List"
    type: ListType = ListType.GROCERY
    created_by: str | None = None
    created_at: datetime | None = None


class ListItem(BaseModel):
    """A line on a grocery list."""

    id: str
    list_id: str
    text: str
    quantity: str | None = None
    is_completed: bool = False
    added_by: str | None = None
    created_at: datetime | None = None


class HistoryEntry(BaseModel):
    """An archived list item, tagged with the week it was bought in."""

    id: str | None = None
    list_id: str | None = None
    text: str
    quantity: str | None = None
    week_start: date
    added_by: str | None = None
    completed_at: datetime = Field(default_factory=datetime.now)


class WeekItem(BaseModel):
    """One deduplicated line of the latest archived week."""

    text: str
    quantity: str | None = None


class FrequencyEntry(BaseModel):
    """All-time purchase count for an item text."""

    display_text: str
    count: int


class Note(BaseModel):
    """A shared household note."""

    id: str
    household_id: str
    title: str | None = None
    content: str
    created_by: str | None = None
    is_private: bool = False
    created_at: datetime
    updated_at: datetime | None = None


class Event(BaseModel):
    """A calendar event."""

    id: str
    household_id: str
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime | None = None
    all_day: bool = False
    location: str | None = None
    created_by: str | None = None


class Task(BaseModel):
    """A household task."""

    id: str
    household_id: str
    title: str
    description: str | None = None
    assigned_to: str | None = None
    due_date: date | None = None
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    project: str | None = None
    created_by: str | None = None
    is_private: bool = False


class SearchResult(BaseModel):
    """A single hit from the cross-entity search."""

    kind: SearchKind
    id: str
    title: str
    preview: str | None = None
    date: str | None = None
    priority: Priority | None = None


class GroceryStats(BaseModel):
    """Item counts for the household grocery list."""

    total: int = 0
    pending: int = 0


class TaskStats(BaseModel):
    """Open versus total task counts."""

    active: int = 0
    total: int = 0


class DashboardSummary(BaseModel):
    """Everything the dashboard view shows at a glance."""

    greeting: str
    upcoming_events: list[Event] = Field(default_factory=list)
    tasks_due_soon: list[Task] = Field(default_factory=list)
    recent_notes: list[Note] = Field(default_factory=list)
    grocery: GroceryStats = Field(default_factory=GroceryStats)
    tasks: TaskStats = Field(default_factory=TaskStats)


class AuthSession(BaseModel):
    """The signed-in account, remembered between CLI runs.

    Local backends have no tokens; only the user and household are kept.
    """

    user_id: str
    email: str | None = None
    household_id: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None

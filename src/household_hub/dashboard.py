"""At-a-glance summary of the household."""

from datetime import datetime

from .cache import QueryCache
from .event_manager import EventManager
from .gateway import GatewayProtocol
from .grocery_manager import GroceryManager
from .household_manager import HouseholdManager
from .models import DashboardSummary, GroceryStats, TaskStats
from .note_manager import NoteManager
from .task_manager import TaskManager

UPCOMING_DAYS = 7
UPCOMING_LIMIT = 5
RECENT_NOTES = 3


def greeting_for(hour: int) -> str:
    """'Good morning' before noon, 'Good afternoon' before six, else 'Good evening'."""
    if hour < 12:
        return "Good morning"
    if hour < 18:
        return "Good afternoon"
    return "Good evening"


class Dashboard:
    """Builds a DashboardSummary from the individual managers."""

    def __init__(
        self,
        gateway: GatewayProtocol,
        household_id: str,
        user_id: str | None = None,
        cache: QueryCache | None = None,
    ):
        self.cache = cache or QueryCache()
        self.household = HouseholdManager(gateway, household_id, user_id, self.cache)
        self.grocery = GroceryManager(gateway, household_id, user_id, self.cache)
        self.notes = NoteManager(gateway, household_id, user_id, self.cache)
        self.events = EventManager(gateway, household_id, user_id, self.cache)
        self.tasks = TaskManager(gateway, household_id, user_id, self.cache)

    def summary(self, now: datetime | None = None) -> DashboardSummary:
        now = now or datetime.now()

        greeting = greeting_for(now.hour)
        profile = self.household.get_profile()
        if profile and profile.name:
            greeting = f"{greeting}, {profile.name}"

        return DashboardSummary(
            greeting=greeting,
            upcoming_events=self.events.upcoming(UPCOMING_DAYS, UPCOMING_LIMIT, now=now),
            tasks_due_soon=self.tasks.due_soon(UPCOMING_DAYS, UPCOMING_LIMIT, today=now.date()),
            recent_notes=self.notes.get_notes(limit=RECENT_NOTES),
            grocery=GroceryStats(**self.grocery.stats()),
            tasks=TaskStats(**self.tasks.stats()),
        )

    def as_dict(self, now: datetime | None = None) -> dict:
        """Summary wrapped for the output formatter."""
        summary = self.summary(now)
        return {"success": True, "data": {"dashboard": summary.model_dump(mode="json")}}

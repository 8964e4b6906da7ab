"""Household calendar."""

import calendar
from collections import defaultdict
from datetime import date, datetime, time, timedelta

from .cache import QueryCache
from .errors import RecordNotFoundError, ValidationError, require_text
from .gateway import Collection, GatewayProtocol, Order, eq, gte, lte
from .models import Event


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """First and last instant of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        datetime.combine(date(year, month, last_day), time.max),
    )


def parse_time_of_day(value: str) -> time:
    """Parse an ``HH:MM`` string."""
    try:
        hours, minutes = value.strip().split(":")
        return time(int(hours), int(minutes))
    except ValueError as e:
        raise ValidationError(f"Invalid time '{value}', expected HH:MM") from e


def event_day_label(event: Event, today: date | None = None) -> str:
    """'Today', 'Tomorrow', or a short date such as 'Jan 7'."""
    today = today or date.today()
    day = event.start_time.date()
    if day == today:
        return "Today"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    return f"{day:%b} {day.day}"


class EventManager:
    """Manages calendar events for a household."""

    def __init__(
        self,
        gateway: GatewayProtocol,
        household_id: str,
        user_id: str | None = None,
        cache: QueryCache | None = None,
    ):
        self.gateway = gateway
        self.household_id = household_id
        self.user_id = user_id
        self.cache = cache or QueryCache()

    def get_month(self, year: int, month: int) -> list[Event]:
        """Events starting within a month, in start order."""
        start, end = month_bounds(year, month)
        return self.get_range(start, end)

    def get_range(self, start: datetime, end: datetime, limit: int | None = None) -> list[Event]:
        """Events with start_time between start and end inclusive."""
        return self.cache.get_or_fetch(
            ("events", self.household_id, start.isoformat(), end.isoformat(), limit),
            [Collection.EVENTS],
            lambda: [
                Event.model_validate(row)
                for row in self.gateway.select(
                    Collection.EVENTS,
                    [
                        eq("household_id", self.household_id),
                        gte("start_time", start),
                        lte("start_time", end),
                    ],
                    order=[Order("start_time")],
                    limit=limit,
                )
            ],
        )

    def upcoming(
        self, days: int = 7, limit: int | None = 5, now: datetime | None = None
    ) -> list[Event]:
        """Events from now through the next ``days`` days."""
        now = now or datetime.now()
        return self.get_range(now, now + timedelta(days=days), limit=limit)

    def add_event(
        self,
        title: str,
        day: date,
        at: str | time | None = None,
        all_day: bool = False,
        description: str | None = None,
        location: str | None = None,
    ) -> Event:
        """Add an event on a day.

        Args:
            title: Event title, trimmed before saving
            day: Day of the event
            at: Optional start time ("HH:MM"); ignored for all-day events
            all_day: Whether the event spans the whole day
            description: Optional description
            location: Optional location

        Returns:
            The created Event
        """
        title = require_text(title, "Event title")

        start = datetime.combine(day, time())
        if not all_day and at:
            start = datetime.combine(day, at if isinstance(at, time) else parse_time_of_day(at))

        rows = self.gateway.insert(
            Collection.EVENTS,
            [
                {
                    "household_id": self.household_id,
                    "title": title,
                    "start_time": start,
                    "all_day": all_day,
                    "description": description,
                    "location": location,
                    "created_by": self.user_id,
                }
            ],
        )
        self.cache.invalidate(Collection.EVENTS)
        return Event.model_validate(rows[0])

    def remove_event(self, event_id: str) -> Event:
        """Delete an event.

        Raises:
            RecordNotFoundError: If the event is not in this household
        """
        rows = self.gateway.select(
            Collection.EVENTS, [eq("id", event_id), eq("household_id", self.household_id)], limit=1
        )
        if not rows:
            raise RecordNotFoundError("Event", event_id)

        self.gateway.delete(Collection.EVENTS, [eq("id", event_id)])
        self.cache.invalidate(Collection.EVENTS)
        return Event.model_validate(rows[0])

    @staticmethod
    def group_by_day(events: list[Event]) -> dict[date, list[Event]]:
        """Bucket events by the day they start on, keeping their order."""
        by_day: dict[date, list[Event]] = defaultdict(list)
        for event in events:
            by_day[event.start_time.date()].append(event)
        return dict(by_day)

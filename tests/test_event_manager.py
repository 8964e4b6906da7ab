"""Tests for the household calendar."""

from datetime import date, datetime, time

import pytest

from household_hub.errors import RecordNotFoundError, ValidationError
from household_hub.event_manager import (
    EventManager,
    event_day_label,
    month_bounds,
    parse_time_of_day,
)


class TestHelpers:
    """Tests for module-level helpers."""

    def test_month_bounds(self):
        start, end = month_bounds(2024, 2)
        assert start == datetime(2024, 2, 1)
        assert end.date() == date(2024, 2, 29)
        assert end.time() == time.max

    def test_parse_time_of_day(self):
        assert parse_time_of_day("09:30") == time(9, 30)
        assert parse_time_of_day(" 18:05 ") == time(18, 5)

    @pytest.mark.parametrize("value", ["9", "25:00", "ab:cd", "1:2:3"])
    def test_parse_time_of_day_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_time_of_day(value)

    def test_event_day_label(self, event_manager):
        today = date(2024, 1, 7)
        same_day = event_manager.add_event("Brunch", date(2024, 1, 7))
        next_day = event_manager.add_event("Gym", date(2024, 1, 8))
        later = event_manager.add_event("Trip", date(2024, 1, 12))

        assert event_day_label(same_day, today) == "Today"
        assert event_day_label(next_day, today) == "Tomorrow"
        assert event_day_label(later, today) == "Jan 12"


class TestAddEvent:
    """Tests for adding events."""

    def test_timed_event(self, event_manager, user_id):
        event = event_manager.add_event("Dentist", date(2024, 1, 9), "14:15", location="Clinic")

        assert event.title == "Dentist"
        assert event.start_time == datetime(2024, 1, 9, 14, 15)
        assert event.all_day is False
        assert event.location == "Clinic"
        assert event.created_by == user_id

    def test_all_day_ignores_time(self, event_manager):
        event = event_manager.add_event("Holiday", date(2024, 1, 1), "10:00", all_day=True)

        assert event.all_day is True
        assert event.start_time == datetime(2024, 1, 1)

    def test_empty_title_rejected(self, event_manager):
        with pytest.raises(ValidationError):
            event_manager.add_event("  ", date(2024, 1, 1))

    def test_bad_time_rejected(self, event_manager):
        with pytest.raises(ValidationError):
            event_manager.add_event("Dentist", date(2024, 1, 9), "noon")
        assert event_manager.get_month(2024, 1) == []


class TestQueries:
    """Tests for month, range and upcoming queries."""

    @pytest.fixture
    def events(self, event_manager):
        event_manager.add_event("Late", date(2024, 1, 20), "18:00")
        event_manager.add_event("Early", date(2024, 1, 3), "08:00")
        event_manager.add_event("February", date(2024, 2, 1), "09:00")
        event_manager.add_event("Month end", date(2024, 1, 31), "23:30")
        return event_manager

    def test_month_in_start_order(self, events):
        titles = [e.title for e in events.get_month(2024, 1)]
        assert titles == ["Early", "Late", "Month end"]

    def test_upcoming(self, events):
        upcoming = events.upcoming(days=7, now=datetime(2024, 1, 15, 12, 0))
        assert [e.title for e in upcoming] == ["Late"]

    def test_upcoming_limit(self, events):
        upcoming = events.upcoming(days=60, limit=2, now=datetime(2024, 1, 1))
        assert [e.title for e in upcoming] == ["Early", "Late"]

    def test_household_isolation(self, events, gateway):
        other = EventManager(gateway, "another-household")
        assert other.get_month(2024, 1) == []

    def test_group_by_day(self, event_manager):
        event_manager.add_event("Breakfast", date(2024, 1, 5), "08:00")
        event_manager.add_event("Lunch", date(2024, 1, 5), "12:00")
        event_manager.add_event("Movie", date(2024, 1, 6), "20:00")

        grouped = EventManager.group_by_day(event_manager.get_month(2024, 1))

        assert list(grouped) == [date(2024, 1, 5), date(2024, 1, 6)]
        assert [e.title for e in grouped[date(2024, 1, 5)]] == ["Breakfast", "Lunch"]

    def test_remove_event(self, events):
        event = events.get_month(2024, 2)[0]

        events.remove_event(event.id)

        assert events.get_month(2024, 2) == []

    def test_remove_unknown(self, event_manager):
        with pytest.raises(RecordNotFoundError):
            event_manager.remove_event("missing")

"""Purchase history aggregation for grocery lists."""

from datetime import date, timedelta

from .models import FrequencyEntry, HistoryEntry, WeekItem

DEFAULT_MIN_COUNT = 2
DEFAULT_LIMIT = 8


def item_key(text: str) -> str:
    """Identity of an item text: trimmed and case-folded."""
    return text.strip().casefold()


def week_start_for(day: date) -> date:
    """Return the Sunday that starts the week containing ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def latest_week_items(history: list[HistoryEntry]) -> list[WeekItem]:
    """Deduplicated items of the most recent archived week.

    Entries keep their input (insertion) order; the first occurrence of each
    text decides the casing and quantity shown.
    """
    if not history:
        return []

    latest = max(entry.week_start for entry in history)

    seen: set[str] = set()
    items: list[WeekItem] = []
    for entry in history:
        if entry.week_start != latest:
            continue
        key = item_key(entry.text)
        if key in seen:
            continue
        seen.add(key)
        items.append(WeekItem(text=entry.text, quantity=entry.quantity))
    return items


def frequency_ranking(
    history: list[HistoryEntry],
    min_count: int = DEFAULT_MIN_COUNT,
    limit: int = DEFAULT_LIMIT,
) -> list[FrequencyEntry]:
    """Rank item texts by how often they were bought.

    Ties keep the order in which the texts first appeared in ``history``.
    """
    counts: dict[str, int] = {}
    display: dict[str, str] = {}

    for entry in history:
        key = item_key(entry.text)
        counts[key] = counts.get(key, 0) + 1
        if key not in display:
            display[key] = entry.text.strip()

    # dicts keep first-seen order and sorted() is stable
    ranked = sorted(
        (key for key, count in counts.items() if count >= min_count),
        key=lambda key: counts[key],
        reverse=True,
    )
    return [FrequencyEntry(display_text=display[key], count=counts[key]) for key in ranked[:limit]]


def frequent_items(
    history: list[HistoryEntry],
    min_count: int = DEFAULT_MIN_COUNT,
    limit: int = DEFAULT_LIMIT,
) -> list[str]:
    """Display texts of the most frequently bought items."""
    return [entry.display_text for entry in frequency_ranking(history, min_count, limit)]

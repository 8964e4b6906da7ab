"""Grocery list management operations."""

from datetime import date, datetime

from .cache import QueryCache
from .errors import RecordNotFoundError, require_text
from .gateway import Collection, GatewayProtocol, Order, eq, in_
from .history import (
    DEFAULT_LIMIT,
    DEFAULT_MIN_COUNT,
    frequency_ranking,
    latest_week_items,
    week_start_for,
)
from .logging import get_logger
from .models import GroceryList, HistoryEntry, ListItem, ListType

log = get_logger("grocery")


class GroceryManager:
    """Manages the household grocery list and its purchase history."""

    def __init__(
        self,
        gateway: GatewayProtocol,
        household_id: str,
        user_id: str | None = None,
        cache: QueryCache | None = None,
        frequent_min_count: int = DEFAULT_MIN_COUNT,
        frequent_limit: int = DEFAULT_LIMIT,
    ):
        """Initialize grocery manager.

        Args:
            gateway: Data gateway to read and write through
            household_id: Household whose list is managed
            user_id: Acting user, recorded as creator of new rows
            cache: Shared query cache. A private one is created if omitted.
            frequent_min_count: Minimum purchases for a frequent item
            frequent_limit: Maximum number of frequent items returned
        """
        self.gateway = gateway
        self.household_id = household_id
        self.user_id = user_id
        self.cache = cache or QueryCache()
        self.frequent_min_count = frequent_min_count
        self.frequent_limit = frequent_limit
        self._list: GroceryList | None = None

    # --- List header ---

    def find_list(self) -> GroceryList | None:
        """Return the household grocery list without creating it."""
        rows = self.gateway.select(
            Collection.LISTS,
            [eq("household_id", self.household_id), eq("type", ListType.GROCERY)],
            limit=1,
        )
        return GroceryList.model_validate(rows[0]) if rows else None

    def get_or_create_list(self) -> GroceryList:
        """Return the household grocery list, creating it on first use."""
        if self._list is not None:
            return self._list

        grocery_list = self.find_list()
        if grocery_list is None:
            rows = self.gateway.insert(
                Collection.LISTS,
                [
                    {
                        "household_id": self.household_id,
                        "name": "Grocery List",
                        "type": ListType.GROCERY,
                        "created_by": self.user_id,
                    }
                ],
            )
            grocery_list = GroceryList.model_validate(rows[0])
            self.cache.invalidate(Collection.LISTS)
            log.info(f"Created grocery list for household {self.household_id}")

        self._list = grocery_list
        return grocery_list

    # --- Items ---

    def get_items(self) -> list[ListItem]:
        """Items on the list, oldest first."""
        list_id = self.get_or_create_list().id
        return self.cache.get_or_fetch(
            ("list-items", list_id),
            [Collection.LIST_ITEMS],
            lambda: [
                ListItem.model_validate(row)
                for row in self.gateway.select(
                    Collection.LIST_ITEMS,
                    [eq("list_id", list_id)],
                    order=[Order("created_at")],
                )
            ],
        )

    def get_item(self, item_id: str) -> ListItem:
        for item in self.get_items():
            if item.id == item_id:
                return item
        raise RecordNotFoundError("Item", item_id)

    def get_list(self) -> dict:
        """Get the grocery list split into active and completed items.

        Returns:
            Dict with list data
        """
        grocery_list = self.get_or_create_list()
        items = self.get_items()
        active = [i for i in items if not i.is_completed]
        completed = [i for i in items if i.is_completed]

        return {
            "success": True,
            "data": {
                "list": {
                    "id": grocery_list.id,
                    "name": grocery_list.name,
                    "items": [i.model_dump(mode="json") for i in active + completed],
                    "total_items": len(items),
                    "pending": len(active),
                    "completed": len(completed),
                }
            },
        }

    def add_item(self, text: str, quantity: str | None = None) -> dict:
        """Add an item to the grocery list.

        Args:
            text: Item text, trimmed before saving
            quantity: Free-form quantity ("2", "1 lb"); blank means none

        Returns:
            Dict with success status and item data

        Raises:
            ValidationError: If the text is empty
        """
        text = require_text(text, "Item text")
        quantity = (quantity or "").strip() or None
        list_id = self.get_or_create_list().id

        rows = self.gateway.insert(
            Collection.LIST_ITEMS,
            [{"list_id": list_id, "text": text, "quantity": quantity, "added_by": self.user_id}],
        )
        self.cache.invalidate(Collection.LIST_ITEMS)
        item = ListItem.model_validate(rows[0])

        return {
            "success": True,
            "message": f"Added {text} to grocery list",
            "data": {"item": item.model_dump(mode="json")},
        }

    def readd(self, text: str, quantity: str | None = None) -> dict:
        """Put a previously bought item back on the list."""
        return self.add_item(text, quantity)

    def toggle_item(self, item_id: str) -> dict:
        """Flip an item's completed state.

        Raises:
            RecordNotFoundError: If item not found
        """
        item = self.get_item(item_id)
        completed = not item.is_completed
        self.gateway.update(Collection.LIST_ITEMS, {"is_completed": completed}, [eq("id", item.id)])
        self.cache.invalidate(Collection.LIST_ITEMS)
        item = item.model_copy(update={"is_completed": completed})

        state = "done" if completed else "not done"
        return {
            "success": True,
            "message": f"Marked {item.text} as {state}",
            "data": {"item": item.model_dump(mode="json")},
        }

    def remove_item(self, item_id: str) -> dict:
        """Remove an item from the grocery list.

        Raises:
            RecordNotFoundError: If item not found
        """
        item = self.get_item(item_id)
        self.gateway.delete(Collection.LIST_ITEMS, [eq("id", item.id)])
        self.cache.invalidate(Collection.LIST_ITEMS)

        return {
            "success": True,
            "message": f"Removed {item.text} from grocery list",
            "data": {"item": item.model_dump(mode="json")},
        }

    def clear_completed(self) -> dict:
        """Delete every completed item.

        Returns:
            Dict with count of removed items
        """
        completed_ids = [i.id for i in self.get_items() if i.is_completed]
        if completed_ids:
            self.gateway.delete(Collection.LIST_ITEMS, [in_("id", completed_ids)])
            self.cache.invalidate(Collection.LIST_ITEMS)

        return {
            "success": True,
            "message": f"Cleared {len(completed_ids)} completed items",
            "data": {"removed_count": len(completed_ids)},
        }

    def start_fresh(self, today: date | None = None) -> dict:
        """Archive completed items into this week's history and clear them.

        Args:
            today: Day used to pick the week. Defaults to today.

        Returns:
            Dict with the archived week and count
        """
        list_id = self.get_or_create_list().id
        completed = [i for i in self.get_items() if i.is_completed]
        week_start = week_start_for(today or date.today())

        if not completed:
            return {
                "success": True,
                "message": "No completed items to archive",
                "data": {"archived_count": 0, "week_start": week_start.isoformat()},
            }

        completed_at = datetime.now()
        self.gateway.insert(
            Collection.LIST_HISTORY,
            [
                {
                    "list_id": list_id,
                    "text": item.text,
                    "quantity": item.quantity,
                    "week_start": week_start,
                    "added_by": item.added_by,
                    "completed_at": completed_at,
                }
                for item in completed
            ],
        )
        self.cache.invalidate(Collection.LIST_HISTORY)

        self.gateway.delete(Collection.LIST_ITEMS, [in_("id", [i.id for i in completed])])
        self.cache.invalidate(Collection.LIST_ITEMS)
        log.info(f"Archived {len(completed)} item(s) for week of {week_start}")

        return {
            "success": True,
            "message": (
                f"Archived {len(completed)} items for the week of {week_start:%b} {week_start.day}"
            ),
            "data": {"archived_count": len(completed), "week_start": week_start.isoformat()},
        }

    # --- History ---

    def get_history(self) -> list[HistoryEntry]:
        """Every archived entry for the list, oldest completion first."""
        list_id = self.get_or_create_list().id
        return self.cache.get_or_fetch(
            ("list-history", list_id),
            [Collection.LIST_HISTORY],
            lambda: [
                HistoryEntry.model_validate(row)
                for row in self.gateway.select(
                    Collection.LIST_HISTORY,
                    [eq("list_id", list_id)],
                    order=[Order("completed_at"), Order("created_at")],
                )
            ],
        )

    def previous_week_items(self) -> dict:
        """Items archived in the most recent week."""
        items = latest_week_items(self.get_history())
        return {
            "success": True,
            "data": {"previous_week": [i.model_dump(mode="json") for i in items]},
        }

    def frequent_items(self) -> dict:
        """Most frequently bought items across all history."""
        ranking = frequency_ranking(
            self.get_history(), self.frequent_min_count, self.frequent_limit
        )
        return {
            "success": True,
            "data": {"frequent": [e.model_dump(mode="json") for e in ranking]},
        }

    def stats(self) -> dict[str, int]:
        """Total and pending item counts, without creating the list."""
        grocery_list = self._list or self.find_list()
        if grocery_list is None:
            return {"total": 0, "pending": 0}
        rows = self.gateway.select(
            Collection.LIST_ITEMS,
            [eq("list_id", grocery_list.id)],
            columns=["id", "is_completed"],
        )
        return {"total": len(rows), "pending": sum(1 for r in rows if not r.get("is_completed"))}

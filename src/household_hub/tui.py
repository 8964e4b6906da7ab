"""Terminal UI for Household Hub."""

from __future__ import annotations

from datetime import date

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    Static,
    TabbedContent,
    TabPane,
)

from .errors import RecordNotFoundError, ValidationError
from .event_manager import EventManager
from .grocery_manager import GroceryManager
from .models import Priority, SearchKind, SearchResult
from .note_manager import NoteManager
from .search import SearchAggregator, SearchSession, navigation_target
from .task_manager import TaskManager

PRIORITY_LABEL = {Priority.HIGH: "! high", Priority.MEDIUM: "medium", Priority.LOW: "low"}


class FormScreen(ModalScreen[dict[str, str] | None]):
    """Modal dialog with one text input per field.

    ``fields`` is a list of (key, label, placeholder). The dialog returns the
    stripped values by key, or None when canceled. The first field is required.
    """

    DEFAULT_CSS = """
    FormScreen {
        align: center middle;
    }

    #form-dialog {
        width: 70;
        height: auto;
        padding: 1 2;
        border: round $primary;
        background: $surface;
    }

    #form-actions {
        align-horizontal: right;
        height: auto;
        margin-top: 1;
    }

    .field-label {
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, title: str, fields: list[tuple[str, str, str]], submit: str = "Add"):
        super().__init__()
        self.form_title = title
        self.fields = fields
        self.submit_label = submit

    def compose(self) -> ComposeResult:
        with Vertical(id="form-dialog"):
            yield Label(self.form_title, classes="field-label")
            for key, label, placeholder in self.fields:
                yield Label(label, classes="field-label")
                yield Input(placeholder=placeholder, id=key)
            with Horizontal(id="form-actions"):
                yield Button("Cancel", id="cancel")
                yield Button(self.submit_label, id="submit", variant="primary")

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(None)
            return

        if event.button.id != "submit":
            return

        values = {key: self.query_one(f"#{key}", Input).value.strip() for key, _, _ in self.fields}
        if not values[self.fields[0][0]]:
            self.app.bell()
            return
        self.dismiss(values)


class HouseholdHubTUI(App[None]):
    """Tabbed view of the grocery list, notes, calendar and tasks."""

    DEFAULT_CSS = """
    #status {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $boost;
        color: $text;
    }

    DataTable {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("a", "add", "Add"),
        Binding("space", "toggle_selected", "Toggle/Cycle"),
        Binding("x", "remove_selected", "Remove"),
        Binding("f", "finish_week", "Finish Week"),
        Binding("c", "clear_completed", "Clear Done"),
        Binding("[", "previous_month", "Prev Month"),
        Binding("]", "next_month", "Next Month"),
        Binding("slash", "focus_search", "Search"),
    ]

    def __init__(
        self,
        grocery_manager: GroceryManager,
        note_manager: NoteManager,
        event_manager: EventManager,
        task_manager: TaskManager,
        search: SearchAggregator,
    ):
        super().__init__()
        self.grocery_manager = grocery_manager
        self.note_manager = note_manager
        self.event_manager = event_manager
        self.task_manager = task_manager
        self.search_session = SearchSession(search, on_results=self._on_search_results)
        today = date.today()
        self._month = (today.year, today.month)
        self._row_ids: dict[str, list[str]] = {}
        self._search_results: list[SearchResult] = []

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with TabbedContent(initial="grocery"):
            with TabPane("Grocery", id="grocery"):
                yield DataTable(id="grocery-table")
            with TabPane("Notes", id="notes"):
                yield DataTable(id="notes-table")
            with TabPane("Calendar", id="calendar"):
                yield DataTable(id="calendar-table")
            with TabPane("Tasks", id="tasks"):
                yield DataTable(id="tasks-table")
            with TabPane("Search", id="search"):
                yield Input(placeholder="Search everything...", id="search-input")
                yield DataTable(id="search-table")
        yield Static(
            "a:add  space:toggle  x:remove  f:finish week  /:search  r:refresh  q:quit",
            id="status",
        )
        yield Footer()

    def on_mount(self) -> None:
        columns = {
            "grocery": ("Item", "Qty", "Done"),
            "notes": ("Created", "Note"),
            "calendar": ("Day", "Time", "Title", "Location"),
            "tasks": ("Status", "Title", "Priority", "Due"),
            "search": ("Type", "Title", "Details"),
        }
        for tab, names in columns.items():
            table = self.query_one(f"#{tab}-table", DataTable)
            table.cursor_type = "row"
            table.add_columns(*names)

        self.action_refresh()

    def on_unmount(self) -> None:
        self.search_session.close()

    # --- Refresh ---

    def action_refresh(self) -> None:
        try:
            self._refresh_grocery()
            self._refresh_notes()
            self._refresh_calendar()
            self._refresh_tasks()
            self._set_status("Refreshed")
        except Exception as exc:
            self._set_status(f"Refresh failed: {exc}")

    def _refresh_grocery(self) -> None:
        items = self.grocery_manager.get_list()["data"]["list"]["items"]
        table = self._reset_table("grocery")
        for item in items:
            self._row_ids["grocery"].append(item["id"])
            table.add_row(
                item["text"],
                item.get("quantity") or "-",
                "✓" if item["is_completed"] else "",
                key=item["id"],
            )

    def _refresh_notes(self) -> None:
        table = self._reset_table("notes")
        for note in self.note_manager.get_notes():
            self._row_ids["notes"].append(note.id)
            created = f"{note.created_at:%b} {note.created_at.day}"
            table.add_row(created, note.content, key=note.id)

    def _refresh_calendar(self) -> None:
        year, month = self._month
        table = self._reset_table("calendar")
        for event in self.event_manager.get_month(year, month):
            self._row_ids["calendar"].append(event.id)
            start = event.start_time
            when = "All day" if event.all_day else f"{start.hour % 12 or 12}:{start:%M %p}"
            table.add_row(
                f"{start:%a} {start:%b} {start.day}",
                when,
                event.title,
                event.location or "",
                key=event.id,
            )

    def _refresh_tasks(self) -> None:
        active, done = self.task_manager.split_by_status()
        table = self._reset_table("tasks")
        for task in active + done:
            self._row_ids["tasks"].append(task.id)
            due = f"{task.due_date:%b} {task.due_date.day}" if task.due_date else "-"
            table.add_row(
                task.status.value,
                task.title,
                PRIORITY_LABEL[task.priority],
                due,
                key=task.id,
            )

    def _reset_table(self, tab: str) -> DataTable:
        table = self.query_one(f"#{tab}-table", DataTable)
        table.clear(columns=False)
        self._row_ids[tab] = []
        return table

    # --- Actions ---

    def action_add(self) -> None:
        tab = self._active_tab()
        if tab == "grocery":
            fields = [("text", "Item", "Milk"), ("quantity", "Quantity (optional)", "2")]
            self.push_screen(FormScreen("Add Grocery Item", fields), self._handle_add_grocery)
        elif tab == "notes":
            fields = [("content", "Note", "Plumber comes Tuesday")]
            self.push_screen(FormScreen("Add Note", fields), self._handle_add_note)
        elif tab == "calendar":
            fields = [
                ("title", "Title", "Dentist"),
                ("day", "Date (YYYY-MM-DD)", date.today().isoformat()),
                ("time", "Time (HH:MM, empty for all day)", "09:30"),
                ("location", "Location (optional)", ""),
            ]
            self.push_screen(FormScreen("Add Event", fields), self._handle_add_event)
        elif tab == "tasks":
            fields = [
                ("title", "Title", "Take out recycling"),
                ("due", "Due date (YYYY-MM-DD, optional)", ""),
                ("priority", "Priority: high | medium | low", "medium"),
            ]
            self.push_screen(FormScreen("Add Task", fields), self._handle_add_task)
        else:
            self._set_status("Nothing to add here")

    def action_toggle_selected(self) -> None:
        tab = self._active_tab()
        record_id = self._selected_id(tab)
        if record_id is None:
            self._set_status("Nothing selected")
            return

        try:
            if tab == "grocery":
                result = self.grocery_manager.toggle_item(record_id)
                self._set_status(result["message"])
            elif tab == "tasks":
                task = self.task_manager.cycle_status(record_id)
                self._set_status(f"{task.title} is now {task.status.value}")
            elif tab == "search":
                self._open_search_result()
                return
            else:
                return
            self.action_refresh()
        except RecordNotFoundError as exc:
            self._set_status(str(exc))
        except Exception as exc:
            self._set_status(f"Update failed: {exc}")

    def action_remove_selected(self) -> None:
        tab = self._active_tab()
        record_id = self._selected_id(tab)
        if record_id is None:
            self._set_status("Nothing selected")
            return

        try:
            if tab == "grocery":
                self._set_status(self.grocery_manager.remove_item(record_id)["message"])
            elif tab == "notes":
                self.note_manager.remove_note(record_id)
                self._set_status("Note deleted")
            elif tab == "calendar":
                event = self.event_manager.remove_event(record_id)
                self._set_status(f"Deleted {event.title}")
            elif tab == "tasks":
                task = self.task_manager.remove_task(record_id)
                self._set_status(f"Deleted task {task.title}")
            else:
                return
            self.action_refresh()
        except Exception as exc:
            self._set_status(f"Remove failed: {exc}")

    def action_finish_week(self) -> None:
        try:
            result = self.grocery_manager.start_fresh()
            self.action_refresh()
            self._set_status(result["message"])
        except Exception as exc:
            self._set_status(f"Finish week failed: {exc}")

    def action_clear_completed(self) -> None:
        try:
            result = self.grocery_manager.clear_completed()
            self.action_refresh()
            self._set_status(result["message"])
        except Exception as exc:
            self._set_status(f"Clear failed: {exc}")

    def action_previous_month(self) -> None:
        year, month = self._month
        self._month = (year - 1, 12) if month == 1 else (year, month - 1)
        self._show_month()

    def action_next_month(self) -> None:
        year, month = self._month
        self._month = (year + 1, 1) if month == 12 else (year, month + 1)
        self._show_month()

    def _show_month(self) -> None:
        try:
            self._refresh_calendar()
            year, month = self._month
            self._set_status(f"{date(year, month, 1):%B %Y}")
        except Exception as exc:
            self._set_status(f"Calendar failed: {exc}")

    def action_focus_search(self) -> None:
        self.query_one(TabbedContent).active = "search"
        self.query_one("#search-input", Input).focus()

    # --- Search ---

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "search-input":
            return
        # short terms too: every submit supersedes the search in flight
        self.search_session.submit(event.value)

    def _on_search_results(self, term: str, results: list[SearchResult]) -> None:
        # Called from the search worker thread.
        self.call_from_thread(self._show_search_results, term, results)

    def _show_search_results(self, term: str, results: list[SearchResult]) -> None:
        if term != self.search_session.term:
            return
        self._search_results = results
        table = self._reset_table("search")
        for result in results:
            self._row_ids["search"].append(result.id)
            table.add_row(result.kind.value, result.title, result.preview or "", key=result.id)
        if term:
            self._set_status(f"{len(results)} results for '{term}'")

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.data_table.id == "search-table":
            self._open_search_result()

    def _open_search_result(self) -> None:
        table = self.query_one("#search-table", DataTable)
        row = table.cursor_row
        if row is None or row < 0 or row >= len(self._search_results):
            return
        result = self._search_results[row]
        target = navigation_target(result.kind)
        self.query_one(TabbedContent).active = target
        if result.kind == SearchKind.EVENT and result.date:
            moment = date.fromisoformat(result.date[:10])
            self._month = (moment.year, moment.month)
            self._show_month()
        self._select_row(target, result.id)

    def _select_row(self, tab: str, record_id: str) -> None:
        ids = self._row_ids.get(tab, [])
        if record_id in ids:
            table = self.query_one(f"#{tab}-table", DataTable)
            table.move_cursor(row=ids.index(record_id))
            table.focus()

    # --- Form handlers ---

    def _handle_add_grocery(self, payload: dict[str, str] | None) -> None:
        if payload is None:
            self._set_status("Add grocery item canceled")
            return

        try:
            result = self.grocery_manager.add_item(payload["text"], payload["quantity"])
            self.action_refresh()
            self._set_status(result["message"])
        except ValidationError as exc:
            self._set_status(str(exc))
        except Exception as exc:
            self._set_status(f"Add failed: {exc}")

    def _handle_add_note(self, payload: dict[str, str] | None) -> None:
        if payload is None:
            self._set_status("Add note canceled")
            return

        try:
            self.note_manager.add_note(payload["content"])
            self.action_refresh()
            self._set_status("Note added")
        except ValidationError as exc:
            self._set_status(str(exc))
        except Exception as exc:
            self._set_status(f"Add failed: {exc}")

    def _handle_add_event(self, payload: dict[str, str] | None) -> None:
        if payload is None:
            self._set_status("Add event canceled")
            return

        try:
            day = date.fromisoformat(payload["day"]) if payload["day"] else date.today()
            event = self.event_manager.add_event(
                payload["title"],
                day,
                at=payload["time"] or None,
                all_day=not payload["time"],
                location=payload["location"] or None,
            )
            self._month = (day.year, day.month)
            self.action_refresh()
            self._set_status(f"Added {event.title}")
        except ValueError as exc:
            self._set_status(str(exc))
        except Exception as exc:
            self._set_status(f"Add failed: {exc}")

    def _handle_add_task(self, payload: dict[str, str] | None) -> None:
        if payload is None:
            self._set_status("Add task canceled")
            return

        try:
            task = self.task_manager.add_task(
                payload["title"],
                due_date=date.fromisoformat(payload["due"]) if payload["due"] else None,
                priority=Priority(payload["priority"].lower() or Priority.MEDIUM.value),
            )
            self.action_refresh()
            self._set_status(f"Added task {task.title}")
        except ValueError as exc:
            self._set_status(str(exc))
        except Exception as exc:
            self._set_status(f"Add failed: {exc}")

    # --- Helpers ---

    def _selected_id(self, tab: str) -> str | None:
        ids = self._row_ids.get(tab, [])
        table = self.query_one(f"#{tab}-table", DataTable)
        row = table.cursor_row
        if row is None or row < 0 or row >= len(ids):
            return None
        return ids[row]

    def _active_tab(self) -> str:
        tabbed_content = self.query_one(TabbedContent)
        return tabbed_content.active or "grocery"

    def _set_status(self, message: str) -> None:
        self.query_one("#status", Static).update(message)

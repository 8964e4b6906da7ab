"""Output formatting for CLI and programmatic use."""

import json
from datetime import date, datetime, time
from enum import Enum
from typing import Any
from uuid import UUID

from rich.console import Console
from rich.panel import Panel
from rich.table import Table


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for output."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date, time)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


PRIORITY_STYLE = {"high": "red", "medium": "yellow", "low": "green"}
STATUS_ICON = {
    "todo": "[white]○[/white]",
    "in-progress": "[yellow]◐[/yellow]",
    "done": "[green]✓[/green]",
}
KIND_LABEL = {"grocery": "Grocery", "note": "Note", "event": "Event", "task": "Task"}


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _short_day(value: str | None) -> str:
    moment = _parse_datetime(value)
    if moment is None:
        return "-"
    return f"{moment:%b} {moment.day}"


def _day_label(value: str, today: date | None = None) -> str:
    """'Today', 'Tomorrow' or 'Jan 7'."""
    moment = _parse_datetime(value)
    if moment is None:
        return "-"
    today = today or date.today()
    delta = (moment.date() - today).days
    if delta == 0:
        return "Today"
    if delta == 1:
        return "Tomorrow"
    return f"{moment:%b} {moment.day}"


def _clock(value: str) -> str:
    moment = _parse_datetime(value)
    if moment is None:
        return ""
    return f"{moment.hour % 12 or 12}:{moment:%M} {moment:%p}"


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False, console: Console | None = None):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
            console: Console to print to. A new one is created if omitted.
        """
        self.json_mode = json_mode
        self.console = console or Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})
        if "list" in payload:
            self._render_grocery_list(payload["list"])
        elif "previous_week" in payload:
            self._render_previous_week(payload["previous_week"])
        elif "frequent" in payload:
            self._render_frequent(payload["frequent"])
        elif "notes" in payload:
            self._render_notes(payload["notes"])
        elif "events" in payload:
            self._render_events(payload["events"], payload.get("month"))
        elif "tasks" in payload:
            self._render_tasks(payload["tasks"])
        elif "members" in payload:
            self._render_members(payload["members"], payload.get("household"))
        elif "results" in payload:
            self._render_search(payload["results"], payload.get("term", ""))
        elif "dashboard" in payload:
            self._render_dashboard(payload["dashboard"])

    def _render_grocery_list(self, list_data: dict) -> None:
        """Render grocery list with Rich."""
        items = list_data["items"]

        if not items:
            self.console.print("[dim]No items on the list[/dim]")
            return

        table = Table(title=list_data.get("name", "Grocery List"), header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Item", style="cyan", no_wrap=False)
        table.add_column("Qty", style="magenta", justify="right")
        table.add_column("Done", justify="center")

        for item in items:
            done = item.get("is_completed", False)
            text = f"[strike dim]{item['text']}[/strike dim]" if done else item["text"]
            table.add_row(
                item["id"],
                text,
                item.get("quantity") or "-",
                "[green]✓[/green]" if done else "○",
            )

        self.console.print(table)
        self.console.print(
            f"\n{list_data['pending']} to buy, {list_data['completed']} in the cart"
        )

    def _render_previous_week(self, items: list[dict]) -> None:
        if not items:
            self.console.print("[dim]No shopping history yet[/dim]")
            return

        self.console.print("\n[bold]Last week's items[/bold]")
        for item in items:
            quantity = f" [dim]({item['quantity']})[/dim]" if item.get("quantity") else ""
            self.console.print(f"  • {item['text']}{quantity}")

    def _render_frequent(self, entries: list[dict]) -> None:
        if not entries:
            self.console.print("[dim]No frequently bought items yet[/dim]")
            return

        table = Table(title="Frequently Bought", header_style="bold cyan")
        table.add_column("Item", style="cyan")
        table.add_column("Times", justify="right", style="magenta")
        for entry in entries:
            table.add_row(entry["display_text"], str(entry["count"]))
        self.console.print(table)

    def _render_notes(self, notes: list[dict]) -> None:
        if not notes:
            self.console.print("[dim]No notes yet[/dim]")
            return

        for note in notes:
            title = f"{_short_day(note.get('created_at'))}  [dim]{note['id']}[/dim]"
            if note.get("is_private"):
                title += "  [yellow]private[/yellow]"
            self.console.print(Panel(note["content"], title=title, title_align="left"))

    def _render_events(self, events: list[dict], month: str | None = None) -> None:
        if not events:
            self.console.print("[dim]No events[/dim]")
            return

        table = Table(title=month or "Events", header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Day", style="green")
        table.add_column("Time", style="magenta")
        table.add_column("Title", style="cyan")
        table.add_column("Location")

        for event in events:
            table.add_row(
                event["id"],
                _short_day(event["start_time"]),
                "All day" if event.get("all_day") else _clock(event["start_time"]),
                event["title"],
                event.get("location") or "",
            )
        self.console.print(table)

    def _render_tasks(self, tasks: list[dict]) -> None:
        if not tasks:
            self.console.print("[dim]No tasks[/dim]")
            return

        table = Table(title="Tasks", header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("", justify="center")
        table.add_column("Title", style="cyan")
        table.add_column("Priority")
        table.add_column("Due", style="green")

        for task in tasks:
            priority = task.get("priority", "medium")
            style = PRIORITY_STYLE.get(priority, "white")
            table.add_row(
                task["id"],
                STATUS_ICON.get(task.get("status", "todo"), "○"),
                task["title"],
                f"[{style}]{priority}[/{style}]",
                _short_day(task.get("due_date")) if task.get("due_date") else "-",
            )
        self.console.print(table)

    def _render_members(self, members: list[dict], household: dict | None = None) -> None:
        title = household["name"] if household else "Members"
        table = Table(title=title, header_style="bold cyan")
        table.add_column("Name", style="cyan")
        table.add_column("Email")
        table.add_column("Role", style="magenta")
        table.add_column("User ID", style="dim")

        for member in members:
            table.add_row(
                member.get("name") or "-",
                member.get("email") or "-",
                member["role"],
                member["user_id"],
            )
        self.console.print(table)

    def _render_search(self, results: list[dict], term: str) -> None:
        if not results:
            self.console.print(f"[dim]No results for '{term}'[/dim]")
            return

        table = Table(title=f"Results for '{term}'", header_style="bold cyan")
        table.add_column("Type", style="magenta")
        table.add_column("Title", style="cyan")
        table.add_column("Details", style="dim")
        table.add_column("ID", style="dim", no_wrap=True)

        for result in results:
            table.add_row(
                KIND_LABEL.get(result["kind"], result["kind"]),
                result["title"],
                result.get("preview") or "",
                result["id"],
            )
        self.console.print(table)

    def _render_dashboard(self, summary: dict) -> None:
        self.console.print(f"\n[bold]{summary['greeting']}![/bold]\n")

        grocery = summary["grocery"]
        tasks = summary["tasks"]
        self.console.print(
            f"Grocery: [cyan]{grocery['pending']}[/cyan] of {grocery['total']} items to buy"
        )
        self.console.print(f"Tasks: [cyan]{tasks['active']}[/cyan] active of {tasks['total']}\n")

        events = summary["upcoming_events"]
        self.console.print("[bold]Upcoming events[/bold]")
        if not events:
            self.console.print("  [dim]Nothing scheduled this week[/dim]")
        for event in events:
            when = _day_label(event["start_time"])
            if not event.get("all_day"):
                when += f" {_clock(event['start_time'])}"
            self.console.print(f"  {event['title']} [dim]{when}[/dim]")

        due = summary["tasks_due_soon"]
        self.console.print("\n[bold]Due soon[/bold]")
        if not due:
            self.console.print("  [dim]No tasks due this week[/dim]")
        for task in due:
            style = PRIORITY_STYLE.get(task.get("priority", "medium"), "white")
            self.console.print(
                f"  [{style}]●[/{style}] {task['title']} "
                f"[dim]{_day_label(task['due_date'])}[/dim]"
            )

        notes = summary["recent_notes"]
        self.console.print("\n[bold]Recent notes[/bold]")
        if not notes:
            self.console.print("  [dim]No notes yet[/dim]")
        for note in notes:
            self.console.print(f"  {note['content']}")

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder))
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Output warning message.

        Args:
            message: Warning message
        """
        if self.json_mode:
            print(json.dumps({"warning": message}))
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")

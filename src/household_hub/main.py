"""CLI entry point for Household Hub."""

from datetime import date, datetime
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from .cache import QueryCache
from .config import ConfigManager
from .dashboard import Dashboard
from .errors import NoHouseholdError, RecordNotFoundError, ValidationError
from .event_manager import EventManager
from .gateway import BackendType, GatewayError, GatewayProtocol, create_gateway
from .grocery_manager import GroceryManager
from .household_manager import (
    HouseholdManager,
    MemberError,
    change_password,
    create_household,
    find_household_id,
    find_profile,
    register_profile,
)
from .logging import get_logger
from .models import AuthSession, Priority, TaskStatus
from .note_manager import NoteManager
from .output_formatter import OutputFormatter
from .rest_gateway import RestAuth
from .search import SearchAggregator
from .session import SessionStore
from .task_manager import TaskManager

log = get_logger("cli")

app = typer.Typer(
    name="household",
    help="Shared grocery lists, notes, calendar and tasks for your household",
    no_args_is_help=True,
)

# Global state (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
data_dir: Path | None = None
gateway: GatewayProtocol | None = None
cache: QueryCache = QueryCache()
user_override: str | None = None
household_override: str | None = None

ERROR_CODES: list[tuple[type[Exception], str]] = [
    (ValidationError, "VALIDATION_ERROR"),
    (RecordNotFoundError, "NOT_FOUND"),
    (MemberError, "MEMBER_ERROR"),
    (NoHouseholdError, "NO_HOUSEHOLD"),
    (GatewayError, "GATEWAY_ERROR"),
]


def fail(e: Exception) -> NoReturn:
    """Report an exception and exit with status 1."""
    code = next((c for cls, c in ERROR_CODES if isinstance(e, cls)), None)
    if code is None:
        log.exception("Unexpected error")
    formatter.error(str(e), error_code=code)
    raise typer.Exit(code=1)


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_data_dir() -> Path:
    return data_dir or get_config().data.storage_dir


def get_backend() -> BackendType:
    return BackendType(get_config().backend.type)


def get_session_store() -> SessionStore:
    return SessionStore(get_data_dir())


def current_session() -> AuthSession | None:
    return get_session_store().load()


def get_gateway() -> GatewayProtocol:
    """Get or create the gateway for the configured backend."""
    global gateway
    if gateway is None:
        cfg = get_config()
        session = current_session()
        gateway = create_gateway(
            backend=get_backend(),
            data_dir=get_data_dir(),
            url=cfg.remote.url,
            api_key=cfg.remote.api_key,
            access_token=session.access_token if session else None,
            timeout=cfg.remote.timeout,
        )
    return gateway


def get_auth() -> RestAuth | None:
    """Auth client for the hosted backend, or None for local backends."""
    if get_backend() != BackendType.REST:
        return None
    cfg = get_config()
    if not cfg.remote.url or not cfg.remote.api_key:
        raise GatewayError("The rest backend needs both a service URL and an API key")
    session = current_session()
    return RestAuth(
        cfg.remote.url,
        cfg.remote.api_key,
        access_token=session.access_token if session else None,
        timeout=cfg.remote.timeout,
    )


def get_user_id() -> str | None:
    if user_override:
        return user_override
    if get_config().session.user_id:
        return get_config().session.user_id
    session = current_session()
    return session.user_id if session else None


def get_household_id() -> str:
    """Household to act on: --household, config, saved session, then membership lookup."""
    if household_override:
        return household_override
    if get_config().session.household_id:
        return get_config().session.household_id
    session = current_session()
    if session and session.household_id and (not user_override or user_override == session.user_id):
        return session.household_id
    return find_household_id(get_gateway(), get_user_id())


def get_grocery_manager() -> GroceryManager:
    cfg = get_config()
    return GroceryManager(
        get_gateway(),
        get_household_id(),
        get_user_id(),
        cache,
        frequent_min_count=cfg.history.frequent_min_count,
        frequent_limit=cfg.history.frequent_limit,
    )


def get_note_manager() -> NoteManager:
    return NoteManager(get_gateway(), get_household_id(), get_user_id(), cache)


def get_event_manager() -> EventManager:
    return EventManager(get_gateway(), get_household_id(), get_user_id(), cache)


def get_task_manager() -> TaskManager:
    return TaskManager(get_gateway(), get_household_id(), get_user_id(), cache)


def get_household_manager() -> HouseholdManager:
    return HouseholdManager(get_gateway(), get_household_id(), get_user_id(), cache, auth=get_auth())


def parse_day(value: str, field: str = "Date") -> date:
    """Parse a YYYY-MM-DD option value."""
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"{field} must be YYYY-MM-DD, got '{value}'") from e


def parse_month(value: str) -> tuple[int, int]:
    """Parse a YYYY-MM option value."""
    try:
        moment = datetime.strptime(value, "%Y-%m")
    except ValueError as e:
        raise ValidationError(f"Month must be YYYY-MM, got '{value}'") from e
    return moment.year, moment.month


@app.callback()
def main(
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir_option: Annotated[
        Path | None, typer.Option("--data-dir", help="Data directory path")
    ] = None,
    user: Annotated[str | None, typer.Option("--user", help="Act as this user ID")] = None,
    household: Annotated[
        str | None, typer.Option("--household", help="Act on this household ID")
    ] = None,
) -> None:
    """Household Hub CLI - Share lists, notes, events and tasks at home."""
    global formatter, config, data_dir, gateway, cache, user_override, household_override

    formatter = OutputFormatter(json_mode=json_output)
    config = ConfigManager()

    # CLI --data-dir overrides config, which overrides default
    data_dir = data_dir_option if data_dir_option else config.data.storage_dir
    gateway = None
    cache = QueryCache()
    user_override = user
    household_override = household


@app.command()
def init(
    name: Annotated[str, typer.Argument(help="Household name")],
    email: Annotated[str, typer.Option("--email", "-e", help="Your email address")],
    user_name: Annotated[str | None, typer.Option("--name", "-n", help="Your name")] = None,
) -> None:
    """Create a household in the local database and sign in as its owner."""
    if get_backend() == BackendType.REST:
        formatter.error(
            "The hosted service creates households at sign-up; use 'household account login'",
            error_code="UNSUPPORTED",
        )
        raise typer.Exit(code=1)

    try:
        household, profile = create_household(get_gateway(), name, email, user_name)
        get_session_store().save(
            AuthSession(user_id=profile.id, email=profile.email, household_id=household.id)
        )
    except Exception as e:
        fail(e)

    formatter.output(
        {
            "success": True,
            "message": f"Created household {household.name}",
            "data": {
                "household": household.model_dump(mode="json"),
                "user": profile.model_dump(mode="json"),
            },
        },
        f"Created household {household.name}",
    )


@app.command()
def search(
    term: Annotated[str, typer.Argument(help="Text to look for (at least 2 characters)")],
) -> None:
    """Search grocery items, notes, events and tasks."""
    try:
        outcome = SearchAggregator(get_gateway(), get_household_id()).lookup(term)
    except Exception as e:
        fail(e)

    failed = [kind.value for kind in outcome.failures]
    if failed and not formatter.json_mode:
        formatter.warning(f"Some results are missing: {', '.join(failed)} search failed")
    formatter.output(
        {
            "success": True,
            "data": {
                "term": term.strip(),
                "results": [r.model_dump(mode="json") for r in outcome.results],
                "failed": failed,
            },
        }
    )


@app.command()
def dashboard() -> None:
    """Show today's overview of the household."""
    try:
        result = Dashboard(get_gateway(), get_household_id(), get_user_id(), cache).as_dict()
    except Exception as e:
        fail(e)
    formatter.output(result)


@app.command()
def tui() -> None:
    """Launch the interactive terminal UI."""
    from .tui import HouseholdHubTUI

    try:
        hub = HouseholdHubTUI(
            grocery_manager=get_grocery_manager(),
            note_manager=get_note_manager(),
            event_manager=get_event_manager(),
            task_manager=get_task_manager(),
            search=SearchAggregator(get_gateway(), get_household_id()),
        )
    except Exception as e:
        fail(e)
    hub.run()


# --- Grocery ---

grocery_app = typer.Typer(help="Shared grocery list")
app.add_typer(grocery_app, name="grocery")


@grocery_app.command("add")
def grocery_add(
    text: Annotated[str, typer.Argument(help="Item to add")],
    quantity: Annotated[
        str | None, typer.Option("--quantity", "-q", help="Quantity, e.g. '2' or '1 lb'")
    ] = None,
) -> None:
    """Add an item to the grocery list."""
    try:
        result = get_grocery_manager().add_item(text, quantity)
    except Exception as e:
        fail(e)
    formatter.output(result, result["message"])


@grocery_app.command("list")
def grocery_list() -> None:
    """View the grocery list."""
    try:
        result = get_grocery_manager().get_list()
    except Exception as e:
        fail(e)
    formatter.output(result)


@grocery_app.command("toggle")
def grocery_toggle(
    item_id: Annotated[str, typer.Argument(help="Item ID to check off or un-check")],
) -> None:
    """Mark an item as done, or back to not done."""
    try:
        result = get_grocery_manager().toggle_item(item_id)
    except Exception as e:
        fail(e)
    formatter.output(result, result["message"])


@grocery_app.command("remove")
def grocery_remove(
    item_id: Annotated[str, typer.Argument(help="Item ID to remove")],
) -> None:
    """Remove an item from the grocery list."""
    try:
        result = get_grocery_manager().remove_item(item_id)
    except Exception as e:
        fail(e)
    formatter.output(result, result["message"])


@grocery_app.command("clear")
def grocery_clear() -> None:
    """Delete completed items without archiving them."""
    try:
        result = get_grocery_manager().clear_completed()
    except Exception as e:
        fail(e)
    formatter.output(result, result["message"])


@grocery_app.command("finish-week")
def grocery_finish_week() -> None:
    """Archive completed items into this week's history and start fresh."""
    try:
        result = get_grocery_manager().start_fresh()
    except Exception as e:
        fail(e)
    formatter.output(result, result["message"])


@grocery_app.command("previous")
def grocery_previous() -> None:
    """Show the items bought in the most recent archived week."""
    try:
        result = get_grocery_manager().previous_week_items()
    except Exception as e:
        fail(e)
    formatter.output(result)


@grocery_app.command("frequent")
def grocery_frequent() -> None:
    """Show the most frequently bought items."""
    try:
        result = get_grocery_manager().frequent_items()
    except Exception as e:
        fail(e)
    formatter.output(result)


@grocery_app.command("readd")
def grocery_readd(
    text: Annotated[str, typer.Argument(help="Previously bought item to put back on the list")],
    quantity: Annotated[str | None, typer.Option("--quantity", "-q", help="Quantity")] = None,
) -> None:
    """Put a previously bought item back on the list."""
    try:
        result = get_grocery_manager().readd(text, quantity)
    except Exception as e:
        fail(e)
    formatter.output(result, result["message"])


# --- Notes ---

note_app = typer.Typer(help="Quick notes shared with the household")
app.add_typer(note_app, name="note")


@note_app.command("add")
def note_add(
    content: Annotated[str, typer.Argument(help="Note text")],
    private: Annotated[bool, typer.Option("--private", help="Only visible to you")] = False,
) -> None:
    """Add a note."""
    try:
        note = get_note_manager().add_note(content, is_private=private)
    except Exception as e:
        fail(e)
    formatter.output(
        {"success": True, "message": "Note added", "data": {"note": note.model_dump(mode="json")}},
        "Note added",
    )


@note_app.command("list")
def note_list(
    limit: Annotated[int | None, typer.Option("--limit", "-l", help="Max notes to show")] = None,
) -> None:
    """View notes, newest first."""
    try:
        notes = get_note_manager().get_notes(limit=limit)
    except Exception as e:
        fail(e)
    formatter.output({"success": True, "data": {"notes": [n.model_dump(mode="json") for n in notes]}})


@note_app.command("remove")
def note_remove(
    note_id: Annotated[str, typer.Argument(help="Note ID to delete")],
) -> None:
    """Delete a note."""
    try:
        note = get_note_manager().remove_note(note_id)
    except Exception as e:
        fail(e)
    formatter.output(
        {"success": True, "message": "Note deleted", "data": {"note": note.model_dump(mode="json")}},
        "Note deleted",
    )


# --- Calendar ---

event_app = typer.Typer(help="Household calendar")
app.add_typer(event_app, name="event")


@event_app.command("add")
def event_add(
    title: Annotated[str, typer.Argument(help="Event title")],
    day: Annotated[str, typer.Option("--date", "-d", help="Day of the event (YYYY-MM-DD)")],
    at: Annotated[str | None, typer.Option("--time", "-t", help="Start time (HH:MM)")] = None,
    all_day: Annotated[bool, typer.Option("--all-day", help="Lasts the whole day")] = False,
    description: Annotated[str | None, typer.Option("--description", help="Details")] = None,
    location: Annotated[str | None, typer.Option("--location", "-l", help="Where")] = None,
) -> None:
    """Add an event to the calendar."""
    try:
        event = get_event_manager().add_event(
            title,
            parse_day(day),
            at=at,
            all_day=all_day,
            description=description,
            location=location,
        )
    except Exception as e:
        fail(e)
    message = f"Added {event.title} on {event.start_time:%b} {event.start_time.day}"
    formatter.output(
        {"success": True, "message": message, "data": {"event": event.model_dump(mode="json")}},
        message,
    )


@event_app.command("list")
def event_list(
    month: Annotated[
        str | None, typer.Option("--month", "-m", help="Month to show (YYYY-MM)")
    ] = None,
) -> None:
    """View the events of a month (defaults to this month)."""
    try:
        if month:
            year, month_number = parse_month(month)
        else:
            today = date.today()
            year, month_number = today.year, today.month
        events = get_event_manager().get_month(year, month_number)
    except Exception as e:
        fail(e)

    label = f"{date(year, month_number, 1):%B %Y}"
    formatter.output(
        {
            "success": True,
            "data": {"month": label, "events": [ev.model_dump(mode="json") for ev in events]},
        }
    )


@event_app.command("upcoming")
def event_upcoming(
    days: Annotated[int, typer.Option("--days", "-d", help="How many days ahead")] = 7,
) -> None:
    """View events coming up in the next few days."""
    try:
        events = get_event_manager().upcoming(days=days, limit=None)
    except Exception as e:
        fail(e)
    formatter.output(
        {
            "success": True,
            "data": {"month": "Upcoming", "events": [ev.model_dump(mode="json") for ev in events]},
        }
    )


@event_app.command("remove")
def event_remove(
    event_id: Annotated[str, typer.Argument(help="Event ID to delete")],
) -> None:
    """Delete an event."""
    try:
        event = get_event_manager().remove_event(event_id)
    except Exception as e:
        fail(e)
    formatter.output(
        {
            "success": True,
            "message": f"Deleted {event.title}",
            "data": {"event": event.model_dump(mode="json")},
        },
        f"Deleted {event.title}",
    )


# --- Tasks ---

task_app = typer.Typer(help="Household tasks")
app.add_typer(task_app, name="task")


@task_app.command("add")
def task_add(
    title: Annotated[str, typer.Argument(help="Task title")],
    due: Annotated[str | None, typer.Option("--due", help="Due date (YYYY-MM-DD)")] = None,
    priority: Annotated[
        Priority, typer.Option("--priority", "-p", help="Task priority")
    ] = Priority.MEDIUM,
    description: Annotated[str | None, typer.Option("--description", help="Details")] = None,
) -> None:
    """Add a task."""
    try:
        task = get_task_manager().add_task(
            title,
            due_date=parse_day(due, "Due date") if due else None,
            priority=priority,
            description=description,
        )
    except Exception as e:
        fail(e)
    formatter.output(
        {
            "success": True,
            "message": f"Added task {task.title}",
            "data": {"task": task.model_dump(mode="json")},
        },
        f"Added task {task.title}",
    )


@task_app.command("list")
def task_list(
    show_done: Annotated[bool, typer.Option("--done", help="Show finished tasks")] = False,
    show_all: Annotated[bool, typer.Option("--all", help="Show every task")] = False,
) -> None:
    """View tasks, soonest due first."""
    try:
        manager = get_task_manager()
        if show_all:
            tasks = manager.get_tasks()
        else:
            active, done = manager.split_by_status()
            tasks = done if show_done else active
    except Exception as e:
        fail(e)
    formatter.output({"success": True, "data": {"tasks": [t.model_dump(mode="json") for t in tasks]}})


@task_app.command("status")
def task_status(
    task_id: Annotated[str, typer.Argument(help="Task ID")],
    status: Annotated[TaskStatus, typer.Argument(help="New status")],
) -> None:
    """Set a task's status."""
    try:
        task = get_task_manager().set_status(task_id, status)
    except Exception as e:
        fail(e)
    message = f"{task.title} is now {task.status.value}"
    formatter.output(
        {"success": True, "message": message, "data": {"task": task.model_dump(mode="json")}},
        message,
    )


@task_app.command("cycle")
def task_cycle(
    task_id: Annotated[str, typer.Argument(help="Task ID")],
) -> None:
    """Advance a task: todo, in-progress, done, then back to todo."""
    try:
        task = get_task_manager().cycle_status(task_id)
    except Exception as e:
        fail(e)
    message = f"{task.title} is now {task.status.value}"
    formatter.output(
        {"success": True, "message": message, "data": {"task": task.model_dump(mode="json")}},
        message,
    )


@task_app.command("remove")
def task_remove(
    task_id: Annotated[str, typer.Argument(help="Task ID to delete")],
) -> None:
    """Delete a task."""
    try:
        task = get_task_manager().remove_task(task_id)
    except Exception as e:
        fail(e)
    formatter.output(
        {
            "success": True,
            "message": f"Deleted task {task.title}",
            "data": {"task": task.model_dump(mode="json")},
        },
        f"Deleted task {task.title}",
    )


# --- Members ---

members_app = typer.Typer(help="Household members")
app.add_typer(members_app, name="members")


@members_app.command("show")
def members_show() -> None:
    """Show the household and its members."""
    try:
        manager = get_household_manager()
        household = manager.get_household()
        members = manager.get_members()
    except Exception as e:
        fail(e)
    formatter.output(
        {
            "success": True,
            "data": {
                "household": household.model_dump(mode="json"),
                "members": [m.model_dump(mode="json") for m in members],
            },
        }
    )


@members_app.command("invite")
def members_invite(
    email: Annotated[str, typer.Argument(help="Email of an existing account")],
) -> None:
    """Add an existing account to the household."""
    try:
        profile = get_household_manager().add_member(email)
    except Exception as e:
        fail(e)
    formatter.output(
        {
            "success": True,
            "message": f"Added {profile.email} to the household",
            "data": {"user": profile.model_dump(mode="json")},
        },
        f"Added {profile.email} to the household",
    )


@members_app.command("remove")
def members_remove(
    user_id: Annotated[str, typer.Argument(help="User ID of the member")],
) -> None:
    """Remove a member from the household."""
    try:
        get_household_manager().remove_member(user_id)
    except Exception as e:
        fail(e)
    formatter.success("Member removed", {"user_id": user_id})


# --- Account ---

account_app = typer.Typer(help="Sign-up, sign-in and password")
app.add_typer(account_app, name="account")


@account_app.command("signup")
def account_signup(
    email: Annotated[str, typer.Argument(help="Email address")],
    name: Annotated[str | None, typer.Option("--name", "-n", help="Your name")] = None,
    password: Annotated[
        str | None, typer.Option("--password", help="Password (hosted backend only)")
    ] = None,
) -> None:
    """Create an account so you can be invited to a household."""
    try:
        auth = get_auth()
        if auth is not None:
            if not password:
                password = typer.prompt("Password", hide_input=True)
            auth.sign_up(email, password, name)
            message = f"Check {email} to confirm your account"
        else:
            profile = register_profile(get_gateway(), email, name)
            message = f"Created account for {profile.email}"
    except Exception as e:
        fail(e)
    formatter.success(message)


@account_app.command("login")
def account_login(
    email: Annotated[str, typer.Argument(help="Email address")],
    password: Annotated[
        str | None, typer.Option("--password", help="Password (hosted backend only)")
    ] = None,
) -> None:
    """Sign in and remember the session."""
    global gateway
    try:
        auth = get_auth()
        if auth is not None:
            if not password:
                password = typer.prompt("Password", hide_input=True)
            session = auth.sign_in(email, password)
            cfg = get_config()
            gateway = create_gateway(
                backend=BackendType.REST,
                url=cfg.remote.url,
                api_key=cfg.remote.api_key,
                access_token=session.access_token,
                timeout=cfg.remote.timeout,
            )
        else:
            profile = find_profile(get_gateway(), email)
            if profile is None:
                raise ValidationError(f"No account for {email}; run 'household account signup'")
            session = AuthSession(user_id=profile.id, email=profile.email)

        try:
            session.household_id = find_household_id(get_gateway(), session.user_id)
        except NoHouseholdError:
            formatter.warning("You are not a member of any household yet")
        get_session_store().save(session)
    except Exception as e:
        fail(e)
    formatter.success(
        f"Signed in as {session.email or session.user_id}",
        {"user_id": session.user_id, "household_id": session.household_id},
    )


@account_app.command("logout")
def account_logout() -> None:
    """Sign out and forget the saved session."""
    try:
        auth = get_auth()
        session = current_session()
        if auth is not None and session and session.access_token:
            try:
                auth.sign_out()
            except GatewayError as e:
                log.warning(f"Sign-out request failed: {e}")
        cleared = get_session_store().clear()
    except Exception as e:
        fail(e)
    formatter.success("Signed out" if cleared else "No saved session")


@account_app.command("status")
def account_status() -> None:
    """Show who is signed in."""
    session = current_session()
    if session is None:
        formatter.warning("Not signed in")
        return
    formatter.success(
        f"Signed in as {session.email or session.user_id}",
        {"user_id": session.user_id, "household_id": session.household_id},
    )


@account_app.command("password")
def account_password(
    new_password: Annotated[
        str, typer.Option("--new", prompt="New password", hide_input=True, help="New password")
    ],
    confirm_password: Annotated[
        str,
        typer.Option("--confirm", prompt="Confirm password", hide_input=True, help="Repeat it"),
    ],
) -> None:
    """Change your password."""
    try:
        change_password(get_auth(), new_password, confirm_password)
    except Exception as e:
        fail(e)
    formatter.success("Password updated")


if __name__ == "__main__":
    app()

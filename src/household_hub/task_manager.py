"""Household task tracking."""

from datetime import date, timedelta

from .cache import QueryCache
from .errors import RecordNotFoundError, require_text
from .gateway import Collection, GatewayProtocol, Order, eq, lte, neq
from .models import Priority, Task, TaskStatus

_NEXT_STATUS = {
    TaskStatus.TODO: TaskStatus.IN_PROGRESS,
    TaskStatus.IN_PROGRESS: TaskStatus.DONE,
    TaskStatus.DONE: TaskStatus.TODO,
}


def next_status(status: TaskStatus) -> TaskStatus:
    """Status a task moves to when clicked: todo -> in-progress -> done -> todo."""
    return _NEXT_STATUS[status]


class TaskManager:
    """Manages household tasks."""

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

    def get_tasks(self) -> list[Task]:
        """All tasks, soonest due first; undated tasks last."""
        return self.cache.get_or_fetch(
            ("tasks", self.household_id),
            [Collection.TASKS],
            lambda: [
                Task.model_validate(row)
                for row in self.gateway.select(
                    Collection.TASKS,
                    [eq("household_id", self.household_id)],
                    order=[Order("due_date", nulls_first=False)],
                )
            ],
        )

    def split_by_status(self) -> tuple[list[Task], list[Task]]:
        """Return (active, done) tasks."""
        tasks = self.get_tasks()
        active = [t for t in tasks if t.status != TaskStatus.DONE]
        done = [t for t in tasks if t.status == TaskStatus.DONE]
        return active, done

    def get_task(self, task_id: str) -> Task:
        for task in self.get_tasks():
            if task.id == task_id:
                return task
        raise RecordNotFoundError("Task", task_id)

    def add_task(
        self,
        title: str,
        due_date: date | None = None,
        priority: Priority = Priority.MEDIUM,
        description: str | None = None,
    ) -> Task:
        """Add a task in the todo state.

        Raises:
            ValidationError: If the title is empty
        """
        title = require_text(title, "Task title")
        rows = self.gateway.insert(
            Collection.TASKS,
            [
                {
                    "household_id": self.household_id,
                    "title": title,
                    "description": description,
                    "due_date": due_date,
                    "priority": priority,
                    "status": TaskStatus.TODO,
                    "created_by": self.user_id,
                    "is_private": False,
                }
            ],
        )
        self.cache.invalidate(Collection.TASKS)
        return Task.model_validate(rows[0])

    def set_status(self, task_id: str, status: TaskStatus) -> Task:
        """Move a task to a given status.

        Raises:
            RecordNotFoundError: If task not found
        """
        task = self.get_task(task_id)
        self.gateway.update(Collection.TASKS, {"status": status}, [eq("id", task.id)])
        self.cache.invalidate(Collection.TASKS)
        return task.model_copy(update={"status": status})

    def cycle_status(self, task_id: str) -> Task:
        """Advance a task to its next status."""
        task = self.get_task(task_id)
        return self.set_status(task.id, next_status(task.status))

    def remove_task(self, task_id: str) -> Task:
        """Delete a task.

        Raises:
            RecordNotFoundError: If task not found
        """
        task = self.get_task(task_id)
        self.gateway.delete(Collection.TASKS, [eq("id", task.id)])
        self.cache.invalidate(Collection.TASKS)
        return task

    def due_soon(self, days: int = 7, limit: int = 5, today: date | None = None) -> list[Task]:
        """Unfinished tasks due within the next ``days`` days (or overdue)."""
        horizon = (today or date.today()) + timedelta(days=days)
        rows = self.gateway.select(
            Collection.TASKS,
            [
                eq("household_id", self.household_id),
                neq("status", TaskStatus.DONE),
                lte("due_date", horizon),
            ],
            order=[Order("due_date")],
            limit=limit,
        )
        return [Task.model_validate(row) for row in rows]

    def stats(self) -> dict[str, int]:
        """Active and total task counts."""
        rows = self.gateway.select(
            Collection.TASKS, [eq("household_id", self.household_id)], columns=["status"]
        )
        active = sum(1 for r in rows if r.get("status") != TaskStatus.DONE.value)
        return {"active": active, "total": len(rows)}

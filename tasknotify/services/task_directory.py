"""Read-only task/user directory used to resolve notification content."""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from tasknotify.models.task import TERMINAL_TASK_STATUSES, Task
from tasknotify.models.user import User


@dataclass(frozen=True)
class TaskSummary:
    """Digest counts for one user over one period."""
    due_count: int
    overdue_count: int
    completed_count: int
    pending_count: int

    @property
    def is_empty(self) -> bool:
        return self.due_count == 0 and self.overdue_count == 0


class TaskDirectory:
    """Lookups over the task-management service's ``task`` and ``user`` tables."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get_task(self, task_id: int) -> Optional[Task]:
        with Session(self.engine) as session:
            return session.get(Task, task_id)

    def get_user(self, user_id: str) -> Optional[User]:
        with Session(self.engine) as session:
            return session.get(User, user_id)

    def find_overdue_tasks(self, now: datetime) -> List[Task]:
        """Open tasks whose due date has passed."""
        with Session(self.engine) as session:
            statement = (
                select(Task)
                .where(
                    col(Task.due_date).is_not(None),
                    Task.due_date < now,
                    col(Task.status).not_in(TERMINAL_TASK_STATUSES),
                )
                .order_by(col(Task.due_date).asc())
            )
            return list(session.exec(statement).all())

    def summarize(self, user_id: str, period_start: datetime, period_end: datetime, now: datetime) -> TaskSummary:
        """
        Count a user's tasks for a digest period ``[period_start, period_end)``.

        Tasks owned by or assigned to the user are counted. ``due`` means open
        and due within the period but not yet overdue; ``completed`` means
        completed within the period.
        """
        mine = (Task.user_id == user_id) | (Task.assigned_to == user_id)
        is_open = col(Task.status).not_in(TERMINAL_TASK_STATUSES)

        with Session(self.engine) as session:
            def count(*conditions) -> int:
                return session.exec(select(func.count()).select_from(Task).where(mine, *conditions)).one()

            due = count(is_open, Task.due_date >= max(period_start, now), Task.due_date < period_end)
            overdue = count(is_open, Task.due_date < now)
            completed = count(
                Task.status == "completed",
                Task.completed_at >= period_start,
                Task.completed_at < period_end,
            )
            pending = count(is_open)

        return TaskSummary(due_count=due, overdue_count=overdue, completed_count=completed, pending_count=pending)

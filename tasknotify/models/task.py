"""Task model for SQLModel.

The task table is owned by the task-management service; the notification
engine only reads it (task directory).
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, ForeignKey, String
from sqlmodel import Field, SQLModel

TERMINAL_TASK_STATUSES = ("completed", "cancelled")
PRIORITY_LEVELS = {"low": 1, "medium": 2, "high": 3, "urgent": 4}


class Task(SQLModel, table=True):
    """Task entity as seen by the notification engine."""

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(
        sa_column=Column(String, ForeignKey("user.id", ondelete="CASCADE"), index=True)
    )
    assigned_to: Optional[str] = Field(
        default=None,
        sa_column=Column(String, ForeignKey("user.id", ondelete="SET NULL"), index=True, nullable=True),
    )
    title: str = Field(max_length=200, min_length=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: str = Field(default="pending", max_length=20)  # pending, in_progress, completed, cancelled
    priority: str = Field(default="medium", max_length=20)  # low, medium, high, urgent
    due_date: Optional[datetime] = Field(default=None, index=True)
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_closed(self) -> bool:
        return self.status in TERMINAL_TASK_STATUSES

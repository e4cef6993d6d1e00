"""Task lifecycle events consumed from the ``task-events`` topic."""
import json
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class TaskEventType(str, Enum):
    CREATED = "task.created"
    UPDATED = "task.updated"
    COMPLETED = "task.completed"
    DELETED = "task.deleted"
    ASSIGNED = "task.assigned"
    COMMENTED = "task.commented"


class FieldChange(BaseModel):
    old: Optional[Any] = None
    new: Optional[Any] = None


class TaskEventData(BaseModel):
    """Payload of a task event; ``actor_id`` is the user who caused it."""
    task_id: int
    actor_id: Optional[str] = None
    changes: Dict[str, FieldChange] = Field(default_factory=dict)
    assignee_id: Optional[str] = None
    previous_assignee_id: Optional[str] = None
    comment: Optional[str] = None


class TaskEvent(BaseModel):
    """Event envelope as published by the task service."""
    event_id: Optional[str] = None
    type: TaskEventType
    timestamp: Optional[str] = None
    source: Optional[str] = None
    data: TaskEventData

    @classmethod
    def from_cloud_event(cls, body: Dict[str, Any]) -> "TaskEvent":
        """Unwrap a Dapr CloudEvent whose ``data`` holds the envelope (object or JSON string)."""
        envelope = body.get("data", body) if "specversion" in body else body
        if isinstance(envelope, str):
            envelope = json.loads(envelope)
        return cls.model_validate(envelope)

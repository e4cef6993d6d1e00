"""Typed variable sets, one per notification type.

Each model's fields are exactly the placeholders its templates may use; the
validated dump becomes the record's ``data`` payload.
"""
from typing import Any, Dict, Mapping, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from tasknotify.models.notification import NotificationType, ReminderInterval


class TemplateVariables(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True)


class TaskVariables(TemplateVariables):
    """Fields shared by every task-scoped notification."""
    task_title: str = Field(..., min_length=1)
    task_description: str = ""
    priority: str = "medium"
    task_url: str = ""


class DueReminderVariables(TaskVariables):
    due_date: str
    time_until_due: str
    reminder_interval: ReminderInterval
    urgency_level: str


class OverdueAlertVariables(TaskVariables):
    due_date: str
    days_overdue: int = Field(..., ge=0)
    urgency_level: str = "critical"


class AssignmentVariables(TaskVariables):
    assignee_name: str
    assigner_name: str
    due_date: str = "No due date"


class CompletionVariables(TaskVariables):
    completer_name: str


class TaskChangeVariables(TaskVariables):
    """Status, priority, due-date and assignment changes."""
    updater_name: str
    change_type: str
    old_value: str = ""
    new_value: str = ""


class CommentVariables(TaskVariables):
    author_name: str
    comment_excerpt: str


class SummaryVariables(TemplateVariables):
    period_label: str
    due_count: int = Field(0, ge=0)
    overdue_count: int = Field(0, ge=0)
    completed_count: int = Field(0, ge=0)
    pending_count: int = Field(0, ge=0)
    dashboard_url: str = ""


VARIABLES_BY_TYPE: Dict[NotificationType, Type[TemplateVariables]] = {
    NotificationType.DUE_REMINDER: DueReminderVariables,
    NotificationType.OVERDUE_ALERT: OverdueAlertVariables,
    NotificationType.ASSIGNMENT: AssignmentVariables,
    NotificationType.COMPLETION: CompletionVariables,
    NotificationType.STATUS_CHANGE: TaskChangeVariables,
    NotificationType.PRIORITY_CHANGE: TaskChangeVariables,
    NotificationType.DAILY_SUMMARY: SummaryVariables,
    NotificationType.WEEKLY_SUMMARY: SummaryVariables,
    NotificationType.COMMENT: CommentVariables,
}


def variables_for(
    notification_type: NotificationType,
    variables: Union[TemplateVariables, Mapping[str, Any]],
) -> TemplateVariables:
    """
    Coerce a variable bag into the typed set declared for ``notification_type``.

    Raises:
        pydantic.ValidationError: if the bag does not match the declared placeholders
    """
    model = VARIABLES_BY_TYPE[NotificationType(notification_type)]
    if isinstance(variables, model):
        return variables
    if isinstance(variables, BaseModel):
        variables = variables.model_dump()
    return model.model_validate(dict(variables))

"""Default notification templates seeded at startup (language ``en``)."""
from typing import Dict, List

from tasknotify.models.notification import NotificationChannel, NotificationType
from tasknotify.models.template import NotificationTemplate
from tasknotify.schemas.variables import VARIABLES_BY_TYPE

_EMAIL_WRAPPER = """<div style="font-family: Arial, sans-serif; max-width: 600px;">
  <h2 style="color: {color};">{heading}</h2>
  {body}
</div>"""

_TASK_BUTTON = (
    '<a href="{{ task_url }}" style="background: #007bff; color: white; padding: 10px 20px; '
    'text-decoration: none; border-radius: 5px;">View Task</a>'
)

BASE_TEMPLATES: Dict[NotificationType, Dict[str, str]] = {
    NotificationType.DUE_REMINDER: {
        "subject": "Task Due Reminder: {{ task_title }}",
        "message": 'Your task "{{ task_title }}" is due {{ time_until_due }}. Priority: {{ priority }}',
        "sms": 'Reminder: "{{ task_title }}" is due {{ time_until_due }}.',
        "html": _EMAIL_WRAPPER.format(
            color="#f39c12",
            heading="Task Due Reminder",
            body=(
                "<h3>{{ task_title }}</h3>"
                "<p>Due: {{ due_date }} ({{ time_until_due }})</p>"
                "<p>Priority: {{ priority }}</p>"
                "<p>{{ task_description }}</p>" + _TASK_BUTTON
            ),
        ),
    },
    NotificationType.OVERDUE_ALERT: {
        "subject": "Overdue Task Alert: {{ task_title }}",
        "message": 'Your task "{{ task_title }}" is {{ days_overdue }} days overdue. Please take action immediately.',
        "sms": 'Overdue: "{{ task_title }}" is {{ days_overdue }} days overdue.',
        "html": _EMAIL_WRAPPER.format(
            color="#dc3545",
            heading="Overdue Task Alert",
            body=(
                "<h3>{{ task_title }}</h3>"
                "<p><strong>{{ days_overdue }} days overdue</strong> (due {{ due_date }})</p>"
                "<p>Priority: {{ priority }}</p>"
                "<p>This task requires immediate attention. Please complete or reschedule it.</p>"
                + _TASK_BUTTON
            ),
        ),
    },
    NotificationType.ASSIGNMENT: {
        "subject": "New Task Assignment: {{ task_title }}",
        "message": 'You have been assigned "{{ task_title }}" by {{ assigner_name }}. Due: {{ due_date }}',
        "sms": '{{ assigner_name }} assigned you "{{ task_title }}".',
        "html": _EMAIL_WRAPPER.format(
            color="#28a745",
            heading="New Task Assignment",
            body=(
                "<h3>{{ task_title }}</h3>"
                "<p>Assigned by: {{ assigner_name }}</p>"
                "<p>Due: {{ due_date }}</p>"
                "<p>Priority: {{ priority }}</p>"
                "<p>{{ task_description }}</p>" + _TASK_BUTTON
            ),
        ),
    },
    NotificationType.COMPLETION: {
        "subject": "Task Completed: {{ task_title }}",
        "message": 'Task "{{ task_title }}" has been completed by {{ completer_name }}.',
        "sms": '"{{ task_title }}" was completed by {{ completer_name }}.',
        "html": _EMAIL_WRAPPER.format(
            color="#28a745",
            heading="Task Completed",
            body="<h3>{{ task_title }}</h3><p>Completed by {{ completer_name }}.</p>" + _TASK_BUTTON,
        ),
    },
    NotificationType.STATUS_CHANGE: {
        "subject": "Task Updated: {{ task_title }}",
        "message": 'Task "{{ task_title }}" {{ change_type }} changed from {{ old_value }} to {{ new_value }} by {{ updater_name }}.',
        "sms": '"{{ task_title }}" {{ change_type }}: {{ old_value }} -> {{ new_value }}.',
        "html": _EMAIL_WRAPPER.format(
            color="#17a2b8",
            heading="Task Updated",
            body=(
                "<h3>{{ task_title }}</h3>"
                "<p>{{ change_type }}: {{ old_value }} &rarr; {{ new_value }}</p>"
                "<p>Updated by {{ updater_name }}</p>" + _TASK_BUTTON
            ),
        ),
    },
    NotificationType.PRIORITY_CHANGE: {
        "subject": "Priority Changed: {{ task_title }}",
        "message": 'Task "{{ task_title }}" priority changed from {{ old_value }} to {{ new_value }}.',
        "sms": '"{{ task_title }}" priority is now {{ new_value }}.',
        "html": _EMAIL_WRAPPER.format(
            color="#fd7e14",
            heading="Priority Changed",
            body=(
                "<h3>{{ task_title }}</h3>"
                "<p>Priority: {{ old_value }} &rarr; <strong>{{ new_value }}</strong></p>"
                "<p>Changed by {{ updater_name }}</p>" + _TASK_BUTTON
            ),
        ),
    },
    NotificationType.DAILY_SUMMARY: {
        "subject": "Daily Task Summary - {{ period_label }}",
        "message": "Here's your daily task summary: {{ due_count }} due today, {{ overdue_count }} overdue, {{ completed_count }} completed.",
        "sms": "Today: {{ due_count }} due, {{ overdue_count }} overdue.",
        "html": _EMAIL_WRAPPER.format(
            color="#6c757d",
            heading="Daily Task Summary",
            body=(
                "<h3>{{ period_label }}</h3>"
                "<p><strong>{{ due_count }}</strong> due today</p>"
                "<p><strong>{{ overdue_count }}</strong> overdue</p>"
                "<p><strong>{{ completed_count }}</strong> completed</p>"
                "<p>{{ pending_count }} tasks still open</p>"
                '<a href="{{ dashboard_url }}">View Dashboard</a>'
            ),
        ),
    },
    NotificationType.WEEKLY_SUMMARY: {
        "subject": "Weekly Task Summary - {{ period_label }}",
        "message": "This week: {{ due_count }} due, {{ overdue_count }} overdue, {{ completed_count }} completed.",
        "sms": "This week: {{ due_count }} due, {{ overdue_count }} overdue.",
        "html": _EMAIL_WRAPPER.format(
            color="#6c757d",
            heading="Weekly Task Summary",
            body=(
                "<h3>{{ period_label }}</h3>"
                "<p><strong>{{ due_count }}</strong> due this week</p>"
                "<p><strong>{{ overdue_count }}</strong> overdue</p>"
                "<p><strong>{{ completed_count }}</strong> completed</p>"
                "<p>{{ pending_count }} tasks still open</p>"
                '<a href="{{ dashboard_url }}">View Dashboard</a>'
            ),
        ),
    },
    NotificationType.COMMENT: {
        "subject": "New Comment on {{ task_title }}",
        "message": '{{ author_name }} commented on "{{ task_title }}": {{ comment_excerpt }}',
        "sms": '{{ author_name }} commented on "{{ task_title }}".',
        "html": _EMAIL_WRAPPER.format(
            color="#6f42c1",
            heading="New Comment",
            body=(
                "<h3>{{ task_title }}</h3>"
                "<p><strong>{{ author_name }}</strong> wrote:</p>"
                "<blockquote>{{ comment_excerpt }}</blockquote>" + _TASK_BUTTON
            ),
        ),
    },
}


def build_default_templates(language: str = "en") -> List[NotificationTemplate]:
    """Expand the base templates over every channel."""
    templates = []
    for notification_type, content in BASE_TEMPLATES.items():
        variables = list(VARIABLES_BY_TYPE[notification_type].model_fields)
        for channel in NotificationChannel:
            templates.append(NotificationTemplate(
                type=notification_type.value,
                channel=channel.value,
                language=language,
                subject_template=content["subject"],
                message_template=content["sms"] if channel == NotificationChannel.SMS else content["message"],
                html_template=content["html"] if channel == NotificationChannel.EMAIL else None,
                variables=variables,
            ))
    return templates

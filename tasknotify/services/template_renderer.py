"""
Template Renderer.

Renders a (notification type, channel, language) template with a variable bag
into subject, plain-text message and optional HTML. Rendering happens once,
when a notification is scheduled; the output is stored on the record.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from jinja2 import Environment, StrictUndefined, TemplateError, UndefinedError
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from tasknotify.models.template import NotificationTemplate
from tasknotify.services.default_templates import build_default_templates
from tasknotify.services.exceptions import TemplateNotFoundError, TemplateRenderError
from tasknotify.utils.logger import get_logger

logger = get_logger(__name__)

_text_env = Environment(undefined=StrictUndefined, autoescape=False, keep_trailing_newline=False)
_html_env = Environment(undefined=StrictUndefined, autoescape=True)


@dataclass(frozen=True)
class RenderedContent:
    subject: str
    message: str
    html: Optional[str] = None


def render_template(template: NotificationTemplate, variables: Mapping[str, Any]) -> RenderedContent:
    """
    Render ``template`` with ``variables``.

    Every placeholder the template declares must be present in ``variables``,
    and any placeholder referenced but not supplied fails rendering.

    Raises:
        TemplateRenderError: on a missing variable or a template syntax error
    """
    missing = [name for name in template.variables or [] if name not in variables]
    if missing:
        raise TemplateRenderError(
            f"Missing template variables for {template.type}/{template.channel}: {', '.join(missing)}",
            details={"missing": missing, "type": template.type, "channel": template.channel},
        )

    try:
        subject = _text_env.from_string(template.subject_template).render(**variables)
        message = _text_env.from_string(template.message_template).render(**variables)
        html = None
        if template.html_template:
            html = _html_env.from_string(template.html_template).render(**variables)
    except UndefinedError as e:
        raise TemplateRenderError(
            f"Template {template.type}/{template.channel} references an unknown variable: {e.message}",
            details={"type": template.type, "channel": template.channel},
        ) from e
    except TemplateError as e:
        raise TemplateRenderError(
            f"Template {template.type}/{template.channel} could not be rendered: {e}",
            details={"type": template.type, "channel": template.channel},
        ) from e

    return RenderedContent(subject=subject.strip(), message=message.strip(), html=html)


class TemplateRenderer:
    """Looks up templates in the store and renders them."""

    def __init__(self, engine: Engine, default_language: str = "en"):
        self.engine = engine
        self.default_language = default_language

    def get_template(self, notification_type: str, channel: str, language: Optional[str] = None) -> NotificationTemplate:
        """
        Find the active template for ``(type, channel, language)``.

        Falls back to the default language when the requested one has no template.

        Raises:
            TemplateNotFoundError: if neither language has an active template
        """
        language = language or self.default_language
        candidates = [language] if language == self.default_language else [language, self.default_language]

        with Session(self.engine) as session:
            for candidate in candidates:
                statement = select(NotificationTemplate).where(
                    NotificationTemplate.type == notification_type,
                    NotificationTemplate.channel == channel,
                    NotificationTemplate.language == candidate,
                    NotificationTemplate.is_active == True,  # noqa: E712
                )
                template = session.exec(statement).first()
                if template:
                    return template

        raise TemplateNotFoundError(notification_type, channel, language)

    def render(
        self,
        notification_type: str,
        channel: str,
        variables: Mapping[str, Any],
        language: Optional[str] = None,
    ) -> RenderedContent:
        """Render the stored template for ``(type, channel, language)``."""
        template = self.get_template(notification_type, channel, language)
        return render_template(template, variables)

    def upsert_template(
        self,
        notification_type: str,
        channel: str,
        subject_template: str,
        message_template: str,
        html_template: Optional[str] = None,
        variables: Optional[list] = None,
        language: Optional[str] = None,
        is_active: bool = True,
    ) -> NotificationTemplate:
        """Create or replace a template. Administrative operation, not used on the hot path."""
        language = language or self.default_language
        with Session(self.engine) as session:
            statement = select(NotificationTemplate).where(
                NotificationTemplate.type == notification_type,
                NotificationTemplate.channel == channel,
                NotificationTemplate.language == language,
            )
            template = session.exec(statement).first()
            if template is None:
                template = NotificationTemplate(type=notification_type, channel=channel, language=language,
                                                subject_template=subject_template,
                                                message_template=message_template)
            template.subject_template = subject_template
            template.message_template = message_template
            template.html_template = html_template
            template.variables = list(variables or [])
            template.is_active = is_active
            template.updated_at = datetime.utcnow()
            session.add(template)
            session.commit()
            session.refresh(template)
            return template

    def seed_defaults(self) -> int:
        """Insert missing default templates and refresh seeded ones. Returns the number written."""
        count = 0
        for default in build_default_templates(self.default_language):
            self.upsert_template(
                notification_type=default.type,
                channel=default.channel,
                subject_template=default.subject_template,
                message_template=default.message_template,
                html_template=default.html_template,
                variables=default.variables,
                language=default.language,
            )
            count += 1
        logger.info("Notification templates loaded", count=count)
        return count

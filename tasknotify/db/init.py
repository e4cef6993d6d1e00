"""Initialize database tables and seed notification templates."""
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

# Imported for their table registrations on SQLModel.metadata
from tasknotify.models import Notification, NotificationPreference, NotificationTemplate, Task, User  # noqa: F401
from tasknotify.services.template_renderer import TemplateRenderer
from tasknotify.utils.logger import get_logger

logger = get_logger(__name__)


def init_db(engine: Engine, default_language: str = "en", seed_templates: bool = True) -> None:
    """Create missing tables, then load the default templates."""
    logger.info("Creating database tables")
    SQLModel.metadata.create_all(engine)
    if seed_templates:
        TemplateRenderer(engine, default_language).seed_defaults()
    logger.info("Database initialized")


if __name__ == "__main__":
    from tasknotify.config import get_settings
    from tasknotify.db.config import create_db_engine

    settings = get_settings()
    init_db(create_db_engine(settings.database_url), settings.default_language)

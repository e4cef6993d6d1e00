"""
Process entry point for the Task Notification Engine.

Hosts the Dapr subscription that feeds task lifecycle events to the hooks,
and runs the engine (dispatcher and maintenance cron jobs) for the lifetime
of the app.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from tasknotify import __version__
from tasknotify.config import Settings, get_settings
from tasknotify.db.config import create_db_engine
from tasknotify.db.init import init_db
from tasknotify.schemas.events import TaskEvent
from tasknotify.services.notification_service import NotificationService
from tasknotify.services.task_hooks import TaskNotificationHooks

logger = logging.getLogger(__name__)

TASK_EVENTS_TOPIC = "task-events"


def create_app(
    service: Optional[NotificationService] = None,
    settings: Optional[Settings] = None,
    run_engine: bool = True,
) -> FastAPI:
    """
    Build the FastAPI host.

    Args:
        service: a constructed engine; built from settings at startup when omitted
        settings: runtime settings, read from the environment when omitted
        run_engine: start the cron driver (dispatcher and sweeps) with the app
    """
    settings = settings or (service.settings if service else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.service is None:
            engine = create_db_engine(settings.database_url)
            init_db(engine, settings.default_language)
            app.state.service = NotificationService(engine, settings)
            app.state.hooks = TaskNotificationHooks(app.state.service)
        if run_engine:
            await app.state.service.start()
        try:
            yield
        finally:
            if run_engine:
                await app.state.service.stop()

    app = FastAPI(
        title="Task Notification Engine",
        description="Schedules and delivers task notifications across email, push, in-app and SMS",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.hooks = TaskNotificationHooks(service) if service else None

    @app.get("/dapr/subscribe")
    def subscribe():
        """Dapr subscription endpoint for Kafka topics."""
        return [{
            "pubsubname": settings.dapr_pubsub_name,
            "topic": TASK_EVENTS_TOPIC,
            "route": "events",
        }]

    @app.post("/events")
    async def handle_event(request: Request):
        body_bytes = await request.body()
        if not body_bytes:
            logger.warning("[DAPR] Empty request received")
            return {"status": "DROP", "reason": "empty request"}

        try:
            event = TaskEvent.from_cloud_event(await request.json())
        except (ValueError, ValidationError) as e:
            # Malformed events are dropped so Dapr does not redeliver them forever
            logger.error(f"[DAPR] Invalid task event dropped: {e}")
            return {"status": "DROP", "reason": "invalid event"}

        handled = await run_in_threadpool(app.state.hooks.handle_event, event)
        logger.info(f"[DAPR] {event.type.value} for task {event.data.task_id} handled={handled}")
        return {"status": "SUCCESS", "handled": handled}

    return app


app = create_app()


def run() -> None:
    logging.basicConfig(level=logging.INFO)
    uvicorn.run("tasknotify.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()

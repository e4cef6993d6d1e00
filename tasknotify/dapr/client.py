"""Dapr client for publishing notification events through the sidecar."""
import json
import logging
import uuid
from datetime import datetime
from typing import Any, Dict

from dapr.clients import DaprClient

logger = logging.getLogger(__name__)

NOTIFICATIONS_TOPIC = "notifications"


class DaprEventPublisher:
    """Publishes events to Kafka via Dapr pub/sub."""

    def __init__(self, enabled: bool = False, pubsub_name: str = "task-pubsub",
                 source: str = "task-notification-engine"):
        """
        Initialize Dapr event publisher.

        Args:
            enabled: publish through the sidecar; when False events are only logged
            pubsub_name: Dapr pub/sub component name
            source: value of the envelope's ``source`` field
        """
        self.enabled = enabled
        self.pubsub_name = pubsub_name
        self.source = source
        if not self.enabled:
            logger.warning("Dapr disabled. Running in development mode without Dapr integration.")

    def build_envelope(self, event_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "event_id": str(uuid.uuid4()),
            "type": event_type,
            "timestamp": datetime.utcnow().isoformat(),
            "source": self.source,
            "data": data,
        }

    def publish_event(self, topic: str, event_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Publish an event to a topic via Dapr pub/sub. Raises if the sidecar rejects it."""
        event_envelope = self.build_envelope(event_type, data)

        if not self.enabled:
            # Development mode: log the event instead of publishing
            logger.info(f"[DEV MODE] Would publish to topic '{topic}': {event_type} with data {data}")
            return {"success": True, "event_id": event_envelope["event_id"]}

        with DaprClient() as client:
            client.publish_event(
                pubsub_name=self.pubsub_name,
                topic_name=topic,
                data=json.dumps(event_envelope, default=str),
                data_content_type="application/json",
            )

        logger.info(f"Published event {event_type} to topic {topic}")
        return {"success": True, "event_id": event_envelope["event_id"]}

    def publish_in_app_notification(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Publish notification.in_app for the real-time (websocket) fan-out."""
        return self.publish_event(NOTIFICATIONS_TOPIC, "notification.in_app", data)

    def publish_notification_sent(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Publish notification.sent after a successful delivery attempt."""
        return self.publish_event(NOTIFICATIONS_TOPIC, "notification.sent", data)

"""
Metrics Collection for the Notification Engine.

Counts scheduling, delivery, retry and deferral outcomes, and accumulates
dispatcher tick timings.
"""

import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict


class MetricsCollector:
    """Collects and manages metrics for the notification engine."""

    COUNTERS = (
        "notifications_scheduled_total",
        "notifications_sent_total",
        "notifications_delivered_total",
        "notifications_failed_total",
        "notifications_cancelled_total",
        "notifications_deferred_total",
        "retry_attempts_total",
        "dispatch_errors_total",
    )

    def __init__(self):
        """Initialize metrics collector."""
        self.metrics = defaultdict(int)
        self.timers = defaultdict(float)
        self.lock = threading.Lock()

        for name in self.COUNTERS:
            self.metrics[name] = 0

    def increment_counter(self, metric_name: str, value: int = 1):
        """Increment a counter metric."""
        with self.lock:
            self.metrics[metric_name] += value

    def record_timer(self, metric_name: str, duration: float):
        """Record a timing metric."""
        with self.lock:
            self.timers[metric_name] += duration

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics values."""
        with self.lock:
            return {
                "counters": dict(self.metrics),
                "timers": dict(self.timers),
                "timestamp": datetime.utcnow().isoformat()
            }

    def get(self, metric_name: str) -> int:
        with self.lock:
            return self.metrics[metric_name]

    def notification_scheduled(self, count: int = 1):
        """Record that notification records were persisted."""
        self.increment_counter("notifications_scheduled_total", count)

    def notification_sent(self):
        """Record that a channel accepted a notification."""
        self.increment_counter("notifications_sent_total")

    def notification_delivered(self):
        """Record that a channel confirmed delivery synchronously."""
        self.increment_counter("notifications_delivered_total")

    def notification_failed(self):
        """Record that a notification exhausted its retries."""
        self.increment_counter("notifications_failed_total")

    def notification_cancelled(self, count: int = 1):
        self.increment_counter("notifications_cancelled_total", count)

    def notification_deferred(self):
        """Record a quiet-hours deferral."""
        self.increment_counter("notifications_deferred_total")

    def retry_attempt(self):
        """Record that a failed attempt was re-queued."""
        self.increment_counter("retry_attempts_total")

    def dispatch_error(self):
        """Record an unexpected error while processing a record."""
        self.increment_counter("dispatch_errors_total")

    @contextmanager
    def time_operation(self, metric_name: str):
        """Context manager to time an operation."""
        start_time = time.time()
        try:
            yield
        finally:
            self.record_timer(metric_name, time.time() - start_time)


# Global metrics instance
metrics_collector = MetricsCollector()

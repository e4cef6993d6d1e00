"""In-process periodic job driver."""

from .driver import CronDriver, CronJob

__all__ = ["CronDriver", "CronJob"]

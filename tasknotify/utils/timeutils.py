"""Time helpers. The engine stores and compares naive UTC datetimes."""
from datetime import datetime, timedelta, timezone
from typing import Optional, Union


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into naive UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    return to_naive_utc(datetime.fromisoformat(value.replace('Z', '+00:00')))


def start_of_day(moment: datetime) -> datetime:
    """Midnight of the UTC calendar day containing ``moment``."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(moment: datetime) -> datetime:
    """Monday midnight of the ISO week containing ``moment``."""
    return start_of_day(moment) - timedelta(days=moment.weekday())

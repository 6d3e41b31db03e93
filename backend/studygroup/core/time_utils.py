from datetime import datetime
from typing import Optional
import pytz

from studygroup.core.config import settings

UTC = pytz.utc


def get_utc_now() -> datetime:
    """Get current time in UTC."""
    return datetime.now(UTC)


def display_timezone():
    return pytz.timezone(settings.TIMEZONE)


def format_chat_time(dt: Optional[datetime] = None) -> str:
    """
    Format a time the way chat bubbles show it, e.g. "10:30 AM".
    Naive datetimes are assumed to be UTC.
    """
    if dt is None:
        dt = get_utc_now()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(display_timezone()).strftime("%I:%M %p")

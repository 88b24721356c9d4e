from datetime import datetime
import pytz

from app.config import settings

LOCAL_TZ = pytz.timezone(settings.TIMEZONE)


def get_local_now():
    """Get current time in the configured business timezone"""
    return datetime.now(LOCAL_TZ)


def utc_now():
    return datetime.now(pytz.utc)


def to_local_tz(dt):
    """Convert datetime to the business timezone"""
    if dt.tzinfo is None:
        # Naive datetime, assume UTC
        dt = pytz.utc.localize(dt)
    return dt.astimezone(LOCAL_TZ)


def ensure_aware(dt):
    """SQLite hands back naive datetimes; treat them as UTC"""
    if dt is not None and dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt

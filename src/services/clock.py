# src/services/clock.py
import datetime as dt
from zoneinfo import ZoneInfo

from src.config.settings import settings

LOCAL_TZ = ZoneInfo(settings.app_timezone)


def now_local() -> dt.datetime:
    """Current wall-clock time in the app timezone, naive, as stored in the DB."""
    return dt.datetime.now(LOCAL_TZ).replace(tzinfo=None, microsecond=0)


def to_local_naive(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(LOCAL_TZ).replace(tzinfo=None)


def current_time() -> dt.datetime:
    # FastAPI dependency; tests override it to pin "now"
    return now_local()

from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from pos_api.config import settings


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def store_zone() -> ZoneInfo:
    return ZoneInfo(settings.store_timezone)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive values read back from backends without tz support."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=store_zone())
    return value.astimezone(timezone.utc)


def local_midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=store_zone())


def local_today(now: datetime | None = None) -> date:
    moment = now or utc_now()
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(store_zone()).date()

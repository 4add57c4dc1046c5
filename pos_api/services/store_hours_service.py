"""Store opening-hours gate.

Pure functions over the decoded settings map. The server is the only
authority on whether an order can be placed; clients should treat any local
copy of this logic as a hint and defer to the API response.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime

from pos_api.clock import store_zone
from pos_api.models import OrderStatus

logger = logging.getLogger(__name__)

DEFAULT_PREP_TIME_MINUTES = 15
MINUTES_PER_DAY = 24 * 60
DELAY_GRACE_MINUTES = 5

_HHMM_RE = re.compile(r'^(\d{1,2}):(\d{2})$')


@dataclass(frozen=True)
class StoreStatus:
    open: bool
    reason: str | None = None


def parse_hhmm(value: str) -> int:
    """Return minutes since midnight for an ``HH:MM`` string."""
    match = _HHMM_RE.match((value or '').strip())
    if not match:
        raise ValueError(f'Invalid time value: {value!r}')
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f'Invalid time value: {value!r}')
    return hours * 60 + minutes


def store_now(now: datetime | None = None) -> datetime:
    zone = store_zone()
    if now is None:
        return datetime.now(tz=zone)
    if now.tzinfo is None:
        # Naive datetimes are taken to already be store-local wall time.
        return now.replace(tzinfo=zone)
    return now.astimezone(zone)


def schedule_day_index(moment: datetime) -> int:
    # Schedules number days from Sunday=0; Python's weekday() starts at Monday=0.
    return (moment.weekday() + 1) % 7


def _load_schedule(raw) -> list[dict]:
    if not raw:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.error('Could not parse weekly schedule setting')
            return []
    if not isinstance(raw, list):
        logger.error('Weekly schedule setting is not a list')
        return []
    return [entry for entry in raw if isinstance(entry, dict)]


def _prep_time(store_settings: dict) -> int:
    try:
        value = int(store_settings.get('prep_time') or DEFAULT_PREP_TIME_MINUTES)
    except (TypeError, ValueError):
        return DEFAULT_PREP_TIME_MINUTES
    return value if value > 0 else DEFAULT_PREP_TIME_MINUTES


def check_store_open(store_settings: dict, *, now: datetime | None = None, target_time: str | None = None) -> StoreStatus:
    if store_settings.get('orders_enabled') is False:
        return StoreStatus(False, 'Orders are currently disabled')

    local_now = store_now(now)
    today = schedule_day_index(local_now)
    today_entry = next(
        (entry for entry in _load_schedule(store_settings.get('weekly_schedule')) if entry.get('day') == today),
        None,
    )
    if not today_entry or not today_entry.get('enabled'):
        return StoreStatus(False, 'Store is closed today')

    opening_time = today_entry.get('open') or ''
    closing_time = today_entry.get('close') or ''
    if not opening_time or not closing_time:
        return StoreStatus(False, 'Opening hours for today are not configured')

    try:
        opening = parse_hhmm(opening_time)
        closing = parse_hhmm(closing_time)
    except ValueError:
        logger.error('Invalid opening hours for day %s: %s - %s', today, opening_time, closing_time)
        return StoreStatus(False, 'Opening hours for today are not configured')

    crosses_midnight = closing < opening

    def within(minutes: int) -> bool:
        if crosses_midnight:
            return minutes >= opening or minutes <= closing
        return opening <= minutes <= closing

    current = local_now.hour * 60 + local_now.minute
    if not within(current):
        return StoreStatus(False, f"Store is closed. Today's hours: {opening_time} - {closing_time}")

    if target_time:
        target = parse_hhmm(target_time)
        if not within(target):
            return StoreStatus(False, f'Pickup time must be between {opening_time} and {closing_time}')

        if crosses_midnight and target < opening and current >= opening:
            target += MINUTES_PER_DAY

        prep_time = _prep_time(store_settings)
        if target < current + prep_time:
            return StoreStatus(False, f'Minimum preparation time is {prep_time} minutes')

    return StoreStatus(True)


def is_order_delayed(pickup_time: str, status: OrderStatus | str, *, now: datetime | None = None) -> bool:
    status_value = status.value if isinstance(status, OrderStatus) else str(status).upper()
    if status_value in {OrderStatus.READY.value, OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value}:
        return False
    try:
        pickup = parse_hhmm(pickup_time)
    except ValueError:
        return False
    local_now = store_now(now)
    current = local_now.hour * 60 + local_now.minute
    return current > pickup + DELAY_GRACE_MINUTES

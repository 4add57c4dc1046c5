from __future__ import annotations

import json
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models import Setting, SettingType
from pos_api.services.notification_service import NotificationService
from pos_api.services.store_hours_service import DEFAULT_PREP_TIME_MINUTES, check_store_open

DEFAULT_STORE_NAME = 'Guantanamera'


def decode_value(raw: str, value_type: str):
    if value_type == SettingType.NUMBER.value:
        try:
            number = float(raw)
        except ValueError:
            return raw
        return int(number) if number.is_integer() else number
    if value_type == SettingType.BOOLEAN.value:
        return raw == 'true'
    if value_type == SettingType.JSON.value:
        try:
            return json.loads(raw)
        except ValueError:
            return raw
    return raw


def encode_value(value) -> tuple[str, str]:
    # bool is checked first because it is a subclass of int.
    if isinstance(value, bool):
        return ('true' if value else 'false'), SettingType.BOOLEAN.value
    if isinstance(value, (int, float)):
        return str(value), SettingType.NUMBER.value
    if isinstance(value, (dict, list)) or value is None:
        return json.dumps(value), SettingType.JSON.value
    return str(value), SettingType.STRING.value


def get_settings(db: Session) -> dict:
    rows = db.execute(select(Setting).order_by(Setting.key.asc())).scalars().all()
    return {row.key: decode_value(row.value, row.type) for row in rows}


def update_settings(db: Session, values: dict, *, notifier: NotificationService | None = None) -> dict:
    if not isinstance(values, dict):
        raise ValueError('Settings payload must be an object')

    normalized = {str(key).strip(): value for key, value in values.items()}
    if '' in normalized:
        raise ValueError('Setting key cannot be empty')

    existing = {
        row.key: row for row in db.execute(select(Setting).where(Setting.key.in_(list(normalized)))).scalars()
    }
    for key, value in normalized.items():
        encoded, value_type = encode_value(value)
        row = existing.get(key)
        if row:
            row.value = encoded
            row.type = value_type
        else:
            db.add(Setting(key=key, value=encoded, type=value_type))
    db.commit()

    if notifier is not None:
        notifier.notify_settings_updated()
    return get_settings(db)


def get_public_status(db: Session, *, now: datetime | None = None) -> dict:
    store_settings = get_settings(db)
    verdict = check_store_open(store_settings, now=now)
    orders_enabled = store_settings.get('orders_enabled')
    return {
        'orders_enabled': True if orders_enabled is None else orders_enabled,
        'weekly_schedule': store_settings.get('weekly_schedule') or None,
        'prep_time': store_settings.get('prep_time') or DEFAULT_PREP_TIME_MINUTES,
        'store_name': store_settings.get('store_name') or DEFAULT_STORE_NAME,
        'store_address': store_settings.get('store_address') or '',
        'store_phone': store_settings.get('store_phone') or '',
        'open': verdict.open,
        'reason': verdict.reason,
    }

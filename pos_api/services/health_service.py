from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_api.clock import utc_now

logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()


def check_health(db: Session) -> dict:
    database = 'up'
    try:
        db.execute(text('SELECT 1'))
    except SQLAlchemyError as exc:
        database = 'down'
        logger.warning('Healthcheck warning: database is down or unreachable: %s', exc)
    return {
        'status': 'ok' if database == 'up' else 'degraded',
        'uptime': round(time.monotonic() - _STARTED_AT, 3),
        'database': database,
        'timestamp': utc_now().isoformat(),
    }

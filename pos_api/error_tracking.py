from __future__ import annotations

import logging

import sentry_sdk

from pos_api.config import settings

logger = logging.getLogger(__name__)

SENSITIVE_HEADERS = {'authorization', 'x-api-key', 'cookie', 'set-cookie'}
USER_FIELDS = ('ip_address', 'email', 'id', 'username')


def scrub_event(event: dict, hint: dict | None = None) -> dict:
    """Strip credentials and customer data before an event leaves the process."""
    request = event.get('request')
    if request:
        headers = request.get('headers')
        if isinstance(headers, dict):
            request['headers'] = {k: v for k, v in headers.items() if k.lower() not in SENSITIVE_HEADERS}
        if request.get('cookies'):
            request['cookies'] = '[Redacted Cookies]'
        if request.get('data'):
            request['data'] = '[Redacted Body]'
        if request.get('query_string'):
            request['query_string'] = '[Redacted Query]'

    user = event.get('user')
    if isinstance(user, dict):
        for field in USER_FIELDS:
            user.pop(field, None)
    return event


def init_error_tracking() -> bool:
    if not settings.sentry_dsn:
        logger.info('Error tracking disabled (no SENTRY_DSN)')
        return False
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0,
        send_default_pii=False,
        before_send=scrub_event,
    )
    return True

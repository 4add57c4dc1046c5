from __future__ import annotations

import logging
import secrets

from fastapi import Request

from pos_api.config import settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = 'x-api-key'
API_KEY_QUERY_PARAM = 'apiKey'


class ApiKeyNotConfigured(RuntimeError):
    pass


def extract_api_key(request: Request) -> str | None:
    # EventSource cannot set headers, so the SSE endpoint passes the key in the query string.
    return request.headers.get(API_KEY_HEADER) or request.query_params.get(API_KEY_QUERY_PARAM)


def api_key_matches(provided: str | None) -> bool:
    expected = settings.admin_api_key
    if not expected:
        raise ApiKeyNotConfigured('ADMIN_API_KEY is not configured')
    if not provided:
        return False
    return secrets.compare_digest(provided.encode('utf-8'), expected.encode('utf-8'))


def has_valid_api_key(request: Request) -> bool:
    provided = extract_api_key(request)
    if api_key_matches(provided):
        return True
    if provided:
        logger.warning('Invalid API key from %s on %s', request.client.host if request.client else '-', request.url.path)
    return False

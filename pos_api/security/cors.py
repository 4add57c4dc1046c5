from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pos_api.config import settings

logger = logging.getLogger(__name__)

CORS_METHODS = ['GET', 'POST', 'PATCH', 'PUT', 'DELETE', 'OPTIONS']
CORS_HEADERS = [
    'Content-Type',
    'Authorization',
    'x-api-key',
    'Accept',
    'Origin',
    'X-Requested-With',
]


def allowed_origins(raw: str | None = None) -> list[str]:
    origins = [origin.strip() for origin in (raw if raw is not None else settings.cors_allowed_origins).split(',')]
    # The dashboard sends the session cookie, which browsers refuse to pair with a wildcard origin.
    return [origin for origin in origins if origin and origin != '*']


def install_cors(app: FastAPI) -> None:
    origins = allowed_origins()
    logger.info('CORS origins: %s (regex=%s)', origins, settings.cors_allowed_origin_regex)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=settings.cors_allowed_origin_regex or None,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )

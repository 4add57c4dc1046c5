from __future__ import annotations

import logging

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from pos_api.config import settings

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    pass


class ConflictError(Exception):
    pass


def _field_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get('loc', ()) if part not in {'body', 'query', 'path'}]
        errors.append({'field': '.'.join(location), 'message': error.get('msg', 'Invalid value')})
    return errors


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning('%s %s - validation error', request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={'message': 'Validation error', 'errors': _field_errors(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error('%s %s - %s', request.method, request.url.path, exc.detail)
            sentry_sdk.capture_exception(exc)
        else:
            logger.info('%s %s - %s', request.method, request.url.path, exc.detail)
        content = exc.detail if isinstance(exc.detail, dict) else {'error': exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, 'headers', None))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning('%s %s - %s', request.method, request.url.path, exc.orig)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={'error': 'Conflict', 'message': 'Unique constraint failed'},
        )

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        logger.info('%s %s - %s', request.method, request.url.path, exc)
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={'error': 'Conflict', 'message': str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        logger.info('%s %s - %s', request.method, request.url.path, exc)
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={'error': str(exc) or 'Not Found'})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception('%s %s - %s', request.method, request.url.path, exc)
        sentry_sdk.capture_exception(exc)
        content = {'error': 'Internal Server Error'}
        if not settings.is_production:
            content['message'] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

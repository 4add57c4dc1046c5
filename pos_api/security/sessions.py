from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import FastAPI, Request
from starlette.responses import Response

from pos_api.config import settings
from pos_api.models import User

logger = logging.getLogger(__name__)

JWT_ALGORITHM = 'HS256'


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def issue_token(user: User, *, now: datetime | None = None) -> str:
    issued_at = now or _now()
    payload = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value if hasattr(user.role, 'value') else user.role,
        'iat': int(issued_at.timestamp()),
        'exp': int((issued_at + timedelta(seconds=settings.auth_cookie_max_age_seconds)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def verify_token(token: str | None) -> dict | None:
    if not token:
        return None
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as exc:
        logger.info('Rejected session token: %s', exc)
        return None


def should_renew_token(payload: dict, *, now: datetime | None = None) -> bool:
    expires_at = payload.get('exp')
    if not expires_at:
        return False
    remaining = expires_at - (now or _now()).timestamp()
    return remaining < settings.auth_renewal_threshold_seconds


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        domain=settings.auth_cookie_domain,
        max_age=settings.auth_cookie_max_age_seconds,
        path='/',
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.auth_cookie_name,
        path='/',
        domain=settings.auth_cookie_domain,
        secure=settings.auth_cookie_secure,
        httponly=True,
        samesite=settings.auth_cookie_samesite,
    )


def install_auth_session_middleware(app: FastAPI) -> None:
    @app.middleware('http')
    async def auth_session_middleware(request: Request, call_next):
        request.state.token_payload = verify_token(request.cookies.get(settings.auth_cookie_name))
        request.state.principal = None

        response = await call_next(request)

        # Only re-issue once a route has confirmed the user still exists and is active.
        principal = getattr(request.state, 'principal', None)
        payload = request.state.token_payload
        if principal is not None and principal.user is not None and payload and should_renew_token(payload):
            set_auth_cookie(response, issue_token(principal.user))
            logger.info('Session renewed for user %s', principal.user.id)
        return response

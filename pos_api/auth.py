from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from pos_api.db import get_db
from pos_api.models import User, UserRole
from pos_api.security.api_key import ApiKeyNotConfigured, extract_api_key, has_valid_api_key

logger = logging.getLogger(__name__)


@dataclass
class Principal:
    id: int | None
    email: str | None
    role: UserRole
    active: bool
    user: User | None = None

    @property
    def via_api_key(self) -> bool:
        return self.user is None


API_KEY_PRINCIPAL = Principal(id=None, email=None, role=UserRole.ADMIN, active=True)


def _check_api_key(request: Request) -> bool:
    try:
        return has_valid_api_key(request)
    except ApiKeyNotConfigured as exc:
        logger.error('API key check failed: %s', exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail='Server misconfiguration') from exc


def _load_session_principal(request: Request, db: Session) -> Principal | None:
    payload = getattr(request.state, 'token_payload', None)
    if not payload:
        return None
    try:
        user_id = int(payload.get('sub'))
    except (TypeError, ValueError):
        return None
    user = db.get(User, user_id)
    if not user or not user.active:
        return None
    return Principal(id=user.id, email=user.email, role=user.role, active=user.active, user=user)


def require_api_key(request: Request) -> Principal:
    if not _check_api_key(request):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Unauthorized: Invalid API Key')
    request.state.principal = API_KEY_PRINCIPAL
    return API_KEY_PRINCIPAL


def require_staff(request: Request, db: Session = Depends(get_db)) -> Principal:
    """Accept either the admin API key or a dashboard session cookie."""
    if extract_api_key(request):
        return require_api_key(request)

    principal = _load_session_principal(request, db)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='No autenticado.')
    request.state.principal = principal
    return principal


def require_session_user(request: Request, db: Session = Depends(get_db)) -> Principal:
    principal = _load_session_principal(request, db)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='No autenticado.')
    request.state.principal = principal
    return principal

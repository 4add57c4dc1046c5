from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pos_api.auth import Principal, require_session_user
from pos_api.db import get_db
from pos_api.dependencies import get_client_ip
from pos_api.models import User
from pos_api.schemas import LoginRequest, serialize_user
from pos_api.security.passwords import verify_password
from pos_api.security.sessions import clear_auth_cookie, issue_token, set_auth_cookie

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/auth', tags=['auth'])

INVALID_CREDENTIALS = 'Credenciales inválidas.'


@router.post('/login')
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    email = payload.email.lower()
    ip = get_client_ip(request)
    user = db.execute(select(User).where(func.lower(User.email) == email)).scalar_one_or_none()

    if not verify_password(payload.password, user.password_hash if user else None):
        logger.warning('Login failed for %r from %s: bad credentials', email, ip)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)
    if not user.active:
        logger.warning('Login failed for %r from %s: inactive user', email, ip)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    set_auth_cookie(response, issue_token(user))
    logger.info('Login succeeded for user %s from %s', user.id, ip)
    return {'message': 'Login exitoso.', 'user': serialize_user(user)}


@router.post('/logout')
def logout(request: Request, response: Response):
    payload = getattr(request.state, 'token_payload', None)
    clear_auth_cookie(response)
    logger.info('Logout for user %s', payload.get('sub') if payload else '-')
    return {'message': 'Sesión cerrada correctamente.'}


@router.get('/me')
def me(principal: Principal = Depends(require_session_user)):
    return {'user': serialize_user(principal.user)}

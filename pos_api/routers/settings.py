from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from pos_api.auth import Principal, require_staff
from pos_api.db import get_db
from pos_api.dependencies import get_notifier
from pos_api.services.notification_service import NotificationService
from pos_api.services.setting_service import get_public_status, get_settings, update_settings

router = APIRouter(prefix='/settings', tags=['settings'])


@router.get('')
def read_settings(
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return get_settings(db)


@router.patch('')
def patch_settings(
    values: dict[str, Any] = Body(...),
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    try:
        return update_settings(db, values, notifier=notifier)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get('/public/status')
def public_status(db: Session = Depends(get_db)):
    return get_public_status(db)

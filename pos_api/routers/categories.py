from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from pos_api.auth import Principal, require_staff
from pos_api.db import get_db
from pos_api.dependencies import get_notifier
from pos_api.schemas import CategoryRequest, serialize_category
from pos_api.services.category_service import create_category, delete_category, list_categories, rename_category
from pos_api.services.notification_service import NotificationService

router = APIRouter(prefix='/categories', tags=['categories'])


@router.get('')
def categories(
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return list_categories(db)


@router.post('', status_code=status.HTTP_201_CREATED)
def create_category_route(
    payload: CategoryRequest,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    try:
        category = create_category(db, name=payload.name, notifier=notifier)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return serialize_category(category)


@router.patch('/{category_id}')
def rename_category_route(
    category_id: int,
    payload: CategoryRequest,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    try:
        category = rename_category(db, category_id=category_id, name=payload.name, notifier=notifier)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return serialize_category(category)


@router.delete('/{category_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_category_route(
    category_id: int,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    delete_category(db, category_id=category_id, notifier=notifier)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from pos_api.auth import Principal, require_staff
from pos_api.db import get_db
from pos_api.dependencies import get_notifier
from pos_api.schemas import (
    CreateProductRequest,
    ProductActiveRequest,
    UpdateProductRequest,
    serialize_menu,
    serialize_product,
)
from pos_api.services.notification_service import NotificationService
from pos_api.services.product_service import (
    create_product,
    delete_product,
    get_all_products_grouped,
    get_inactive_product_names,
    get_menu,
    set_product_active,
    update_product,
)

router = APIRouter(prefix='/products', tags=['products'])


@router.get('')
def menu(
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return serialize_menu(get_menu(db))


@router.get('/all')
def admin_menu(
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return serialize_menu(get_all_products_grouped(db))


@router.get('/inactive-names')
def inactive_names(db: Session = Depends(get_db)):
    return get_inactive_product_names(db)


@router.post('', status_code=status.HTTP_201_CREATED)
def create_product_route(
    payload: CreateProductRequest,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    try:
        product = create_product(
            db, name=payload.name, price=payload.price, category_id=payload.category_id, notifier=notifier
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return serialize_product(product)


@router.patch('/{product_id}')
def update_product_route(
    product_id: int,
    payload: UpdateProductRequest,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    try:
        product = update_product(
            db, product_id=product_id, changes=payload.model_dump(exclude_unset=True), notifier=notifier
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return serialize_product(product)


@router.patch('/{product_id}/active')
def set_product_active_route(
    product_id: int,
    payload: ProductActiveRequest,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    product = set_product_active(db, product_id=product_id, active=payload.active, notifier=notifier)
    return serialize_product(product)


@router.delete('/{product_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_product_route(
    product_id: int,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    delete_product(db, product_id=product_id, notifier=notifier)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

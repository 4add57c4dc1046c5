from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from pos_api.auth import Principal, require_staff
from pos_api.db import get_db
from pos_api.dependencies import get_notifier, limit_order_creation
from pos_api.models import OrderStatus
from pos_api.schemas import CreateOrderRequest, UpdateStatusRequest, serialize_order
from pos_api.services.notification_service import NotificationService
from pos_api.services.order_service import (
    OrderLineInput,
    create_order,
    get_order,
    list_orders,
    update_order_status,
)

router = APIRouter(prefix='/orders', tags=['orders'])


@router.post('', status_code=status.HTTP_201_CREATED, dependencies=[Depends(limit_order_creation)])
def create_order_route(
    payload: CreateOrderRequest,
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    try:
        order = create_order(
            db,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            pickup_time=payload.pickup_time,
            items=[OrderLineInput(name=item.name, quantity=item.quantity) for item in payload.items],
            notifier=notifier,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {'id': order.id, 'status': order.status.value, 'total': float(order.total)}


@router.get('')
def list_orders_route(
    status_filter: OrderStatus | None = Query(default=None, alias='status'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    result = list_orders(db, status=status_filter, page=page, limit=limit)
    return {
        'data': [serialize_order(order) for order in result['data']],
        'pagination': result['pagination'],
    }


@router.get('/{order_id}')
def get_order_route(
    order_id: int,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return serialize_order(get_order(db, order_id))


@router.patch('/{order_id}/status')
def update_order_status_route(
    order_id: int,
    payload: UpdateStatusRequest,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    try:
        order = update_order_status(db, order_id=order_id, status=payload.status, notifier=notifier)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return serialize_order(order)

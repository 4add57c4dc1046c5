from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from pos_api.errors import NotFoundError
from pos_api.models import Order, OrderItem, OrderStatus, Product
from pos_api.services.notification_service import NotificationService
from pos_api.services.sales_service import create_sale_from_order
from pos_api.services.setting_service import get_settings
from pos_api.services.store_hours_service import check_store_open, parse_hhmm

logger = logging.getLogger(__name__)

BAG_FEE = Decimal('0.10')
PHONE_REQUIRED_ABOVE = Decimal('30')
CENT = Decimal('0.01')

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.RECEIVED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


@dataclass(frozen=True)
class OrderLineInput:
    name: str
    quantity: int


def money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_order_total(lines: Iterable[tuple[Decimal, int]]) -> Decimal:
    """Sum of price x quantity plus the paper bag fee, rounded to cents."""
    subtotal = sum((Decimal(price) * quantity for price, quantity in lines), Decimal('0'))
    return money(subtotal + BAG_FEE)


def validate_transition(current: OrderStatus, requested: OrderStatus) -> None:
    if current in TERMINAL_STATUSES:
        raise ValueError(f'Cannot change status of a {current.value} order')
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise ValueError(f'Invalid status transition from {current.value} to {requested.value}')


def _order_query():
    return select(Order).options(selectinload(Order.items).selectinload(OrderItem.product))


def create_order(
    db: Session,
    *,
    customer_name: str,
    customer_phone: str | None,
    pickup_time: str,
    items: Sequence[OrderLineInput],
    notifier: NotificationService | None = None,
    now: datetime | None = None,
) -> Order:
    customer_name = (customer_name or '').strip()
    if not customer_name:
        raise ValueError('Customer name is required')
    customer_phone = (customer_phone or '').strip() or None
    try:
        parse_hhmm(pickup_time)
    except ValueError as exc:
        raise ValueError('Invalid pickup time') from exc

    verdict = check_store_open(get_settings(db), now=now, target_time=pickup_time)
    if not verdict.open:
        raise ValueError(verdict.reason)

    if not items:
        raise ValueError('Order must contain at least one item')
    for item in items:
        if item.quantity <= 0:
            raise ValueError(f'Quantity must be positive for {item.name}')

    names = {item.name for item in items}
    products = {
        product.name: product
        for product in db.execute(
            select(Product).where(Product.name.in_(names), Product.active.is_(True))
        ).scalars()
    }
    if names - products.keys():
        raise ValueError('Some products are invalid or inactive')

    total = compute_order_total((products[item.name].price, item.quantity) for item in items)
    if total > PHONE_REQUIRED_ABOVE and not customer_phone:
        raise ValueError('Customer phone required for orders over 30€')

    order = Order(
        customer_name=customer_name,
        customer_phone=customer_phone,
        pickup_time=pickup_time,
        status=OrderStatus.RECEIVED,
        total=total,
        items=[
            OrderItem(product_id=products[item.name].id, quantity=item.quantity, price=products[item.name].price)
            for item in items
        ],
    )
    try:
        db.add(order)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info('Order created: %s customer=%r pickup=%s total=%s', order.id, customer_name, pickup_time, total)
    if notifier is not None:
        notifier.notify_orders_updated()
    return get_order(db, order.id)


def get_order(db: Session, order_id: int) -> Order:
    order = db.execute(_order_query().where(Order.id == order_id)).scalar_one_or_none()
    if not order:
        raise NotFoundError('Order not found')
    return order


def list_orders(db: Session, *, status: OrderStatus | None = None, page: int = 1, limit: int = 10) -> dict:
    if page < 1 or limit < 1:
        raise ValueError('Page and limit must be positive')

    conditions = [Order.status == status] if status else []
    total = db.execute(select(func.count(Order.id)).where(*conditions)).scalar_one()
    orders = db.execute(
        _order_query()
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()
    return {
        'data': list(orders),
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': math.ceil(total / limit),
        },
    }


def update_order_status(
    db: Session,
    *,
    order_id: int,
    status: OrderStatus | str,
    notifier: NotificationService | None = None,
) -> Order:
    try:
        requested = OrderStatus(status)
    except ValueError as exc:
        raise ValueError('Invalid status value') from exc

    order = db.execute(select(Order).where(Order.id == order_id).with_for_update()).scalar_one_or_none()
    if not order:
        raise NotFoundError('Order not found')

    current = order.status
    try:
        validate_transition(current, requested)
    except ValueError:
        db.rollback()
        raise

    order.status = requested
    db.commit()
    logger.info('Order status updated: %s - %s -> %s', order_id, current.value, requested.value)

    if requested == OrderStatus.DELIVERED:
        try:
            create_sale_from_order(db, order_id=order_id)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception('Failed to create sale from order %s', order_id)

    if notifier is not None:
        notifier.notify_orders_updated()
    return get_order(db, order_id)

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from pos_api.clock import local_midnight, local_to_utc, local_today, utc_now
from pos_api.errors import NotFoundError
from pos_api.models import Order, OrderStatus, Product, Sale, SaleItem, SaleSource

logger = logging.getLogger(__name__)

PERIODS = ('day', 'week', 'month', 'custom')
UNCATEGORIZED = 'Sin categoría'
TOP_CUSTOMERS_LIMIT = 5
CENT = Decimal('0.01')


@dataclass(frozen=True)
class SaleLineInput:
    product_id: int
    quantity: int


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _amount(value: Decimal) -> float:
    return float(_money(value))


def _sale_query():
    return select(Sale).options(
        selectinload(Sale.items).selectinload(SaleItem.product).selectinload(Product.category),
        selectinload(Sale.related_order),
    )


def create_sale_from_order(db: Session, *, order_id: int) -> Sale:
    existing = db.execute(select(Sale).where(Sale.related_order_id == order_id)).scalar_one_or_none()
    if existing:
        logger.info('Sale %s already recorded for order %s', existing.id, order_id)
        return existing

    order = db.execute(
        select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
    ).scalar_one_or_none()
    if not order:
        raise NotFoundError('Order not found')
    if order.status != OrderStatus.DELIVERED:
        raise ValueError('Only delivered orders can be recorded as sales')

    sale = Sale(
        date=utc_now(),
        source=SaleSource.ORDER,
        related_order_id=order.id,
        total_amount=order.total,
        items=[
            SaleItem(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.price,
                total_price=_money(item.price * item.quantity),
            )
            for item in order.items
        ],
    )
    db.add(sale)
    db.flush()
    logger.info('Sale %s created from order %s total=%s', sale.id, order.id, sale.total_amount)
    return sale


def create_manual_sale(
    db: Session,
    *,
    items: Sequence[SaleLineInput],
    sale_date: datetime | None = None,
    notes: str | None = None,
) -> Sale:
    if not items:
        raise ValueError('Sale must contain at least one item')
    for item in items:
        if item.quantity <= 0:
            raise ValueError(f'Quantity must be positive for product {item.product_id}')

    product_ids = {item.product_id for item in items}
    products = {
        product.id: product
        for product in db.execute(select(Product).where(Product.id.in_(product_ids))).scalars()
    }
    missing = sorted(product_ids - products.keys())
    if missing:
        raise ValueError(f'Product {missing[0]} not found')

    sale_items = [
        SaleItem(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=products[item.product_id].price,
            total_price=_money(products[item.product_id].price * item.quantity),
        )
        for item in items
    ]
    sale = Sale(
        date=local_to_utc(sale_date) if sale_date else utc_now(),
        source=SaleSource.MANUAL,
        total_amount=_money(sum((line.total_price for line in sale_items), Decimal('0'))),
        notes=notes.strip() if notes and notes.strip() else None,
        items=sale_items,
    )
    db.add(sale)
    db.flush()
    logger.info('Manual sale %s created total=%s', sale.id, sale.total_amount)
    return sale


def get_sale(db: Session, sale_id: int) -> Sale:
    sale = db.execute(_sale_query().where(Sale.id == sale_id)).scalar_one_or_none()
    if not sale:
        raise NotFoundError('Sale not found')
    return sale


def list_sales(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    source: SaleSource | None = None,
) -> list[Sale]:
    conditions = []
    if date_from:
        conditions.append(Sale.date >= local_midnight(date_from).astimezone(timezone.utc))
    if date_to:
        conditions.append(Sale.date < local_midnight(date_to + timedelta(days=1)).astimezone(timezone.utc))
    if source:
        conditions.append(Sale.source == source)
    return list(
        db.execute(_sale_query().where(*conditions).order_by(Sale.date.desc(), Sale.id.desc())).scalars().all()
    )


def period_range(
    period: str,
    base_date: date,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
) -> tuple[datetime, datetime]:
    """Return the store-local ``[start, end)`` range for a reporting period."""
    if period == 'day':
        start_day, end_day = base_date, base_date + timedelta(days=1)
    elif period == 'week':
        # Weeks start on Monday.
        start_day = base_date - timedelta(days=base_date.weekday())
        end_day = start_day + timedelta(days=7)
    elif period == 'month':
        start_day = base_date.replace(day=1)
        end_day = (start_day + timedelta(days=32)).replace(day=1)
    elif period == 'custom':
        if not date_from:
            raise ValueError('Custom period requires a from date')
        start_day = date_from
        end_day = (date_to or date_from) + timedelta(days=1)
        if end_day <= start_day:
            raise ValueError('The to date must not be before the from date')
    else:
        raise ValueError(f'Invalid period type: {period}')
    return local_midnight(start_day), local_midnight(end_day)


def previous_range(period: str, start: datetime, end: datetime) -> tuple[datetime, datetime]:
    if period == 'month':
        prev_start_day = (start.date() - timedelta(days=1)).replace(day=1)
        return local_midnight(prev_start_day), start
    length_days = (end.date() - start.date()).days
    prev_start_day = start.date() - timedelta(days=length_days)
    return local_midnight(prev_start_day), start


def _sales_between(db: Session, start: datetime, end: datetime, source: SaleSource | None) -> list[Sale]:
    conditions = [Sale.date >= start.astimezone(timezone.utc), Sale.date < end.astimezone(timezone.utc)]
    if source:
        conditions.append(Sale.source == source)
    return list(db.execute(_sale_query().where(*conditions)).scalars().all())


def _totals(sales: Sequence[Sale]) -> dict:
    total_sales = sum((sale.total_amount for sale in sales), Decimal('0'))
    total_orders = len(sales)
    average = total_sales / total_orders if total_orders else Decimal('0')
    return {
        'totalSales': _amount(total_sales),
        'totalOrders': total_orders,
        'averageOrderValue': _amount(average),
    }


def _count_orders(db: Session, status: OrderStatus, start: datetime, end: datetime) -> int:
    return db.execute(
        select(func.count(Order.id)).where(
            Order.status == status,
            Order.created_at >= start.astimezone(timezone.utc),
            Order.created_at < end.astimezone(timezone.utc),
        )
    ).scalar_one()


def get_aggregated_sales(
    db: Session,
    *,
    period: str = 'day',
    base_date: date | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    source: SaleSource | None = None,
    now: datetime | None = None,
) -> dict:
    start, end = period_range(period, base_date or local_today(now), date_from=date_from, date_to=date_to)
    sales = _sales_between(db, start, end, source)

    units: dict[int, dict] = {}
    revenue: dict[int, dict] = {}
    categories: dict[int | None, dict] = {}
    customers: dict[str, dict] = defaultdict(lambda: {'orders': 0, 'revenue': Decimal('0')})

    for sale in sales:
        if sale.related_order is not None:
            entry = customers[sale.related_order.customer_name]
            entry['orders'] += 1
            entry['revenue'] += sale.total_amount
        for item in sale.items:
            product = item.product
            units.setdefault(item.product_id, {'name': product.name, 'quantity': 0})['quantity'] += item.quantity
            revenue.setdefault(item.product_id, {'name': product.name, 'revenue': Decimal('0')})[
                'revenue'
            ] += item.total_price
            category = categories.setdefault(
                product.category_id,
                {
                    'name': product.category.name if product.category else UNCATEGORIZED,
                    'units': 0,
                    'revenue': Decimal('0'),
                },
            )
            category['units'] += item.quantity
            category['revenue'] += item.total_price

    top_by_units = None
    if units:
        product_id, info = max(units.items(), key=lambda pair: pair[1]['quantity'])
        top_by_units = {'productId': product_id, 'name': info['name'], 'quantity': info['quantity']}
    top_by_revenue = None
    if revenue:
        product_id, info = max(revenue.items(), key=lambda pair: pair[1]['revenue'])
        top_by_revenue = {'productId': product_id, 'name': info['name'], 'revenue': _amount(info['revenue'])}

    totals = _totals(sales)
    delivered = _count_orders(db, OrderStatus.DELIVERED, start, end)
    cancelled = _count_orders(db, OrderStatus.CANCELLED, start, end)
    conversion_rate = round(delivered / (delivered + cancelled) * 100, 2) if delivered + cancelled else 0
    days_in_range = max(1, (end.date() - start.date()).days)

    prev_start, prev_end = previous_range(period, start, end)
    previous = _totals(_sales_between(db, prev_start, prev_end, source))

    logger.info(
        'Sales aggregate: type=%s range=[%s - %s) total=%s orders=%s',
        period,
        start.isoformat(),
        end.isoformat(),
        totals['totalSales'],
        totals['totalOrders'],
    )
    return {
        'type': period,
        'start': start.isoformat(),
        'end': (end - timedelta(milliseconds=1)).isoformat(timespec='milliseconds'),
        **totals,
        'topProductByUnits': top_by_units,
        'topProductByRevenue': top_by_revenue,
        'categories': sorted(
            (
                {'categoryId': category_id, 'name': v['name'], 'units': v['units'], 'revenue': _amount(v['revenue'])}
                for category_id, v in categories.items()
            ),
            key=lambda row: row['revenue'],
            reverse=True,
        ),
        'conversionRate': conversion_rate,
        'purchaseFrequencyPerDay': round(totals['totalOrders'] / days_in_range, 2),
        'topCustomers': sorted(
            (
                {'customerName': name, 'orders': v['orders'], 'revenue': _amount(v['revenue'])}
                for name, v in customers.items()
            ),
            key=lambda row: row['revenue'],
            reverse=True,
        )[:TOP_CUSTOMERS_LIMIT],
        'previous': previous,
    }


def get_today_sales(db: Session, *, now: datetime | None = None) -> dict:
    today = local_today(now)
    start, end = period_range('day', today)
    sales = _sales_between(db, start, end, None)

    quantities: dict[int, dict] = {}
    for sale in sales:
        for item in sale.items:
            quantities.setdefault(item.product_id, {'name': item.product.name, 'quantity': 0})[
                'quantity'
            ] += item.quantity

    totals = _totals(sales)
    result = {
        'date': today.isoformat(),
        'totalRevenue': totals['totalSales'],
        'totalOrders': totals['totalOrders'],
        'averageOrderValue': totals['averageOrderValue'],
        'topProducts': sorted(
            (
                {'productId': product_id, 'name': info['name'], 'quantity': info['quantity']}
                for product_id, info in quantities.items()
            ),
            key=lambda row: row['quantity'],
            reverse=True,
        ),
    }
    logger.info('Sales today: date=%s orders=%s revenue=%s', result['date'], result['totalOrders'], result['totalRevenue'])
    return result

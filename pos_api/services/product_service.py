from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from pos_api.errors import ConflictError, NotFoundError
from pos_api.models import Category, OrderItem, Product, SaleItem
from pos_api.services.category_service import get_category
from pos_api.services.notification_service import NotificationService
from pos_api.services.sort_utils import category_sort_key, normalize_sort_text

logger = logging.getLogger(__name__)


def _validate_name(name: str) -> str:
    cleaned = (name or '').strip()
    if not cleaned:
        raise ValueError('Product name is required')
    if len(cleaned) > 100:
        raise ValueError('Product name is too long')
    return cleaned


def _validate_price(price) -> Decimal:
    value = Decimal(str(price))
    if value <= 0:
        raise ValueError('Price must be greater than zero')
    return value


def _ensure_unique_name(db: Session, name: str, *, exclude_id: int | None = None) -> None:
    query = select(Product.id).where(Product.name == name)
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    if db.execute(query).first():
        raise ConflictError('Product name already exists')


def _grouped_menu(db: Session, *, active_only: bool) -> list[dict]:
    categories = db.execute(select(Category).options(selectinload(Category.products))).scalars().all()
    menu = []
    for category in sorted(categories, key=lambda c: category_sort_key(c.name)):
        products = [p for p in category.products if p.active or not active_only]
        products.sort(key=lambda p: normalize_sort_text(p.name))
        menu.append({'category': category, 'products': products})
    return menu


def get_menu(db: Session) -> list[dict]:
    return _grouped_menu(db, active_only=True)


def get_all_products_grouped(db: Session) -> list[dict]:
    return _grouped_menu(db, active_only=False)


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError('Product not found')
    return product


def create_product(
    db: Session,
    *,
    name: str,
    price,
    category_id: int,
    notifier: NotificationService | None = None,
) -> Product:
    name = _validate_name(name)
    price = _validate_price(price)
    get_category(db, category_id)
    _ensure_unique_name(db, name)

    product = Product(name=name, price=price, category_id=category_id, active=True)
    db.add(product)
    db.commit()
    if notifier is not None:
        notifier.notify_products_updated()
    return product


def update_product(
    db: Session,
    *,
    product_id: int,
    changes: dict,
    notifier: NotificationService | None = None,
) -> Product:
    product = get_product(db, product_id)
    was_active = product.active

    if 'name' in changes and changes['name'] is not None:
        name = _validate_name(changes['name'])
        _ensure_unique_name(db, name, exclude_id=product.id)
        product.name = name
    if 'price' in changes and changes['price'] is not None:
        product.price = _validate_price(changes['price'])
    if 'category_id' in changes and changes['category_id'] is not None:
        get_category(db, changes['category_id'])
        product.category_id = changes['category_id']
    if 'active' in changes and changes['active'] is not None:
        product.active = bool(changes['active'])

    db.commit()
    if product.active != was_active:
        logger.info(
            'AUDIT ProductActiveChange id=%s name=%r from=%s to=%s', product.id, product.name, was_active, product.active
        )
    if notifier is not None:
        notifier.notify_products_updated()
    return product


def set_product_active(
    db: Session, *, product_id: int, active: bool, notifier: NotificationService | None = None
) -> Product:
    return update_product(db, product_id=product_id, changes={'active': active}, notifier=notifier)


def delete_product(db: Session, *, product_id: int, notifier: NotificationService | None = None) -> None:
    product = get_product(db, product_id)
    referenced = db.execute(select(func.count(OrderItem.id)).where(OrderItem.product_id == product.id)).scalar_one()
    referenced += db.execute(select(func.count(SaleItem.id)).where(SaleItem.product_id == product.id)).scalar_one()
    if referenced:
        raise ConflictError('Product is referenced by orders or sales; deactivate it instead')
    name = product.name
    db.delete(product)
    db.commit()
    logger.info('Product deleted id=%s name=%r', product_id, name)
    if notifier is not None:
        notifier.notify_products_updated()


def get_inactive_product_names(db: Session) -> list[str]:
    return list(db.execute(select(Product.name).where(Product.active.is_(False)).order_by(Product.name.asc())).scalars())

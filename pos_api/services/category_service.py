from __future__ import annotations

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from pos_api.errors import ConflictError, NotFoundError
from pos_api.models import Category, Product
from pos_api.services.notification_service import NotificationService
from pos_api.services.sort_utils import category_sort_key


def _clean_name(name: str) -> str:
    cleaned = (name or '').strip()
    if not cleaned:
        raise ValueError('Category name is required')
    if len(cleaned) > 100:
        raise ValueError('Category name is too long')
    return cleaned


def _ensure_unique_name(db: Session, name: str, *, exclude_id: int | None = None) -> None:
    query = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if db.execute(query).first():
        raise ConflictError('Category name already exists')


def get_category(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError('Category not found')
    return category


def list_categories(db: Session) -> list[dict]:
    rows = db.execute(
        select(Category.id, Category.name, func.count(Product.id).label('product_count'))
        .outerjoin(Product, and_(Product.category_id == Category.id, Product.active.is_(True)))
        .group_by(Category.id, Category.name)
    ).all()
    rows = sorted(rows, key=lambda row: category_sort_key(row.name))
    return [{'id': row.id, 'name': row.name, 'productCount': row.product_count} for row in rows]


def create_category(db: Session, *, name: str, notifier: NotificationService | None = None) -> Category:
    name = _clean_name(name)
    _ensure_unique_name(db, name)
    category = Category(name=name)
    db.add(category)
    db.commit()
    if notifier is not None:
        notifier.notify_products_updated()
    return category


def rename_category(
    db: Session, *, category_id: int, name: str, notifier: NotificationService | None = None
) -> Category:
    category = get_category(db, category_id)
    name = _clean_name(name)
    _ensure_unique_name(db, name, exclude_id=category.id)
    category.name = name
    db.commit()
    if notifier is not None:
        notifier.notify_products_updated()
    return category


def delete_category(db: Session, *, category_id: int, notifier: NotificationService | None = None) -> None:
    category = get_category(db, category_id)
    in_use = db.execute(select(func.count(Product.id)).where(Product.category_id == category.id)).scalar_one()
    if in_use:
        raise ConflictError('Category still has products; move or delete them first')
    db.delete(category)
    db.commit()
    if notifier is not None:
        notifier.notify_products_updated()

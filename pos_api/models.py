from __future__ import annotations

import uuid
from datetime import date as calendar_date
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
IdType = BigInteger().with_variant(Integer(), 'sqlite')
Money = Numeric(10, 2)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


class Base(DeclarativeBase):
    pass


class OrderStatus(str, Enum):
    RECEIVED = 'RECEIVED'
    PREPARING = 'PREPARING'
    READY = 'READY'
    DELIVERED = 'DELIVERED'
    CANCELLED = 'CANCELLED'


class SaleSource(str, Enum):
    ORDER = 'ORDER'
    MANUAL = 'MANUAL'


class ExpenseCategory(str, Enum):
    FOOD = 'FOOD'
    DRINKS = 'DRINKS'
    SUPPLIES = 'SUPPLIES'
    RENT = 'RENT'
    UTILITIES = 'UTILITIES'
    MAINTENANCE = 'MAINTENANCE'
    OTHER = 'OTHER'


class SettingType(str, Enum):
    STRING = 'string'
    NUMBER = 'number'
    BOOLEAN = 'boolean'
    JSON = 'json'


class UserRole(str, Enum):
    ADMIN = 'ADMIN'
    EMPLOYEE = 'EMPLOYEE'


class Category(Base):
    __tablename__ = 'categories'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )

    products: Mapped[list[Product]] = relationship(back_populates='category')


class Product(Base):
    __tablename__ = 'products'
    __table_args__ = (CheckConstraint('price > 0', name='ck_products_price_positive'),)

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    category_id: Mapped[int] = mapped_column(IdType, ForeignKey('categories.id'), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now, server_default=func.now()
    )

    category: Mapped[Category] = relationship(back_populates='products')


class Order(Base):
    __tablename__ = 'orders'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus, name='order_status'),
        nullable=False,
        default=OrderStatus.RECEIVED,
        server_default='RECEIVED',
    )
    customer_name: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_phone: Mapped[str | None] = mapped_column(String(20))
    pickup_time: Mapped[str] = mapped_column(String(5), nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now, server_default=func.now()
    )

    items: Mapped[list[OrderItem]] = relationship(
        back_populates='order', cascade='all, delete-orphan', order_by='OrderItem.id'
    )


class OrderItem(Base):
    __tablename__ = 'order_items'
    __table_args__ = (CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),)

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    order_id: Mapped[int] = mapped_column(IdType, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int] = mapped_column(IdType, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    order: Mapped[Order] = relationship(back_populates='items')
    product: Mapped[Product] = relationship()


class Sale(Base):
    __tablename__ = 'sales'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now, index=True)
    source: Mapped[SaleSource] = mapped_column(SQLEnum(SaleSource, name='sale_source'), nullable=False)
    related_order_id: Mapped[int | None] = mapped_column(IdType, ForeignKey('orders.id'), unique=True)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )

    items: Mapped[list[SaleItem]] = relationship(
        back_populates='sale', cascade='all, delete-orphan', order_by='SaleItem.id'
    )
    related_order: Mapped[Order | None] = relationship()


class SaleItem(Base):
    __tablename__ = 'sale_items'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    sale_id: Mapped[int] = mapped_column(IdType, ForeignKey('sales.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int] = mapped_column(IdType, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    sale: Mapped[Sale] = relationship(back_populates='items')
    product: Mapped[Product] = relationship()


class Invoice(Base):
    __tablename__ = 'invoices'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    date: Mapped[calendar_date] = mapped_column(Date, nullable=False, index=True)
    supplier: Mapped[str] = mapped_column(Text, nullable=False)
    reference: Mapped[str | None] = mapped_column(Text)
    category: Mapped[ExpenseCategory] = mapped_column(
        SQLEnum(ExpenseCategory, name='expense_category'), nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )

    items: Mapped[list[InvoiceItem]] = relationship(
        back_populates='invoice', cascade='all, delete-orphan', order_by='InvoiceItem.id'
    )


class InvoiceItem(Base):
    __tablename__ = 'invoice_items'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    invoice_id: Mapped[str] = mapped_column(String(36), ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    invoice: Mapped[Invoice] = relationship(back_populates='items')


class Setting(Base):
    __tablename__ = 'settings'

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False, default=SettingType.STRING.value)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now, server_default=func.now()
    )


class User(Base):
    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name='user_role'), nullable=False, default=UserRole.EMPLOYEE, server_default='EMPLOYEE'
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, server_default=func.now()
    )

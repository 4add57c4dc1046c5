"""Request bodies and response serializers.

Request models accept the camelCase field names the dashboard sends.
Responses are plain dicts built by the ``serialize_*`` helpers so money goes
out as JSON numbers and timestamps as ISO-8601 UTC strings.
"""
from __future__ import annotations

from datetime import date as calendar_date
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pos_api.clock import as_utc
from pos_api.models import (
    Category,
    ExpenseCategory,
    Invoice,
    Order,
    OrderStatus,
    Product,
    Sale,
    SaleSource,
    User,
)
from pos_api.services.store_hours_service import is_order_delayed, parse_hhmm


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class OrderItemIn(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    quantity: int = Field(gt=0, le=20)


class CreateOrderRequest(CamelModel):
    customer_name: str = Field(alias='customerName', min_length=1, max_length=50)
    customer_phone: str | None = Field(default=None, alias='customerPhone', min_length=7, max_length=20)
    pickup_time: str = Field(alias='pickupTime')
    items: list[OrderItemIn] = Field(min_length=1)

    @field_validator('pickup_time')
    @classmethod
    def _valid_pickup_time(cls, value: str) -> str:
        try:
            parse_hhmm(value)
        except ValueError as exc:
            raise ValueError('Invalid pickup time') from exc
        return value


class UpdateStatusRequest(CamelModel):
    status: OrderStatus


class CreateProductRequest(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(gt=0)
    category_id: int = Field(alias='categoryId', gt=0)


class UpdateProductRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    price: Decimal | None = Field(default=None, gt=0)
    active: bool | None = None
    category_id: int | None = Field(default=None, alias='categoryId', gt=0)


class ProductActiveRequest(CamelModel):
    active: bool


class CategoryRequest(CamelModel):
    name: str = Field(min_length=1, max_length=100)


class InvoiceItemIn(CamelModel):
    description: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(alias='unitPrice', gt=0)


class CreateInvoiceRequest(CamelModel):
    date: calendar_date
    supplier: str = Field(min_length=1)
    reference: str | None = None
    category: ExpenseCategory
    notes: str | None = None
    items: list[InvoiceItemIn] = Field(min_length=1)


class ManualSaleItemIn(CamelModel):
    product_id: int = Field(alias='productId', gt=0)
    quantity: int = Field(gt=0)


class ManualSaleRequest(CamelModel):
    date: datetime | None = None
    items: list[ManualSaleItemIn] = Field(min_length=1)
    notes: str | None = None


class LoginRequest(CamelModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


def _amount(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _timestamp(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def serialize_order(order: Order, *, now: datetime | None = None) -> dict:
    return {
        'id': order.id,
        'status': order.status.value,
        'total': _amount(order.total),
        'createdAt': _timestamp(order.created_at),
        'updatedAt': _timestamp(order.updated_at),
        'customerName': order.customer_name,
        'customerPhone': order.customer_phone,
        'pickupTime': order.pickup_time,
        'delayed': is_order_delayed(order.pickup_time, order.status, now=now),
        'items': [
            {
                'productId': item.product_id,
                'name': item.product.name if item.product else '',
                'quantity': item.quantity,
                'price': _amount(item.price),
            }
            for item in order.items
        ],
    }


def serialize_product(product: Product) -> dict:
    return {
        'id': product.id,
        'name': product.name,
        'price': _amount(product.price),
        'categoryId': product.category_id,
        'active': product.active,
    }


def serialize_category(category: Category) -> dict:
    return {'id': category.id, 'name': category.name}


def serialize_menu(menu: list[dict]) -> list[dict]:
    return [
        {
            'id': entry['category'].id,
            'name': entry['category'].name,
            'products': [serialize_product(product) for product in entry['products']],
        }
        for entry in menu
    ]


def serialize_sale(sale: Sale) -> dict:
    return {
        'id': sale.id,
        'date': _timestamp(sale.date),
        'source': sale.source.value if isinstance(sale.source, SaleSource) else sale.source,
        'relatedOrderId': sale.related_order_id,
        'totalAmount': _amount(sale.total_amount),
        'notes': sale.notes,
        'createdAt': _timestamp(sale.created_at),
        'items': [
            {
                'id': item.id,
                'productId': item.product_id,
                'name': item.product.name if item.product else '',
                'quantity': item.quantity,
                'unitPrice': _amount(item.unit_price),
                'totalPrice': _amount(item.total_price),
            }
            for item in sale.items
        ],
    }


def serialize_invoice(invoice: Invoice) -> dict:
    return {
        'id': invoice.id,
        'date': invoice.date.isoformat(),
        'supplier': invoice.supplier,
        'reference': invoice.reference,
        'category': invoice.category.value,
        'notes': invoice.notes,
        'totalAmount': _amount(invoice.total_amount),
        'createdAt': _timestamp(invoice.created_at),
        'items': [
            {
                'id': item.id,
                'description': item.description,
                'quantity': item.quantity,
                'unitPrice': _amount(item.unit_price),
                'totalPrice': _amount(item.total_price),
            }
            for item in invoice.items
        ],
    }


def serialize_user(user: User) -> dict:
    return {
        'id': user.id,
        'email': user.email,
        'name': user.name,
        'role': user.role.value,
    }

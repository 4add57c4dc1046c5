from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from pos_api.errors import NotFoundError
from pos_api.models import ExpenseCategory, Invoice, InvoiceItem

CENT = Decimal('0.01')


@dataclass(frozen=True)
class InvoiceLineInput:
    description: str
    quantity: int
    unit_price: Decimal


def _line_total(quantity: int, unit_price: Decimal) -> Decimal:
    return (Decimal(unit_price) * quantity).quantize(CENT, rounding=ROUND_HALF_UP)


def create_invoice(
    db: Session,
    *,
    invoice_date: date,
    supplier: str,
    category: ExpenseCategory,
    items: Sequence[InvoiceLineInput],
    reference: str | None = None,
    notes: str | None = None,
) -> Invoice:
    supplier = (supplier or '').strip()
    if not supplier:
        raise ValueError('Supplier is required')
    if not items:
        raise ValueError('At least one item is required')

    lines = []
    for item in items:
        description = (item.description or '').strip()
        if not description:
            raise ValueError('Item description is required')
        if item.quantity <= 0:
            raise ValueError('Item quantity must be greater than zero')
        if Decimal(item.unit_price) <= 0:
            raise ValueError('Item unit price must be greater than zero')
        lines.append(
            InvoiceItem(
                description=description,
                quantity=item.quantity,
                unit_price=Decimal(item.unit_price),
                total_price=_line_total(item.quantity, item.unit_price),
            )
        )

    invoice = Invoice(
        date=invoice_date,
        supplier=supplier,
        reference=(reference or '').strip() or None,
        category=category,
        notes=(notes or '').strip() or None,
        total_amount=sum((line.total_price for line in lines), Decimal('0')),
        items=lines,
    )
    db.add(invoice)
    db.flush()
    return invoice


def list_invoices(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    category: ExpenseCategory | None = None,
) -> dict:
    conditions = []
    if date_from:
        conditions.append(Invoice.date >= date_from)
    if date_to:
        conditions.append(Invoice.date <= date_to)
    if category:
        conditions.append(Invoice.category == category)

    invoices = db.execute(
        select(Invoice)
        .options(selectinload(Invoice.items))
        .where(*conditions)
        .order_by(Invoice.date.desc(), Invoice.created_at.desc())
    ).scalars().all()
    return {
        'invoices': list(invoices),
        'totalExpenses': sum((invoice.total_amount for invoice in invoices), Decimal('0')),
        'count': len(invoices),
    }


def get_invoice(db: Session, invoice_id: str) -> Invoice:
    invoice = db.execute(
        select(Invoice).options(selectinload(Invoice.items)).where(Invoice.id == invoice_id)
    ).scalar_one_or_none()
    if not invoice:
        raise NotFoundError('Invoice not found')
    return invoice


def delete_invoice(db: Session, *, invoice_id: str) -> None:
    invoice = get_invoice(db, invoice_id)
    db.delete(invoice)
    db.flush()

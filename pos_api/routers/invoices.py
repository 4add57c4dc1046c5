from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from pos_api.ai.invoice_ai_service import InvoiceAiService
from pos_api.auth import Principal, require_staff
from pos_api.config import settings
from pos_api.db import get_db
from pos_api.models import ExpenseCategory
from pos_api.routers.uploads import read_scan_upload
from pos_api.schemas import CreateInvoiceRequest, serialize_invoice
from pos_api.services.invoice_service import (
    InvoiceLineInput,
    create_invoice,
    delete_invoice,
    get_invoice,
    list_invoices,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/invoices', tags=['invoices'])
invoice_ai = InvoiceAiService()


@router.post('/scan')
def scan_invoice(
    file: UploadFile | None = File(default=None),
    language: str | None = Form(default=None),
    _: Principal = Depends(require_staff),
):
    content = read_scan_upload(file)
    logger.info('Processing invoice scan: %s (%s bytes)', file.filename, len(content))
    if not invoice_ai.llm.is_available():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                'error': 'Ollama LLM service is not available. Make sure Ollama is running.',
                'hint': 'Start Ollama with: ollama serve',
            },
        )
    return invoice_ai.process_invoice(content, language or settings.ocr_language)


@router.get('/scan/status')
def scan_status(_: Principal = Depends(require_staff)):
    return {
        'environment': settings.environment,
        'services': invoice_ai.check_services(),
        'ollamaUrl': invoice_ai.llm.base_url,
        'ollamaModel': invoice_ai.llm.model,
    }


@router.post('', status_code=status.HTTP_201_CREATED)
def create_invoice_route(
    payload: CreateInvoiceRequest,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        invoice = create_invoice(
            db,
            invoice_date=payload.date,
            supplier=payload.supplier,
            category=payload.category,
            reference=payload.reference,
            notes=payload.notes,
            items=[
                InvoiceLineInput(description=item.description, quantity=item.quantity, unit_price=item.unit_price)
                for item in payload.items
            ],
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    db.commit()
    logger.info('Invoice %s created supplier=%r total=%s', invoice.id, invoice.supplier, invoice.total_amount)
    return serialize_invoice(invoice)


@router.get('')
def list_invoices_route(
    date_from: date | None = Query(default=None, alias='from'),
    date_to: date | None = Query(default=None, alias='to'),
    category: ExpenseCategory | None = Query(default=None),
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    result = list_invoices(db, date_from=date_from, date_to=date_to, category=category)
    return {
        'invoices': [serialize_invoice(invoice) for invoice in result['invoices']],
        'totalExpenses': float(result['totalExpenses']),
        'count': result['count'],
    }


@router.get('/{invoice_id}')
def get_invoice_route(
    invoice_id: str,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return serialize_invoice(get_invoice(db, invoice_id))


@router.delete('/{invoice_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice_route(
    invoice_id: str,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    delete_invoice(db, invoice_id=invoice_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

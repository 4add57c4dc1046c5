from __future__ import annotations

import logging
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from pos_api.ai.sales_ai_service import SalesAiService
from pos_api.auth import Principal, require_staff
from pos_api.config import settings
from pos_api.db import get_db
from pos_api.models import SaleSource
from pos_api.routers.uploads import read_scan_upload
from pos_api.schemas import ManualSaleRequest, serialize_sale
from pos_api.services.sales_service import (
    SaleLineInput,
    create_manual_sale,
    get_aggregated_sales,
    get_sale,
    get_today_sales,
    list_sales,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/sales', tags=['sales'])
sales_ai = SalesAiService()


@router.get('/today')
def today(
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return get_today_sales(db)


@router.get('/stats')
def stats(
    period: Literal['day', 'week', 'month', 'custom'] = Query(default='day', alias='type'),
    base_date: date | None = Query(default=None, alias='date'),
    date_from: date | None = Query(default=None, alias='from'),
    date_to: date | None = Query(default=None, alias='to'),
    source: SaleSource | None = Query(default=None),
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        return get_aggregated_sales(
            db, period=period, base_date=base_date, date_from=date_from, date_to=date_to, source=source
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/manual', status_code=status.HTTP_201_CREATED)
def create_manual_sale_route(
    payload: ManualSaleRequest,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    try:
        sale = create_manual_sale(
            db,
            items=[SaleLineInput(product_id=item.product_id, quantity=item.quantity) for item in payload.items],
            sale_date=payload.date,
            notes=payload.notes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    db.commit()
    return serialize_sale(get_sale(db, sale.id))


@router.post('/scan')
def scan_sales_ticket(
    file: UploadFile | None = File(default=None),
    language: str | None = Form(default=None),
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    content = read_scan_upload(file)
    logger.info('Processing sales ticket scan: %s (%s bytes)', file.filename, len(content))
    if not sales_ai.llm.is_available():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                'error': 'Ollama LLM service is not available. Make sure Ollama is running.',
                'hint': 'Start Ollama with: ollama serve',
            },
        )
    return sales_ai.process_sales_ticket(db, content, language or settings.ocr_language)


@router.get('/scan/status')
def scan_status(
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return sales_ai.check_status(db)


@router.get('')
def list_sales_route(
    date_from: date | None = Query(default=None, alias='from'),
    date_to: date | None = Query(default=None, alias='to'),
    source: SaleSource | None = Query(default=None),
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return [serialize_sale(sale) for sale in list_sales(db, date_from=date_from, date_to=date_to, source=source)]


@router.get('/{sale_id}')
def get_sale_route(
    sale_id: int,
    _: Principal = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return serialize_sale(get_sale(db, sale_id))

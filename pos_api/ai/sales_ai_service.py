from __future__ import annotations

import json
import logging
import time
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from pos_api.ai import ocr_service
from pos_api.ai.llm_service import LlmError, LlmService
from pos_api.ai.normalize import clean_text, normalize_date, normalize_money, normalize_quantity
from pos_api.models import Product

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
TOTAL_TOLERANCE = Decimal('0.10')
UNCATEGORIZED = 'Sin categoría'

SALES_PROMPT = """Ayuda a deducir qué productos se vendieron a partir del texto OCR de un ticket de un asador.
Tienes la lista de productos del negocio con sus precios reales.

1. Detecta el TOTAL del ticket (busca TOTAL, Importe, Pagar o el número mayor al final).
2. Detecta la FECHA si aparece.
3. Identifica productos:
   - Si un importe coincide exactamente con el precio de un producto, asígnalo.
   - Si no coincide, descompónlo en un producto principal cercano por debajo más un complemento barato.
   - Cada ticket incluye una bolsa de papel de 0.10€ que no es un producto de la lista.
4. No inventes precios ni descuentos. Usa solo productos de la lista, con su productId.
5. Si el OCR perdió la coma decimal, "2350" es 23.50.

Devuelve SOLO JSON con esta forma:
{{"totalDetected": 23.50, "dateDetected": "2026-01-15",
 "suggestedItems": [{{"productId": 1, "name": "Pollo Asado", "quantity": 1, "unitPrice": 11.80}}],
 "approximateTotal": 23.50, "confidence": 0.7, "notes": "texto breve"}}

PRODUCTOS:
{products}

TEXTO OCR DEL TICKET:
"""


def _empty_result(error: str | None = None, *, raw_text: str = '', confidence: float = 0.0, notes: str | None = None) -> dict:
    result = {
        'success': error is None,
        'totalDetected': None,
        'dateDetected': None,
        'suggestedItems': [],
        'approximateTotal': 0.0,
        'confidence': 0.0,
        'notes': notes,
        'rawText': raw_text,
        'ocrConfidence': confidence,
    }
    if error is not None:
        result['error'] = error
    return result


def load_product_context(db: Session) -> list[dict]:
    products = db.execute(
        select(Product).options(selectinload(Product.category)).where(Product.active.is_(True)).order_by(Product.name)
    ).scalars()
    return [
        {
            'id': product.id,
            'name': product.name,
            'price': float(product.price),
            'category': product.category.name if product.category else UNCATEGORIZED,
        }
        for product in products
    ]


def normalize_suggestion(data: dict, products: list[dict]) -> dict:
    """Keep only known products, priced from the catalogue, and temper the model's confidence."""
    by_id = {product['id']: product for product in products}
    items = []
    approximate = Decimal('0')
    for raw_item in data.get('suggestedItems') or []:
        if not isinstance(raw_item, dict):
            continue
        product = by_id.get(normalize_quantity(raw_item.get('productId')))
        if not product:
            continue
        quantity = max(1, normalize_quantity(raw_item.get('quantity')) or 1)
        unit_price = Decimal(str(product['price']))
        items.append({'productId': product['id'], 'name': product['name'], 'quantity': quantity, 'unitPrice': product['price']})
        approximate += unit_price * quantity

    total_detected = normalize_money(data.get('totalDetected'))
    confidence = data.get('confidence')
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = 0.5

    if total_detected and approximate > 0:
        deviation = abs(Decimal(str(total_detected)) - approximate) / Decimal(str(total_detected))
        if deviation > Decimal('0.3'):
            confidence = min(confidence, 0.4)
        elif deviation > Decimal('0.15'):
            confidence = min(confidence, 0.6)
    if not items:
        confidence = 0

    return {
        'totalDetected': total_detected,
        'dateDetected': normalize_date(data.get('dateDetected')),
        'suggestedItems': items,
        'approximateTotal': float(round(approximate, 2)),
        'confidence': round(float(confidence), 2),
        'notes': clean_text(data.get('notes')),
    }


def _within_tolerance(result: dict) -> bool:
    if result['totalDetected'] is None or not result['suggestedItems']:
        return True
    difference = abs(Decimal(str(result['totalDetected'])) - Decimal(str(result['approximateTotal'])))
    return difference <= TOTAL_TOLERANCE


class SalesAiService:
    def __init__(self, llm: LlmService | None = None) -> None:
        self.llm = llm or LlmService()

    def check_status(self, db: Session) -> dict:
        ocr_ok = ocr_service.is_available()
        llm_ok = self.llm.is_available()
        product_count = db.execute(select(func.count(Product.id)).where(Product.active.is_(True))).scalar_one()
        return {
            'available': ocr_ok and llm_ok and product_count > 0,
            'ocr': ocr_ok,
            'llm': llm_ok,
            'products': product_count,
        }

    def process_sales_ticket(self, db: Session, image_bytes: bytes, language: str = 'spa') -> dict:
        started = time.monotonic()
        try:
            ocr = ocr_service.extract_text(image_bytes, language)
        except ocr_service.OcrError as exc:
            logger.error('Sales ticket OCR failed: %s', exc)
            return _empty_result(f'OCR failed: {exc}')
        if not ocr.text:
            return _empty_result('No se pudo extraer texto de la imagen')

        products = load_product_context(db)
        if not products:
            return _empty_result(
                'No hay productos activos en la base de datos', raw_text=ocr.text, confidence=ocr.confidence
            )

        prompt = SALES_PROMPT.format(products=json.dumps(products, ensure_ascii=False, indent=2)) + ocr.text
        result = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            logger.info('Sales ticket attempt %s/%s', attempt, MAX_ATTEMPTS)
            try:
                reply = self.llm.generate(prompt)
            except LlmError as exc:
                logger.warning('Sales ticket LLM call failed on attempt %s: %s', attempt, exc)
                continue
            if not reply.parsed:
                prompt += '\n\nERROR: tu respuesta no era JSON válido. Devuelve SOLO JSON.'
                continue

            result = normalize_suggestion(reply.parsed, products)
            if _within_tolerance(result):
                break
            logger.info(
                'Ticket total %s does not match suggested items %s; retrying',
                result['totalDetected'],
                result['approximateTotal'],
            )
            prompt += (
                f'\n\nRespuesta previa: {reply.raw}\n'
                f'La suma de suggestedItems es {result["approximateTotal"]} pero totalDetected es '
                f'{result["totalDetected"]}. Revisa los productos para que sumen el total y devuelve el JSON corregido.'
            )

        if result is None:
            return _empty_result(
                'No se pudo interpretar la respuesta de la IA', raw_text=ocr.text, confidence=ocr.confidence
            )

        logger.info(
            'Sales ticket processed in %.0fms with %s suggested items',
            (time.monotonic() - started) * 1000,
            len(result['suggestedItems']),
        )
        return {'success': True, **result, 'rawText': ocr.text, 'ocrConfidence': ocr.confidence}

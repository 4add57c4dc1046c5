from __future__ import annotations

import logging

from pos_api.ai import ocr_service
from pos_api.ai.llm_service import LlmError, LlmService
from pos_api.ai.normalize import clean_text, normalize_date, normalize_money, normalize_quantity
from pos_api.models import ExpenseCategory

logger = logging.getLogger(__name__)

MIN_OCR_TEXT_LENGTH = 10

INVOICE_EXTRACTION_PROMPT = """Analiza el texto OCR de una factura o ticket de proveedor español y devuelve SOLO un objeto JSON con:
- supplier: nombre del proveedor
- date: fecha de la factura (YYYY-MM-DD)
- totalAmount: importe total como número
- reference: número de factura o ticket, si aparece
- category: una de FOOD, DRINKS, SUPPLIES, RENT, UTILITIES, MAINTENANCE, OTHER
- items: lista de líneas con description, quantity, unitPrice y total

Reglas:
1. Usa null cuando un dato no esté claro; no inventes valores.
2. Los importes son números, no cadenas.
3. Las fechas DD/MM/AAAA o DD/MM/AA se convierten a YYYY-MM-DD.
4. Los importes de las facturas llevan dos decimales; si el OCR perdió la coma, "1250" es 12.50.

Ejemplo:
{"supplier": "Mercadona S.A.", "date": "2025-01-15", "totalAmount": 45.67, "reference": "0001-123456",
 "category": "FOOD", "items": [{"description": "Leche entera 1L", "quantity": 2, "unitPrice": 1.25, "total": 2.50}]}

TEXTO OCR:
"""


def normalize_category(value) -> str | None:
    if not isinstance(value, str):
        return None
    candidate = value.strip().upper()
    return candidate if candidate in ExpenseCategory.__members__ else None


def normalize_invoice_data(data: dict) -> dict:
    items = data.get('items') if isinstance(data.get('items'), list) else []
    return {
        'supplier': clean_text(data.get('supplier')),
        'date': normalize_date(data.get('date')),
        'totalAmount': normalize_money(data.get('totalAmount'), shift_two_digits=True),
        'reference': clean_text(data.get('reference')),
        'category': normalize_category(data.get('category')),
        'items': [
            {
                'description': clean_text(item.get('description')),
                'quantity': normalize_quantity(item.get('quantity')),
                'unitPrice': normalize_money(item.get('unitPrice'), shift_two_digits=True),
                'total': normalize_money(item.get('total'), shift_two_digits=True),
            }
            for item in items
            if isinstance(item, dict)
        ],
    }


def _failure(error: str, *, raw_text: str = '', confidence: float = 0.0, llm_raw: str | None = None) -> dict:
    return {
        'success': False,
        'rawText': raw_text,
        'ocrConfidence': confidence,
        'extractedData': None,
        'llmRawResponse': llm_raw,
        'error': error,
    }


class InvoiceAiService:
    def __init__(self, llm: LlmService | None = None) -> None:
        self.llm = llm or LlmService()

    def check_services(self) -> dict:
        return {'ocr': ocr_service.is_available(), 'llm': self.llm.is_available()}

    def process_invoice(self, image_bytes: bytes, language: str = 'spa') -> dict:
        """OCR the image, ask the model for structured fields and normalize what comes back."""
        try:
            ocr = ocr_service.extract_text(image_bytes, language)
        except ocr_service.OcrError as exc:
            logger.error('Invoice OCR failed: %s', exc)
            return _failure(f'OCR failed: {exc}')

        logger.debug('Invoice OCR text:\n%s', ocr.text)
        if len(ocr.text) < MIN_OCR_TEXT_LENGTH:
            return _failure('OCR extracted insufficient text', raw_text=ocr.text, confidence=ocr.confidence)

        try:
            reply = self.llm.generate(INVOICE_EXTRACTION_PROMPT + ocr.text)
        except LlmError as exc:
            logger.error('Invoice LLM processing failed: %s', exc)
            return _failure(f'LLM processing failed: {exc}', raw_text=ocr.text, confidence=ocr.confidence)

        extracted = normalize_invoice_data(reply.parsed) if reply.parsed else None
        if extracted is None:
            logger.warning('LLM did not return parsed invoice data')
        logger.info('Invoice AI processing completed (parsed=%s)', extracted is not None)
        return {
            'success': True,
            'rawText': ocr.text,
            'ocrConfidence': ocr.confidence,
            'extractedData': extracted,
            'llmRawResponse': reply.raw,
        }

"""Clean-up of values read back from the LLM.

Tickets printed on thermal paper often lose the decimal separator under OCR,
so "1250" usually means 12.50. That repair is a guess; it is only applied to
whole numbers and can be switched off with ``AI_ASSUME_MISSING_DECIMALS``.
"""
from __future__ import annotations

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from pos_api.config import settings

_ISO_DATE_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
_DMY_DATE_RE = re.compile(r'(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2,4})')

CENT = Decimal('0.01')


def parse_number(value) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None
    if not isinstance(value, str):
        return None
    cleaned = value.strip().replace('€', '').replace(' ', '')
    if ',' in cleaned:
        # Spanish format: dots group thousands, the comma is the decimal mark.
        cleaned = cleaned.replace('.', '').replace(',', '.')
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def normalize_money(value, *, shift_two_digits: bool = False, assume_missing_decimals: bool | None = None) -> float | None:
    number = parse_number(value)
    if number is None or not number.is_finite():
        return None
    if assume_missing_decimals is None:
        assume_missing_decimals = settings.ai_assume_missing_decimals

    if assume_missing_decimals and number == number.to_integral_value():
        digits = len(str(abs(int(number))))
        if digits >= 3:
            number = number / 100
        elif shift_two_digits and digits == 2:
            number = number / 10
    return float(number.quantize(CENT, rounding=ROUND_HALF_UP))


def normalize_quantity(value) -> int | None:
    number = parse_number(value)
    if number is None or not number.is_finite():
        return None
    return int(number.to_integral_value(rounding=ROUND_HALF_UP))


def normalize_date(value) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()

    match = _ISO_DATE_RE.match(value)
    if match:
        year, month, day = (int(part) for part in match.groups())
    else:
        match = _DMY_DATE_RE.search(value)
        if not match:
            return None
        day, month, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def clean_text(value) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None

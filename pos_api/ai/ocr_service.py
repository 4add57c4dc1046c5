from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import pytesseract
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)


class OcrError(RuntimeError):
    pass


@dataclass(frozen=True)
class OcrResult:
    text: str
    confidence: float


def _mean_confidence(data: dict) -> float:
    scores = []
    for raw in data.get('conf', []):
        try:
            score = float(raw)
        except (TypeError, ValueError):
            continue
        if score >= 0:
            scores.append(score)
    return round(sum(scores) / len(scores), 1) if scores else 0.0


def extract_text(image_bytes: bytes, language: str = 'spa') -> OcrResult:
    """Run Tesseract over an uploaded image and return the text with its mean word confidence."""
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise OcrError(f'Unreadable image: {exc}') from exc

    # Phone photos carry their rotation in EXIF; grayscale helps on thermal tickets.
    image = ImageOps.grayscale(ImageOps.exif_transpose(image))

    logger.info('Starting OCR text extraction (lang=%s, size=%sx%s)', language, image.width, image.height)
    try:
        text = pytesseract.image_to_string(image, lang=language).strip()
        data = pytesseract.image_to_data(image, lang=language, output_type=pytesseract.Output.DICT)
    except pytesseract.TesseractError as exc:
        raise OcrError(f'OCR extraction failed: {exc}') from exc
    except pytesseract.TesseractNotFoundError as exc:
        raise OcrError('Tesseract is not installed') from exc

    confidence = _mean_confidence(data)
    logger.info('OCR completed. Confidence: %.1f%% (%s characters)', confidence, len(text))
    return OcrResult(text=text, confidence=confidence)


def is_available() -> bool:
    try:
        pytesseract.get_tesseract_version()
    except (pytesseract.TesseractNotFoundError, OSError):
        return False
    return True

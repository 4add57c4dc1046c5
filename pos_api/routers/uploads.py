from __future__ import annotations

from fastapi import HTTPException, UploadFile

from pos_api.config import settings

ALLOWED_IMAGE_TYPES = {'image/jpeg', 'image/png', 'image/webp', 'image/tiff'}


def read_scan_upload(file: UploadFile | None) -> bytes:
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail='No file provided')
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail='Invalid file type. Only JPEG, PNG, WebP and TIFF are allowed.')
    content = file.file.read(settings.ai_max_upload_bytes + 1)
    if len(content) > settings.ai_max_upload_bytes:
        raise HTTPException(status_code=413, detail='File too large')
    if not content:
        raise HTTPException(status_code=400, detail='Empty file')
    return content

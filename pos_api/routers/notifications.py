from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from pos_api.auth import Principal, require_api_key
from pos_api.dependencies import get_notifier
from pos_api.services.notification_service import NotificationService

router = APIRouter(tags=['notifications'])

SSE_HEADERS = {
    'Cache-Control': 'no-cache',
    'Connection': 'keep-alive',
    'X-Accel-Buffering': 'no',
}


def parse_types(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(',') if part.strip()]


@router.get('/notifications')
async def notifications_stream(
    types: str | None = Query(default=None),
    _: Principal = Depends(require_api_key),
    notifier: NotificationService = Depends(get_notifier),
):
    client = notifier.add_client(parse_types(types))
    return StreamingResponse(notifier.stream(client), media_type='text/event-stream', headers=SSE_HEADERS)

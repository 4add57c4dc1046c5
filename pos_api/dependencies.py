from fastapi import HTTPException, Request, status

from pos_api.config import settings
from pos_api.security.rate_limit import RateLimiter
from pos_api.services.notification_service import NotificationService

order_rate_limiter = RateLimiter(
    max_requests=settings.order_rate_limit_max,
    window_seconds=settings.order_rate_limit_window_seconds,
)


def get_notifier(request: Request) -> NotificationService:
    return request.app.state.notifier


def get_client_ip(request: Request) -> str | None:
    """Address seen by the outermost trusted proxy.

    Entries left of the trusted hops in ``X-Forwarded-For`` are client-supplied and ignored.
    """
    hops = [part.strip() for part in request.headers.get('x-forwarded-for', '').split(',') if part.strip()]
    if request.client:
        hops.append(request.client.host)
    if not hops:
        return None
    return hops[max(0, len(hops) - 1 - settings.trusted_proxy_hops)]


def limit_order_creation(request: Request) -> None:
    if not order_rate_limiter.hit(get_client_ip(request) or 'unknown'):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={'message': 'Too many orders. Please wait a moment before trying again.'},
        )

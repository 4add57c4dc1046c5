import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from pos_api.config import settings
from pos_api.db import init_db
from pos_api.error_tracking import init_error_tracking
from pos_api.errors import install_error_handlers
from pos_api.logging_config import install_request_logger, setup_logging
from pos_api.routers import auth, categories, health, invoices, notifications, orders, products, sales
from pos_api.routers import settings as settings_router
from pos_api.security.cors import install_cors
from pos_api.security.headers import install_security_headers
from pos_api.security.sessions import install_auth_session_middleware
from pos_api.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_error_tracking()
    if settings.auto_create_tables:
        init_db()
    if not settings.admin_api_key:
        logger.warning('ADMIN_API_KEY is not set; API-key protected routes will answer 500')

    heartbeat = asyncio.create_task(app.state.notifier.run_heartbeat())
    logger.info('POS API started (environment=%s)', settings.environment)
    try:
        yield
    finally:
        heartbeat.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await heartbeat


app = FastAPI(title='Restaurant POS API', lifespan=lifespan)
app.state.notifier = NotificationService(
    retry_ms=settings.sse_retry_ms,
    heartbeat_seconds=settings.sse_heartbeat_seconds,
)

install_error_handlers(app)
install_security_headers(app)
install_auth_session_middleware(app)
install_request_logger(app)
install_cors(app)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(orders.router)
app.include_router(notifications.router)
app.include_router(settings_router.router)
app.include_router(products.router)
app.include_router(categories.router)
app.include_router(invoices.router)
app.include_router(sales.router)


@app.get('/robots.txt', response_class=PlainTextResponse)
def robots_txt() -> str:
    return 'User-agent: *\nDisallow: /\n'

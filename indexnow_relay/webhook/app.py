"""FastAPI приложение для webhook endpoint BigCommerce."""

import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable

import httpx
import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.requests import ClientDisconnect

from ..config import Settings, get_settings
from ..core.exceptions import PayloadError, WebhookAuthError
from ..core.routing import known_scopes
from ..integrations.bigcommerce import BigCommerceClient
from ..integrations.indexnow import IndexNowClient
from ..services.dedup_service import DuplicateSuppressor
from ..utils.logger import configure_logging, get_logger
from .auth import require_valid_signature
from .handlers import BigCommerceWebhookHandler, parse_webhook_payload

logger = get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message}
    )


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Callable[[], float] = time.monotonic
) -> FastAPI:
    """
    Создание приложения.

    Args:
        settings: Настройки, по умолчанию читаются из окружения
        transport: HTTP транспорт для исходящих запросов (для тестов)
        clock: Часы для истечения hash'ей вебхуков (для тестов)
    """

    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Управление жизненным циклом приложения."""

        logger.info("Starting webhook relay", **settings.masked_summary())

        scheduler = AsyncIOScheduler(timezone=pytz.timezone(settings.TIMEZONE))
        scheduler.start()

        suppressor = DuplicateSuppressor(
            expiry_seconds=settings.DEDUP_EXPIRY_SECONDS,
            scheduler=scheduler,
            clock=clock
        )
        bigcommerce = BigCommerceClient(
            store_hash=settings.BIGCOMMERCE_API_STORE_HASH,
            access_token=settings.BIGCOMMERCE_API_ACCESS_TOKEN,
            base_url=settings.BASE_URL,
            api_url=settings.BIGCOMMERCE_API_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            max_retries=settings.BIGCOMMERCE_MAX_RETRIES,
            retry_delay=settings.RETRY_DELAY_SECONDS,
            transport=transport
        )
        indexnow = IndexNowClient(
            api_key=settings.INDEX_NOW_API_KEY,
            key_location=settings.INDEX_NOW_KEY_LOCATION_URL,
            base_url=settings.BASE_URL,
            endpoint=settings.INDEX_NOW_ENDPOINT,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=transport
        )

        app.state.scheduler = scheduler
        app.state.suppressor = suppressor
        app.state.webhook_handler = BigCommerceWebhookHandler(
            bigcommerce=bigcommerce,
            indexnow=indexnow,
            suppressor=suppressor,
            expected_producer=settings.expected_producer,
            processing_timeout=settings.REQUEST_TIMEOUT_SECONDS
        )

        logger.info("Webhook relay started", scopes=known_scopes())

        try:
            yield
        finally:
            logger.info("Shutting down webhook relay")
            if scheduler.running:
                scheduler.shutdown(wait=False)
            await bigcommerce.close()
            await indexnow.close()
            logger.info("Webhook relay stopped")

    app = FastAPI(
        title="BigCommerce IndexNow Relay",
        description="Пересылка изменённых URL BigCommerce в IndexNow",
        version="1.0.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan
    )
    app.state.settings = settings

    @app.post("/")
    async def bigcommerce_webhook(request: Request):
        """
        Webhook endpoint BigCommerce.

        Подпись проверяется по сырому телу до парсинга JSON.
        """

        request_id = f"req_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{id(request)}"

        try:
            raw_body = await request.body()
        except ClientDisconnect:
            logger.warning("Client disconnected before body was read", request_id=request_id)
            return _error(400, "Client disconnected")

        try:
            require_valid_signature(
                raw_body,
                request.headers,
                settings.BIGCOMMERCE_WEBHOOK_SECRET,
                tolerance_seconds=settings.WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS
            )
        except WebhookAuthError as e:
            logger.warning(
                "Rejected webhook with invalid signature",
                request_id=request_id,
                client_ip=request.client.host if request.client else None,
                **e.details
            )
            return _error(400, e.message)

        try:
            event = parse_webhook_payload(raw_body)
        except PayloadError as e:
            logger.error("Invalid webhook payload", request_id=request_id, error=e.message, **e.details)
            return _error(400, e.message)

        result = await request.app.state.webhook_handler.handle_webhook(event, request_id=request_id)

        content = {"status": "success"}
        if result["duplicate"]:
            content["message"] = "Duplicate ignored"
        else:
            logger.info(
                "Webhook processed",
                request_id=request_id,
                scope=event.scope,
                url_count=len(result["urls"]),
                submitted=result["submitted"]
            )

        return JSONResponse(status_code=200, content=content)

    @app.api_route("/", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
    async def not_found():
        return PlainTextResponse("Not Found", status_code=404)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""

        scheduler = getattr(request.app.state, "scheduler", None)
        suppressor = getattr(request.app.state, "suppressor", None)

        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "scheduler": "running" if scheduler is not None and scheduler.running else "stopped",
            "blocklist_size": len(suppressor) if suppressor is not None else 0
        }

    # Обработчик глобальных ошибок
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Глобальный обработчик исключений."""

        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return _error(500, "Internal server error")

    return app

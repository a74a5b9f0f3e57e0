"""Обработчики webhook событий."""

import asyncio
import json
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from ..core.exceptions import IntegrationError, PayloadError
from ..core.models import EntityKind, WebhookEvent
from ..core.routing import Action, NoOp, ResolveCategory, ResolvePage, ResolveProduct, Unknown, route
from ..integrations.bigcommerce import BigCommerceClient
from ..integrations.indexnow import IndexNowClient
from ..services.dedup_service import DuplicateSuppressor
from ..utils.logger import get_logger

logger = get_logger(__name__)

INVALID_JSON = "Invalid JSON"
INVALID_PAYLOAD = "Invalid payload"


def parse_webhook_payload(raw_body: bytes) -> WebhookEvent:
    """
    Парсинг тела вебхука.

    Raises:
        PayloadError: Тело не является JSON (message="Invalid JSON") или
            JSON не является объектом вебхука со scope (message="Invalid payload")
    """

    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PayloadError(INVALID_JSON, details={"reason": str(e)}) from e

    if not isinstance(payload, dict):
        raise PayloadError(INVALID_PAYLOAD, details={"payload_type": type(payload).__name__})

    try:
        return WebhookEvent.model_validate(payload)
    except ValidationError as e:
        raise PayloadError(
            INVALID_PAYLOAD,
            details={"errors": [err["msg"] for err in e.errors()], "payload_keys": list(payload)}
        ) from e


class BigCommerceWebhookHandler:
    """Обработчик webhook событий от BigCommerce."""

    def __init__(
        self,
        bigcommerce: BigCommerceClient,
        indexnow: IndexNowClient,
        suppressor: DuplicateSuppressor,
        expected_producer: str,
        processing_timeout: float = 120
    ):
        self.bigcommerce = bigcommerce
        self.indexnow = indexnow
        self.suppressor = suppressor
        self.expected_producer = expected_producer
        self.processing_timeout = processing_timeout

        self._resolvers: dict[EntityKind, Callable[[int], Awaitable[str]]] = {
            EntityKind.CATEGORY: bigcommerce.get_category_url,
            EntityKind.PRODUCT: bigcommerce.get_product_url,
            EntityKind.PAGE: bigcommerce.get_page_url,
        }

    def is_duplicate(self, event: WebhookEvent) -> bool:
        """Повтор считается только для вебхуков нашего магазина."""
        if not event.hash or not self.suppressor.seen(event.hash):
            return False

        if event.producer != self.expected_producer:
            logger.warning(
                "Known hash from unexpected producer, processing anyway",
                webhook_hash=event.hash,
                producer=event.producer,
                expected_producer=self.expected_producer
            )
            return False

        return True

    async def handle_webhook(self, event: WebhookEvent, request_id: str) -> dict[str, Any]:
        """
        Обработка вебхука: маршрутизация, получение URL, отправка в IndexNow.

        Ошибки получения URL и отправки не выбрасываются, а логируются,
        поэтому отправитель вебхука всегда получает успешный ответ.

        Args:
            event: Проверенный и распарсенный вебхук
            request_id: ID запроса для трассировки

        Returns:
            Dict[str, Any]: Результат обработки
        """

        if self.is_duplicate(event):
            logger.info(
                "Duplicate webhook received, ignoring",
                request_id=request_id,
                webhook_hash=event.hash,
                scope=event.scope
            )
            return {"duplicate": True, "urls": [], "submitted": False}

        logger.info(
            "Received webhook event",
            request_id=request_id,
            scope=event.scope,
            webhook_hash=event.hash,
            data=event.data.model_dump(exclude_none=True)
        )

        urls: list[str] = []
        submitted = False
        try:
            submitted = await asyncio.wait_for(
                self._process(event, urls, request_id),
                timeout=self.processing_timeout
            )
        except asyncio.TimeoutError:
            logger.error(
                "Webhook processing timed out",
                request_id=request_id,
                scope=event.scope,
                timeout_seconds=self.processing_timeout,
                resolved_urls=urls
            )

        if event.hash:
            self.suppressor.mark_seen(event.hash)
        else:
            logger.warning(
                "Webhook received without a hash, unable to perform duplicate check",
                request_id=request_id,
                scope=event.scope
            )

        return {"duplicate": False, "urls": urls, "submitted": submitted}

    async def _process(self, event: WebhookEvent, urls: list[str], request_id: str) -> bool:
        action = route(event)
        urls.extend(await self.resolve_urls([action], request_id))

        if not urls:
            logger.info("No URLs resolved, IndexNow submission skipped", request_id=request_id)
            return False

        return await self.indexnow.submit(urls)

    async def resolve_urls(self, actions: list[Action], request_id: str) -> list[str]:
        """
        Получение URL для каждого действия по порядку.

        Ошибка одной сущности исключает только её URL из результата.
        """

        urls = []
        for action in actions:
            if isinstance(action, Unknown):
                logger.warning("Unknown webhook scope received", request_id=request_id, scope=action.scope)
                continue

            if isinstance(action, NoOp):
                logger.info("Webhook scope skipped", request_id=request_id, scope=action.scope, reason=action.reason)
                continue

            if not isinstance(action, (ResolveCategory, ResolveProduct, ResolvePage)):
                raise TypeError(f"Unsupported action: {action!r}")

            resolver = self._resolvers[action.kind]
            try:
                urls.append(await resolver(action.id))
            except (IntegrationError, ValueError) as e:
                logger.error(
                    "Error getting entity URL",
                    request_id=request_id,
                    entity=action.kind.value,
                    entity_id=action.id,
                    error=str(e),
                    error_type=type(e).__name__
                )

        return urls

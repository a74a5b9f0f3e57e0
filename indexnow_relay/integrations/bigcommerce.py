"""BigCommerce API клиент для получения публичных URL сущностей."""

from typing import Any

import httpx

from ..core.exceptions import MalformedResponseError, TransportError, UpstreamApiError
from ..core.models import EntityKind
from ..utils.logger import get_logger
from ..utils.retry import retry_with_backoff

logger = get_logger(__name__)

# Путь ресурса и путь к полю с URL в ответе для каждого типа сущности
_RESOURCES: dict[EntityKind, tuple[str, tuple[str, ...]]] = {
    EntityKind.CATEGORY: ("catalog/categories", ("data", "custom_url", "url")),
    EntityKind.PRODUCT: ("catalog/products", ("data", "custom_url", "url")),
    EntityKind.PAGE: ("content/pages", ("data", "url")),
}


class BigCommerceClient:
    """Клиент BigCommerce REST API (v3) для одного магазина."""

    def __init__(
        self,
        store_hash: str,
        access_token: str,
        base_url: str,
        api_url: str = "https://api.bigcommerce.com",
        timeout: float = 30.0,
        max_retries: int = 0,
        retry_delay: float = 1,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        self.store_hash = store_hash
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self.client = httpx.AsyncClient(
            base_url=f"{api_url.rstrip('/')}/stores/{store_hash}/v3/",
            timeout=timeout,
            transport=transport,
            headers={
                "X-Auth-Token": access_token,
                "Content-Type": "application/json",
                "Accept": "application/json"
            }
        )

        logger.info("BigCommerce client initialized", store_hash=store_hash)

    async def close(self) -> None:
        """Закрытие HTTP клиента."""
        await self.client.aclose()

    async def get_category_url(self, category_id: int) -> str:
        return await self.get_entity_url(EntityKind.CATEGORY, category_id)

    async def get_product_url(self, product_id: int) -> str:
        return await self.get_entity_url(EntityKind.PRODUCT, product_id)

    async def get_page_url(self, page_id: int) -> str:
        return await self.get_entity_url(EntityKind.PAGE, page_id)

    async def get_entity_url(self, kind: EntityKind, entity_id: int) -> str:
        """
        Получение публичного URL сущности по ID.

        Args:
            kind: Тип сущности
            entity_id: ID сущности в BigCommerce

        Returns:
            str: Абсолютный URL на витрине (BASE_URL + путь сущности)

        Raises:
            UpstreamApiError: API ответил статусом, отличным от 2xx
            TransportError: Сетевая ошибка или таймаут
            MalformedResponseError: В ответе нет поля с URL
        """
        if not isinstance(entity_id, int) or isinstance(entity_id, bool) or entity_id <= 0:
            raise ValueError(f"Invalid {kind.value} id: {entity_id!r}")

        resource, url_field = _RESOURCES[kind]
        path = f"{resource}/{entity_id}"

        fetch = retry_with_backoff(
            max_retries=self.max_retries,
            base_delay=self.retry_delay,
            retryable_exceptions=(TransportError,)
        )(self._get_json)

        body = await fetch(path)
        url_path = self._extract_url_path(body, url_field, path)
        full_url = f"{self.base_url}{url_path}"

        logger.info(
            "Entity URL resolved",
            entity=kind.value,
            entity_id=entity_id,
            url=full_url
        )
        return full_url

    async def _get_json(self, path: str) -> Any:
        """Один GET запрос к API с разбором JSON."""

        logger.debug("Fetching from BigCommerce", path=path)

        try:
            response = await self.client.get(path)
        except httpx.RequestError as e:
            logger.error(
                "BigCommerce request failed",
                path=path,
                error=str(e),
                error_type=type(e).__name__
            )
            raise TransportError(
                f"Error fetching from BigCommerce API: {e}",
                details={"path": path}
            ) from e

        if not response.is_success:
            logger.error(
                "BigCommerce API error",
                status_code=response.status_code,
                url=str(response.url),
                response_text=response.text[:500]
            )
            raise UpstreamApiError(response.status_code, str(response.url))

        try:
            return response.json()
        except ValueError as e:
            logger.error(
                "BigCommerce API returned non-JSON response",
                path=path,
                content_type=response.headers.get("Content-Type"),
                response_text=response.text[:500]
            )
            raise MalformedResponseError(
                f"Invalid JSON response from BigCommerce API: {e}",
                details={"path": path}
            ) from e

    @staticmethod
    def _extract_url_path(body: Any, url_field: tuple[str, ...], path: str) -> str:
        value = body
        for key in url_field:
            if not isinstance(value, dict) or key not in value:
                value = None
                break
            value = value[key]

        if not isinstance(value, str) or not value:
            raise MalformedResponseError(
                f"Missing {'.'.join(url_field)} in response for {path}",
                details={"path": path, "field": ".".join(url_field)}
            )

        if not value.startswith("/"):
            value = f"/{value}"
        return value

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

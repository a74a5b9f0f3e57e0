"""IndexNow клиент для уведомления поисковиков об изменённых URL."""

from urllib.parse import urlparse

import httpx

from ..core.exceptions import SubmissionError
from ..core.models import IndexNowPayload
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Подсказки оператору по статусам IndexNow
_STATUS_HINTS = {
    400: "Possible reasons: invalid API key, incorrect URL format, exceeding URL limit",
    403: "Forbidden. Ensure your API key is valid and correctly configured",
    422: "Unprocessable Entity. URLs don't belong to the host or the key does not match the protocol schema",
    429: "Too Many Requests. You might be hitting the rate limit",
}


class IndexNowClient:
    """Клиент IndexNow API."""

    def __init__(
        self,
        api_key: str,
        key_location: str,
        base_url: str,
        endpoint: str = "https://api.indexnow.org/IndexNow",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        self.api_key = api_key
        self.key_location = key_location
        self.base_url = base_url
        self.endpoint = endpoint

        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json; charset=utf-8"}
        )

    async def close(self) -> None:
        """Закрытие HTTP клиента."""
        await self.client.aclose()

    def build_payload(self, urls: list[str]) -> IndexNowPayload:
        return IndexNowPayload(
            host=urlparse(self.base_url).hostname or "",
            key=self.api_key,
            key_location=self.key_location,
            url_list=list(urls)
        )

    async def submit(self, urls: list[str]) -> bool:
        """
        Отправка пачки URL в IndexNow.

        Никогда не выбрасывает исключений: любая ошибка логируется
        и превращается в False.

        Args:
            urls: Абсолютные URL для переиндексации

        Returns:
            bool: True если IndexNow ответил 2xx
        """

        if not urls:
            logger.warning("Empty URL list provided, skipping IndexNow submission")
            return False

        if not self.api_key:
            logger.warning("IndexNow API key is not defined, skipping IndexNow submission")
            return False

        try:
            await self._post(self.build_payload(urls))
        except SubmissionError as e:
            logger.error("Error submitting to IndexNow", error=e.message, **e.details)
            return False

        logger.info("Successfully submitted to IndexNow", url_count=len(urls), urls=urls)
        return True

    async def _post(self, payload: IndexNowPayload) -> None:
        try:
            response = await self.client.post(self.endpoint, json=payload.to_request())
        except httpx.HTTPError as e:
            raise SubmissionError(
                f"IndexNow is unreachable: {e}",
                details={"error_type": type(e).__name__}
            ) from e

        if response.is_success:
            return

        try:
            response_body = response.text
        except httpx.HTTPError as e:
            response_body = f"<unreadable: {e}>"

        hint = _STATUS_HINTS.get(response.status_code)
        if hint:
            logger.error(hint, status_code=response.status_code)

        raise SubmissionError(
            f"IndexNow rejected submission: {response.status_code} {response.reason_phrase}",
            details={"status_code": response.status_code, "response_body": response_body[:1000]}
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

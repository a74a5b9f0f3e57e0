"""Кастомные исключения для системы."""


class RelayError(Exception):
    """Базовое исключение для всех ошибок ретранслятора."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(RelayError):
    """Ошибка конфигурации."""
    pass


class WebhookAuthError(RelayError):
    """Ошибка авторизации вебхука (неверная подпись)."""
    pass


class PayloadError(RelayError):
    """Некорректное тело вебхука."""
    pass


class IntegrationError(RelayError):
    """Ошибка интеграции с внешними сервисами."""
    pass


class UpstreamApiError(IntegrationError):
    """BigCommerce API вернул статус, отличный от 2xx."""

    def __init__(self, status: int, url: str, message: str = None):
        self.status = status
        self.url = url
        super().__init__(
            message or f"BigCommerce API error: {status} at {url}",
            details={"status": status, "url": url}
        )


class TransportError(IntegrationError):
    """Сетевая ошибка при обращении к внешнему API."""
    pass


class MalformedResponseError(IntegrationError):
    """В ответе API нет ожидаемого поля с URL."""
    pass


class SubmissionError(IntegrationError):
    """IndexNow отклонил запрос или недоступен."""
    pass

from urllib.parse import urlparse

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Конфигурация ретранслятора вебхуков BigCommerce → IndexNow."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # BigCommerce интеграция
    BIGCOMMERCE_API_ACCESS_TOKEN: str = Field(
        ..., min_length=1, description="Access token BigCommerce API (X-Auth-Token)"
    )
    BIGCOMMERCE_API_STORE_HASH: str = Field(
        ..., min_length=1, description="Store hash магазина BigCommerce"
    )
    BIGCOMMERCE_API_URL: str = Field(
        default="https://api.bigcommerce.com", description="Base URL BigCommerce API"
    )
    BIGCOMMERCE_WEBHOOK_SECRET: str = Field(
        ..., min_length=1, description="Секрет для проверки HMAC подписи вебхуков"
    )
    BIGCOMMERCE_MAX_RETRIES: int = Field(
        default=0, ge=0, description="Повторы запроса при сетевых ошибках"
    )

    # IndexNow интеграция
    INDEX_NOW_API_KEY: str = Field(..., min_length=1, description="Ключ IndexNow")
    INDEX_NOW_KEY_LOCATION_URL: str = Field(
        ..., min_length=1, description="URL файла с ключом IndexNow"
    )
    INDEX_NOW_ENDPOINT: str = Field(
        default="https://api.indexnow.org/IndexNow", description="Endpoint IndexNow"
    )

    # Публичная витрина
    BASE_URL: str = Field(..., description="Публичный адрес магазина")

    # HTTP сервер
    HOST: str = Field(default="0.0.0.0", description="Адрес для прослушивания")
    PORT: int = Field(default=8080, description="Порт для прослушивания")

    # Обработка вебхуков
    DEDUP_EXPIRY_SECONDS: int = Field(
        default=60, gt=0, description="Сколько секунд хранить hash обработанного вебхука"
    )
    WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS: int = Field(
        default=0, ge=0, description="Допустимое отклонение webhook-timestamp (0 - выключено)"
    )
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=120, gt=0, description="Общий таймаут обработки одного вебхука"
    )
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=30, gt=0, description="Таймаут одного исходящего HTTP запроса"
    )
    RETRY_DELAY_SECONDS: float = Field(
        default=1, ge=0, description="Начальная задержка retry в секундах"
    )

    # Расписание
    TIMEZONE: str = Field(default="UTC", description="Часовой пояс планировщика")

    # Логирование
    LOG_LEVEL: str = Field(default="INFO", description="Уровень логирования")
    LOG_FORMAT: str = Field(default="json", description="Формат логов")

    # Debug режим
    DEBUG: bool = Field(default=False, description="Режим отладки")

    @field_validator("BASE_URL")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError("BASE_URL must be an absolute http(s) URL")
        return value.rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def expected_producer(self) -> str:
        """Значение поля producer для вебхуков нашего магазина."""
        return f"stores/{self.BIGCOMMERCE_API_STORE_HASH}"

    def masked_summary(self) -> dict[str, str]:
        """Сводка конфигурации для лога запуска без раскрытия секретов."""
        return {
            "store_hash": self.BIGCOMMERCE_API_STORE_HASH,
            "access_token": _mask(self.BIGCOMMERCE_API_ACCESS_TOKEN),
            "index_now_api_key": _mask(self.INDEX_NOW_API_KEY),
            "index_now_key_location": self.INDEX_NOW_KEY_LOCATION_URL,
            "base_url": self.BASE_URL,
        }


def _mask(secret: str) -> str:
    if len(secret) <= 4:
        return "***"
    return f"{secret[:4]}***"


def get_settings() -> Settings:
    """
    Загрузка и валидация настроек.

    Raises:
        ConfigurationError: Если обязательная переменная окружения отсутствует
            или имеет некорректное значение
    """
    try:
        return Settings()
    except ValidationError as e:
        missing = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        raise ConfigurationError(
            f"Invalid configuration: {', '.join(missing)}",
            details={"errors": e.errors()}
        ) from e

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntityKind(str, Enum):
    """Типы сущностей, для которых строится публичный URL."""
    CATEGORY = "category"
    PRODUCT = "product"
    PAGE = "page"


class WebhookData(BaseModel):
    """Блок data вебхука BigCommerce."""

    model_config = ConfigDict(extra="allow")

    id: int | str | None = Field(default=None, description="ID сущности (у корзин UUID)")
    type: str | None = Field(default=None, description="Тип сущности")
    page_id: int | str | None = Field(default=None, description="ID страницы (старый формат)")


class WebhookContext(BaseModel):
    """Блок context вебхука (метаполя категорий)."""

    model_config = ConfigDict(extra="allow")

    category_id: int | str | None = Field(default=None, description="ID категории метаполя")


class WebhookEvent(BaseModel):
    """Вебхук BigCommerce. Живет только в рамках одного запроса."""

    model_config = ConfigDict(extra="ignore")

    scope: str = Field(..., min_length=1, description="Тема вебхука")
    hash: str | None = Field(default=None, description="Idempotency hash доставки")
    producer: str | None = Field(default=None, description="Отправитель, stores/{store_hash}")
    store_id: str | int | None = Field(default=None, description="ID магазина")
    created_at: int | None = Field(default=None, description="Unix время события")
    resource_id: int | str | None = Field(default=None, description="ID ресурса (страницы каналов)")
    data: WebhookData = Field(default_factory=WebhookData)
    context: WebhookContext = Field(default_factory=WebhookContext)

    @field_validator("data", "context", mode="before")
    @classmethod
    def empty_block_for_null(cls, v):
        return {} if v is None else v


class IndexNowPayload(BaseModel):
    """Тело запроса к IndexNow."""

    model_config = ConfigDict(populate_by_name=True)

    host: str = Field(..., description="Хост сайта")
    key: str = Field(..., description="Ключ IndexNow")
    key_location: str = Field(..., alias="keyLocation", description="URL файла ключа")
    url_list: list[str] = Field(..., alias="urlList", description="Отправляемые URL")

    def to_request(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

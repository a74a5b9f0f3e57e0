"""Маршрутизация вебхуков BigCommerce по scope."""

import re
from dataclasses import dataclass
from typing import Callable, Union

from .models import EntityKind, WebhookEvent


@dataclass(frozen=True)
class ResolveCategory:
    id: int
    kind: EntityKind = EntityKind.CATEGORY


@dataclass(frozen=True)
class ResolveProduct:
    id: int
    kind: EntityKind = EntityKind.PRODUCT


@dataclass(frozen=True)
class ResolvePage:
    id: int
    kind: EntityKind = EntityKind.PAGE


@dataclass(frozen=True)
class NoOp:
    """Известный scope, для которого URL не отправляется."""
    scope: str
    reason: str


@dataclass(frozen=True)
class Unknown:
    scope: str


Action = Union[ResolveCategory, ResolveProduct, ResolvePage, NoOp, Unknown]
ResolveAction = Union[ResolveCategory, ResolveProduct, ResolvePage]

IdSource = Callable[[WebhookEvent], int | str | None]


def _data_id(event: WebhookEvent) -> int | str | None:
    return event.data.id


def _context_category_id(event: WebhookEvent) -> int | str | None:
    return event.context.category_id


def _page_id(event: WebhookEvent) -> int | str | None:
    # Встречаются оба формата payload, resource_id приоритетнее
    if event.resource_id is not None:
        return event.resource_id
    return event.data.page_id


def _as_int(value: int | str) -> int | None:
    # Каталог и страницы адресуются числами, строковые ID (UUID корзин) не подходят
    if isinstance(value, int):
        return value
    value = value.strip()
    if value.lstrip("-").isdigit():
        return int(value)
    return None


_RESOLVE_SCOPES: dict[str, tuple[type, IdSource]] = {
    "store/category/created": (ResolveCategory, _data_id),
    "store/category/updated": (ResolveCategory, _data_id),
    "store/category/metafield/created": (ResolveCategory, _context_category_id),
    "store/category/metafield/updated": (ResolveCategory, _context_category_id),
    "store/category/metafield/deleted": (ResolveCategory, _context_category_id),
    "store/product/created": (ResolveProduct, _data_id),
    "store/product/updated": (ResolveProduct, _data_id),
    "store/channel/page/created": (ResolvePage, _page_id),
    "store/channel/page/updated": (ResolvePage, _page_id),
}

# Удаления не отправляются в IndexNow
_DELETE_SCOPES = frozenset({
    "store/category/deleted",
    "store/product/deleted",
})

# store/channel/{channel_id}/page/created
_CHANNEL_PAGE_SCOPE = re.compile(r"^store/channel/(?:\d+|\*)/page/(created|updated)$")
_CHANNEL_PAGE_SUBSCRIPTIONS = (
    "store/channel/*/page/created",
    "store/channel/*/page/updated",
)


def _lookup(scope: str) -> tuple[type, IdSource] | None:
    rule = _RESOLVE_SCOPES.get(scope)
    if rule is not None:
        return rule

    match = _CHANNEL_PAGE_SCOPE.match(scope)
    if match:
        return _RESOLVE_SCOPES[f"store/channel/page/{match.group(1)}"]

    return None


def route(event: WebhookEvent) -> Action:
    """
    Определение действия для вебхука.

    Args:
        event: Распарсенный вебхук

    Returns:
        Action: ResolveCategory/ResolveProduct/ResolvePage с ID сущности,
            NoOp для удалений и вебхуков без числового ID, Unknown для остальных scope
    """

    scope = event.scope

    if scope in _DELETE_SCOPES:
        return NoOp(scope=scope, reason="deletion is not submitted")

    rule = _lookup(scope)
    if rule is None:
        return Unknown(scope=scope)

    action_type, id_source = rule
    entity_id = id_source(event)
    if entity_id is None:
        return NoOp(scope=scope, reason="entity id is missing")

    numeric_id = _as_int(entity_id)
    if numeric_id is None:
        return NoOp(scope=scope, reason="entity id is not numeric")

    return action_type(id=numeric_id)


def known_scopes() -> list[str]:
    """
    Все scope, на которые стоит подписать магазин.

    Страницы каналов представлены подпиской на все каналы (store/channel/*/page/...),
    вебхуки конкретного канала store/channel/{id}/page/... принимаются тоже.
    """
    return sorted([*_RESOLVE_SCOPES, *_DELETE_SCOPES, *_CHANNEL_PAGE_SUBSCRIPTIONS])

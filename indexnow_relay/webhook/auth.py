"""Проверка подписи вебхуков BigCommerce (схема Standard Webhooks)."""

import base64
import binascii
import hashlib
import hmac
import time
from typing import Mapping

from ..core.exceptions import WebhookAuthError
from ..utils.logger import get_logger

logger = get_logger(__name__)

ID_HEADER = "webhook-id"
TIMESTAMP_HEADER = "webhook-timestamp"
SIGNATURE_HEADER = "webhook-signature"

SECRET_PREFIX = "whsec_"
SIGNATURE_VERSION = "v1"


def _decode_secret(secret: str | bytes) -> bytes:
    if isinstance(secret, bytes):
        secret = secret.decode("utf-8")
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX):]
    return base64.b64decode(secret, validate=True)


def _header(headers: Mapping[str, str], name: str) -> str | None:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def sign_payload(raw_body: bytes, webhook_id: str, timestamp: str, secret: str | bytes) -> str:
    """
    Вычисление значения заголовка webhook-signature.

    Returns:
        str: Подпись в формате v1,<base64>
    """
    key = _decode_secret(secret)
    signed_content = f"{webhook_id}.{timestamp}.".encode("utf-8") + raw_body
    digest = hmac.new(key, signed_content, hashlib.sha256).digest()
    return f"{SIGNATURE_VERSION},{base64.b64encode(digest).decode('ascii')}"


def verify_webhook_signature(
    raw_body: bytes,
    headers: Mapping[str, str],
    secret: str | bytes,
    tolerance_seconds: int = 0,
    now: float | None = None
) -> bool:
    """
    Проверка HMAC подписи вебхука по сырому телу запроса.

    Подпись считается над "{webhook-id}.{webhook-timestamp}.{body}" ключом
    из base64-декодированного секрета. Заголовок webhook-signature может
    содержать несколько подписей через пробел, достаточно совпадения одной.

    Args:
        raw_body: Тело запроса до парсинга JSON
        headers: Заголовки запроса
        secret: Общий секрет (base64, допускается префикс whsec_)
        tolerance_seconds: Допустимое отклонение webhook-timestamp от текущего
            времени, 0 отключает проверку
        now: Текущее unix время (для тестов)

    Returns:
        bool: True если подпись валидна. Ошибки не выбрасываются.
    """

    webhook_id = _header(headers, ID_HEADER)
    timestamp = _header(headers, TIMESTAMP_HEADER)
    signature_header = _header(headers, SIGNATURE_HEADER)

    if not webhook_id or not timestamp or not signature_header:
        logger.warning(
            "Missing signature headers",
            has_id=bool(webhook_id),
            has_timestamp=bool(timestamp),
            has_signature=bool(signature_header)
        )
        return False

    if tolerance_seconds:
        try:
            sent_at = int(timestamp)
        except ValueError:
            logger.warning("Invalid webhook timestamp", timestamp=timestamp[:20])
            return False
        current = time.time() if now is None else now
        if abs(current - sent_at) > tolerance_seconds:
            logger.warning(
                "Webhook timestamp outside tolerance",
                timestamp=sent_at,
                tolerance_seconds=tolerance_seconds
            )
            return False

    try:
        expected = sign_payload(raw_body, webhook_id, timestamp, secret).split(",", 1)[1]
    except (binascii.Error, ValueError) as e:
        logger.error("Webhook secret is not valid base64", error=str(e))
        return False

    for candidate in signature_header.split():
        version, _, signature = candidate.partition(",")
        if version != SIGNATURE_VERSION or not signature:
            continue
        if hmac.compare_digest(signature.encode("ascii", "replace"), expected.encode("ascii")):
            return True

    logger.warning(
        "Invalid webhook signature",
        webhook_id=webhook_id,
        body_size=len(raw_body)
    )
    return False


def require_valid_signature(
    raw_body: bytes,
    headers: Mapping[str, str],
    secret: str | bytes,
    tolerance_seconds: int = 0
) -> None:
    """
    Проверка подписи с исключением вместо bool.

    Raises:
        WebhookAuthError: Подпись отсутствует или не совпадает
    """
    if not verify_webhook_signature(raw_body, headers, secret, tolerance_seconds=tolerance_seconds):
        raise WebhookAuthError(
            "Invalid webhook signature",
            details={"webhook_id": _header(headers, ID_HEADER), "body_size": len(raw_body)}
        )

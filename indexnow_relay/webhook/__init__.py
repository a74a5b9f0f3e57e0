"""Webhook модуль для приема событий BigCommerce."""

from .app import create_app
from .auth import require_valid_signature, sign_payload, verify_webhook_signature
from .handlers import BigCommerceWebhookHandler, parse_webhook_payload

__all__ = [
    "create_app",
    "BigCommerceWebhookHandler",
    "parse_webhook_payload",
    "require_valid_signature",
    "sign_payload",
    "verify_webhook_signature"
]

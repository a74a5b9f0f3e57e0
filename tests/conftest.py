"""Общие фикстуры тестов."""

import base64
import json

import pytest

from indexnow_relay.config import Settings
from indexnow_relay.webhook.auth import sign_payload

WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"test-webhook-signing-secret").decode("ascii")
STORE_HASH = "abc123"


class FakeClock:
    """Управляемые часы для проверки истечения hash'ей."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    """Настройки без чтения .env."""
    return Settings(
        _env_file=None,
        BIGCOMMERCE_API_ACCESS_TOKEN="test_token",
        BIGCOMMERCE_API_STORE_HASH=STORE_HASH,
        BIGCOMMERCE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        INDEX_NOW_API_KEY="indexnow_key",
        INDEX_NOW_KEY_LOCATION_URL="https://shop.example.com/indexnow_key.txt",
        BASE_URL="https://shop.example.com/",
        LOG_FORMAT="console",
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


def make_event(scope: str, hash: str = "hash-1", **extra) -> dict:
    payload = {
        "scope": scope,
        "store_id": "1001",
        "hash": hash,
        "created_at": 1730000000,
        "producer": f"stores/{STORE_HASH}",
        "data": {},
    }
    payload.update(extra)
    return payload


def signed_request(payload, webhook_id: str = "msg_1", timestamp: str = "1730000000") -> tuple[bytes, dict]:
    """Тело и заголовки вебхука, подписанные тестовым секретом."""
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "webhook-id": webhook_id,
        "webhook-timestamp": timestamp,
        "webhook-signature": sign_payload(body, webhook_id, timestamp, WEBHOOK_SECRET),
    }
    return body, headers

"""Тесты HTTP endpoint ретранслятора."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from indexnow_relay.webhook.app import create_app

from conftest import make_event, signed_request


class UpstreamStub:
    """Подмена BigCommerce и IndexNow на уровне HTTP транспорта."""

    def __init__(self):
        self.bigcommerce_requests: list[httpx.Request] = []
        self.indexnow_payloads: list[dict] = []
        self.indexnow_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.bigcommerce.com":
            self.bigcommerce_requests.append(request)
            entity_id = request.url.path.rstrip("/").rsplit("/", 1)[-1]
            if "/content/pages/" in request.url.path:
                return httpx.Response(200, json={"data": {"url": f"/page-{entity_id}/"}})
            return httpx.Response(200, json={"data": {"custom_url": {"url": f"/item-{entity_id}/"}}})

        if request.url.host == "api.indexnow.org":
            self.indexnow_payloads.append(json.loads(request.content))
            return httpx.Response(self.indexnow_status)

        return httpx.Response(404)

    @property
    def calls(self) -> int:
        return len(self.bigcommerce_requests) + len(self.indexnow_payloads)


@pytest.fixture
def upstream():
    return UpstreamStub()


@pytest.fixture
def client(settings, upstream, fake_clock):
    app = create_app(settings, transport=httpx.MockTransport(upstream), clock=fake_clock)
    with TestClient(app) as test_client:
        yield test_client


def _post(client, payload, **kwargs):
    body, headers = signed_request(payload, **kwargs)
    return client.post("/", content=body, headers=headers)


class TestWebhookEndpoint:
    """Тесты POST /."""

    def test_product_update_is_relayed(self, client, upstream):
        response = _post(client, make_event("store/product/updated", data={"type": "product", "id": 42}))

        assert response.status_code == 200
        assert response.json() == {"status": "success"}
        assert [r.url.path for r in upstream.bigcommerce_requests] == ["/stores/abc123/v3/catalog/products/42"]
        assert upstream.indexnow_payloads == [{
            "host": "shop.example.com",
            "key": "indexnow_key",
            "keyLocation": "https://shop.example.com/indexnow_key.txt",
            "urlList": ["https://shop.example.com/item-42/"],
        }]

    def test_page_event_is_relayed(self, client, upstream):
        response = _post(client, make_event("store/channel/1/page/created", resource_id=3))

        assert response.status_code == 200
        assert upstream.indexnow_payloads[0]["urlList"] == ["https://shop.example.com/page-3/"]

    def test_duplicate_is_ignored(self, client, upstream):
        payload = make_event("store/product/updated", data={"id": 42})
        _post(client, payload)
        calls_after_first = upstream.calls

        response = _post(client, payload, webhook_id="msg_retry")

        assert response.status_code == 200
        assert response.json() == {"status": "success", "message": "Duplicate ignored"}
        assert upstream.calls == calls_after_first

    def test_duplicate_is_processed_after_expiry(self, client, upstream, fake_clock):
        payload = make_event("store/product/updated", data={"id": 42})
        _post(client, payload)

        fake_clock.advance(61)
        response = _post(client, payload)

        assert response.json() == {"status": "success"}
        assert len(upstream.indexnow_payloads) == 2

    def test_invalid_signature_is_rejected_before_processing(self, client, upstream):
        body, headers = signed_request(make_event("store/product/updated", data={"id": 42}))
        headers["webhook-signature"] = "v1,aW52YWxpZA=="

        response = client.post("/", content=body, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"status": "error", "message": "Invalid webhook signature"}
        assert upstream.calls == 0

    def test_missing_signature_headers(self, client, upstream):
        response = client.post("/", json=make_event("store/product/updated", data={"id": 42}))

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid webhook signature"
        assert upstream.calls == 0

    def test_invalid_json_with_valid_signature(self, client, upstream):
        response = _post(client, b"{not json")

        assert response.status_code == 400
        assert response.json() == {"status": "error", "message": "Invalid JSON"}
        assert upstream.calls == 0

    def test_invalid_json_without_signature(self, client):
        response = client.post("/", content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid webhook signature"

    def test_payload_without_scope(self, client, upstream):
        response = _post(client, {"hash": "h", "data": {"id": 1}})

        assert response.status_code == 400
        assert response.json() == {"status": "error", "message": "Invalid payload"}
        assert upstream.calls == 0

    def test_unknown_scope_is_acknowledged(self, client, upstream):
        response = _post(client, make_event("store/order/created", data={"id": 100}))

        assert response.status_code == 200
        assert response.json() == {"status": "success"}
        assert upstream.calls == 0

    @pytest.mark.parametrize("payload", [
        make_event("store/cart/created", data={"type": "cart", "id": "09346904-5c3d-4b7e-a8b5-0b7f1c3a9e21"}),
        make_event("store/app/uninstalled", data=None),
        make_event("store/product/updated", data={"type": "product", "id": "not-a-number"}),
    ])
    def test_non_catalog_ids_are_acknowledged(self, client, upstream, payload):
        response = _post(client, payload)

        assert response.status_code == 200
        assert response.json() == {"status": "success"}
        assert upstream.calls == 0

    def test_indexnow_failure_still_returns_success(self, client, upstream):
        upstream.indexnow_status = 429

        response = _post(client, make_event("store/category/updated", data={"id": 7}))

        assert response.status_code == 200
        assert response.json() == {"status": "success"}
        assert len(upstream.indexnow_payloads) == 1

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    def test_non_post_is_not_found(self, client, method):
        response = client.request(method, "/")

        assert response.status_code == 404

    def test_unknown_path_is_not_found(self, client):
        body, headers = signed_request(make_event("store/product/updated", data={"id": 42}))

        response = client.post("/webhooks", content=body, headers=headers)

        assert response.status_code == 404


class TestHealth:
    """Тесты health check."""

    def test_health(self, client):
        _post(client, make_event("store/order/created"))

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["scheduler"] == "running"
        assert data["blocklist_size"] == 1

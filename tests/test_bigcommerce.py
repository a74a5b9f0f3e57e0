"""Тесты BigCommerce API клиента."""

import httpx
import pytest

from indexnow_relay.core.exceptions import MalformedResponseError, TransportError, UpstreamApiError
from indexnow_relay.integrations.bigcommerce import BigCommerceClient


def _client(handler, **kwargs) -> BigCommerceClient:
    return BigCommerceClient(
        store_hash="abc123",
        access_token="test_token",
        base_url="https://shop.example.com/",
        transport=httpx.MockTransport(handler),
        **kwargs
    )


class TestBigCommerceClient:
    """Тесты получения URL сущностей."""

    @pytest.mark.asyncio
    async def test_get_category_url(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"data": {"id": 7, "custom_url": {"url": "/shoes/"}}})

        async with _client(handler) as client:
            url = await client.get_category_url(7)

        assert url == "https://shop.example.com/shoes/"
        assert str(requests[0].url) == "https://api.bigcommerce.com/stores/abc123/v3/catalog/categories/7"
        assert requests[0].method == "GET"
        assert requests[0].headers["X-Auth-Token"] == "test_token"
        assert requests[0].headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_get_product_url(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/stores/abc123/v3/catalog/products/42"
            return httpx.Response(200, json={"data": {"id": 42, "custom_url": {"url": "/red-shoe/", "is_customized": False}}})

        async with _client(handler) as client:
            assert await client.get_product_url(42) == "https://shop.example.com/red-shoe/"

    @pytest.mark.asyncio
    async def test_get_page_url(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/stores/abc123/v3/content/pages/3"
            return httpx.Response(200, json={"data": {"id": 3, "url": "/about-us/"}})

        async with _client(handler) as client:
            assert await client.get_page_url(3) == "https://shop.example.com/about-us/"

    @pytest.mark.asyncio
    async def test_non_2xx_raises_upstream_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"status": 404, "title": "Not Found"})

        async with _client(handler) as client:
            with pytest.raises(UpstreamApiError) as exc_info:
                await client.get_product_url(42)

        assert exc_info.value.status == 404
        assert exc_info.value.url.endswith("/catalog/products/42")

    @pytest.mark.asyncio
    async def test_network_failure_raises_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(TransportError):
                await client.get_category_url(1)

    @pytest.mark.asyncio
    async def test_missing_url_field_raises_malformed_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {"id": 1, "custom_url": {}}})

        async with _client(handler) as client:
            with pytest.raises(MalformedResponseError):
                await client.get_category_url(1)

    @pytest.mark.asyncio
    async def test_non_json_body_raises_malformed_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        async with _client(handler) as client:
            with pytest.raises(MalformedResponseError):
                await client.get_page_url(1)

    @pytest.mark.asyncio
    async def test_invalid_id_makes_no_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            pytest.fail("no request expected")

        async with _client(handler) as client:
            for bad_id in (0, -5, None):
                with pytest.raises(ValueError):
                    await client.get_product_url(bad_id)

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried_when_enabled(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json={"data": {"custom_url": {"url": "/ok/"}}})

        async with _client(handler, max_retries=2, retry_delay=0) as client:
            url = await client.get_product_url(1)

        assert url == "https://shop.example.com/ok/"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("down", request=request)

        async with _client(handler) as client:
            with pytest.raises(TransportError):
                await client.get_product_url(1)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_upstream_errors_are_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        async with _client(handler, max_retries=3, retry_delay=0) as client:
            with pytest.raises(UpstreamApiError):
                await client.get_product_url(1)

        assert len(calls) == 1

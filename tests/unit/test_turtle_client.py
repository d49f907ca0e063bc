"""Tests for TurtleClient — outbound /slow calls through the gateway."""

from __future__ import annotations

import httpx

from src.clients.turtle_client import FALLBACK_MESSAGE, TurtleClient
from src.resilience.circuit_breaker import CircuitBreakerConfig, CircuitBreakerRegistry, CircuitState
from src.resilience.gateway import ProtectedCallGateway


def _client(handler, registry: CircuitBreakerRegistry | None = None) -> TurtleClient:
    registry = registry or CircuitBreakerRegistry(CircuitBreakerConfig(sliding_window_size=5, timeout=1.0))
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://turtle.test")
    return TurtleClient("http://turtle.test", ProtectedCallGateway(registry), client=http)


class TestCallService:
    async def test_returns_backend_text(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="[0] CallFromEventListener Ready, set, go!! this call took 0")

        client = _client(handler)
        message = await client.call_service(0)
        assert message.endswith("this call took 0")
        assert seen[0].url.path.startswith("/slow/")
        assert "CallFromEventListener" in seen[0].url.path
        await client.close()

    async def test_http_error_falls_back(self):
        client = _client(lambda request: httpx.Response(500, text="boom"))
        assert await client.call_service(1) == FALLBACK_MESSAGE
        await client.close()

    async def test_connect_error_falls_back(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        client = _client(handler)
        assert await client.call_service(2) == FALLBACK_MESSAGE
        await client.close()

    async def test_uses_named_target(self):
        registry = CircuitBreakerRegistry(CircuitBreakerConfig(sliding_window_size=1))
        client = _client(lambda request: httpx.Response(503), registry)
        await client.call_service(0)
        assert registry.get("movie-service").state == CircuitState.OPEN
        await client.close()


class TestCallMany:
    async def test_fires_all_calls(self):
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, text="ok")

        client = _client(handler)
        results = await client.call_many(3)
        assert results == ["ok", "ok", "ok"]
        assert len(set(paths)) == 3
        await client.close()

    async def test_zero_calls(self):
        client = _client(lambda request: httpx.Response(200, text="ok"))
        assert await client.call_many(0) == []
        await client.close()

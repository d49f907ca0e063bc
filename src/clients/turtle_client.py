"""TurtleClient — calls ``GET /slow/{name}`` through the protected-call gateway.

Uses a single ``httpx.AsyncClient`` bound to the configured base URL.
Every call goes through ``ProtectedCallGateway`` so a slow or failing
backend yields the ``"Fallback"`` text instead of an error.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from src.resilience.gateway import CallRequest, ProtectedCallGateway

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Fallback"


class TurtleClient:
    """Outbound client for the turtle service.

    Args:
        base_url:    Origin of the service exposing ``/slow/{name}``.
        gateway:     Gateway protecting the calls.
        target_name: Circuit breaker name used for these calls.
        client:      Optional pre-built ``httpx.AsyncClient`` (tests inject
                     one with a mock transport).
    """

    def __init__(
        self,
        base_url: str,
        gateway: ProtectedCallGateway,
        target_name: str = "movie-service",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._gateway = gateway
        self.target_name = target_name
        self._client = client or httpx.AsyncClient(base_url=base_url)

    async def _fetch(self, request: CallRequest) -> str:
        response = await self._client.get(f"/slow/{request.argument}")
        response.raise_for_status()
        return response.text

    @staticmethod
    def _fallback(request: CallRequest, error: Exception) -> str:
        return FALLBACK_MESSAGE

    async def call_service(self, count: int) -> str:
        """Issue call number *count* and return the message or the fallback."""
        request = CallRequest(operation="readySetGo", argument=f"[{count}] CallFromEventListener")
        result = await self._gateway.protected_call(self.target_name, request, self._fetch, self._fallback)
        logger.info("--> Client[%d]: %s", count, result.value)
        return result.value

    async def call_many(self, total: int) -> list[str]:
        """Fire *total* numbered calls concurrently."""
        return list(await asyncio.gather(*(self.call_service(i) for i in range(total))))

    async def close(self) -> None:
        await self._client.aclose()

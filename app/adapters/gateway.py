"""OpenAI-compatible chat-completions gateway adapter.

Requests always set ``stream: true``; the response body is an event
stream that the relay forwards untouched.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from app.adapters.base import ChatModelGateway, UpstreamStream
from app.config import Settings
from app.errors import (
    MisconfiguredError,
    QuotaExhaustedError,
    RateLimitedError,
    UpstreamFailureError,
)

logger = logging.getLogger(__name__)


class _HttpxUpstreamStream(UpstreamStream):
    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        async for chunk in self._response.aiter_bytes():
            yield chunk

    async def aclose(self) -> None:
        await self._response.aclose()


class OpenAICompatibleGateway(ChatModelGateway):
    def __init__(
        self,
        url: str,
        api_key: str,
        model: str,
        http: httpx.AsyncClient,
    ) -> None:
        if not api_key:
            raise MisconfiguredError("upstream API key is empty")
        self.url = url
        self.model = model
        self._api_key = api_key
        self._http = http

    @classmethod
    def from_settings(
        cls, settings: Settings, http: httpx.AsyncClient | None = None
    ) -> OpenAICompatibleGateway:
        if not settings.ai_gateway_api_key:
            raise MisconfiguredError("TASKHIVE_AI_GATEWAY_API_KEY is not configured")
        return cls(
            settings.ai_gateway_url,
            settings.ai_gateway_api_key,
            settings.ai_model,
            http or httpx.AsyncClient(timeout=httpx.Timeout(settings.upstream_timeout)),
        )

    async def open_stream(self, messages: list[dict[str, Any]]) -> UpstreamStream:
        request = self._http.build_request(
            "POST",
            self.url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            json={"model": self.model, "messages": messages, "stream": True},
        )
        try:
            response = await self._http.send(request, stream=True)
        except httpx.HTTPError as exc:
            logger.error("AI gateway request failed: %s", exc)
            raise UpstreamFailureError(f"transport error: {exc}") from exc

        if response.is_success:
            return _HttpxUpstreamStream(response)

        try:
            body = (await response.aread()).decode("utf-8", errors="replace")
        finally:
            await response.aclose()

        if response.status_code == 429:
            raise RateLimitedError(body)
        if response.status_code == 402:
            raise QuotaExhaustedError(body)
        logger.error("AI gateway error: %d %s", response.status_code, body)
        raise UpstreamFailureError(f"upstream returned {response.status_code}: {body}")

    async def aclose(self) -> None:
        await self._http.aclose()

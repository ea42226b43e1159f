"""HTTP client for the chat relay — streams replies into a transcript."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from app.client.transcript import AssistantAccumulator, ChatMessage, Transcript
from app.utils.sse import SSEDecoder

logger = logging.getLogger(__name__)


class ChatClientError(Exception):
    """The relay refused the request; ``str(exc)`` is its ``error`` message."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChatClient:
    def __init__(
        self,
        base_url: str,
        access_token: str,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.chat_url = f"{base_url.rstrip('/')}/api/chat"
        self._access_token = access_token
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(120.0, connect=10.0))

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._access_token}",
        }

    @staticmethod
    async def _raise_for_error(resp: httpx.Response) -> None:
        if resp.is_success:
            return
        await resp.aread()
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("error") or "Failed to start stream"
        else:
            message = "Request failed"
        raise ChatClientError(message, resp.status_code)

    async def stream_chat(
        self,
        messages: list[dict[str, str]],
        on_delta: Callable[[str], None],
        project_id: str | None = None,
    ) -> None:
        """POST *messages* and call *on_delta* for every text fragment."""
        payload: dict[str, Any] = {"messages": messages}
        if project_id:
            payload["projectId"] = project_id

        decoder = SSEDecoder()
        async with self._http.stream(
            "POST", self.chat_url, json=payload, headers=self._headers()
        ) as resp:
            await self._raise_for_error(resp)
            async for chunk in resp.aiter_bytes():
                for event in decoder.decode(chunk):
                    on_delta(event.text)
                if decoder.done:
                    break
        for event in decoder.flush():
            on_delta(event.text)

    async def send(
        self,
        transcript: Transcript,
        content: str,
        project_id: str | None = None,
        on_update: Callable[[Transcript], None] | None = None,
    ) -> Transcript:
        """Add a user message and stream the assistant reply into the transcript.

        *on_update* receives every intermediate transcript. Failures become an
        assistant message starting with ``Error:``.
        """
        content = content.strip()
        if not content:
            return transcript

        transcript = transcript.append(ChatMessage(role="user", content=content))
        history = transcript.as_turns()
        accumulator = AssistantAccumulator()
        current = transcript

        def on_delta(text: str) -> None:
            nonlocal current
            current = accumulator.apply(current, text)
            if on_update is not None:
                on_update(current)

        try:
            await self.stream_chat(history, on_delta, project_id=project_id)
        except (ChatClientError, httpx.HTTPError) as exc:
            logger.error("Chat error: %s", exc)
            return current.append(ChatMessage(role="assistant", content=f"Error: {exc}"))
        return current

    async def get_context(self, project_id: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"action": "get_context"}
        if project_id:
            payload["projectId"] = project_id
        resp = await self._http.post(self.chat_url, json=payload, headers=self._headers())
        await self._raise_for_error(resp)
        return resp.json()["context"]

    async def aclose(self) -> None:
        await self._http.aclose()

"""Incremental Server-Sent-Events decoder for chat-completion streams.

Feed raw network chunks to :meth:`SSEDecoder.decode` in arrival order and
call :meth:`SSEDecoder.flush` once the stream ends. Each ``data:`` record
carrying ``choices[0].delta.content`` yields one delta event.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class StreamEvent:
    text: str
    kind: str = "delta"


class _Unparsed(Exception):
    """A data record that is not (yet) valid JSON."""


def _delta_from_line(line: str) -> str | None:
    """Return the delta text, ``DONE_SENTINEL`` or None for one complete line.

    Raises ``_Unparsed`` when the record payload is not valid JSON.
    """
    if line.endswith("\r"):
        line = line[:-1]
    if not line.strip() or line.startswith(":"):
        return None
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return DONE_SENTINEL

    try:
        record = json.loads(payload)
    except ValueError as exc:
        raise _Unparsed(payload) from exc

    try:
        content = record["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if isinstance(content, str) and content:
        return content
    return None


class SSEDecoder:
    """Sequential, single-consumer decoder; not safe for concurrent use."""

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        # Most recent complete line that failed to parse; retried first
        self._pending: str | None = None
        self.done = False

    def decode(self, chunk: bytes) -> list[StreamEvent]:
        if self.done:
            return []
        self._buffer += self._utf8.decode(chunk)
        return self._drain()

    def _drain(self) -> list[StreamEvent]:
        events: list[StreamEvent] = []

        if self._pending is not None:
            line, self._pending = self._pending, None
            if not self._handle(line, events):
                return events

        while not self.done:
            newline = self._buffer.find("\n")
            if newline == -1:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]
            if not self._handle(line, events):
                break
        return events

    def _handle(self, line: str, events: list[StreamEvent]) -> bool:
        """Process one complete line; False means stop draining for now."""
        try:
            delta = _delta_from_line(line)
        except _Unparsed:
            self._pending = line
            return False
        if delta == DONE_SENTINEL:
            self.done = True
            return False
        if delta is not None:
            events.append(StreamEvent(delta))
        return True

    def flush(self) -> list[StreamEvent]:
        """Process whatever remains after the final chunk.

        Unparseable leftovers are dropped; there is no more input that could
        complete them.
        """
        self._buffer += self._utf8.decode(b"", final=True)
        remainder = self._buffer
        if self._pending is not None:
            remainder = f"{self._pending}\n{remainder}"
        self._pending = None
        self._buffer = ""

        events: list[StreamEvent] = []
        if self.done:
            return events

        for line in remainder.split("\n"):
            try:
                delta = _delta_from_line(line)
            except _Unparsed as exc:
                logger.warning("Discarding unparseable trailing SSE record: %.200s", exc)
                continue
            if delta == DONE_SENTINEL:
                self.done = True
                break
            if delta is not None:
                events.append(StreamEvent(delta))
        return events

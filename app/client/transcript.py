"""Immutable chat transcript with a keyed accumulator for streamed replies."""

from __future__ import annotations

import datetime
import uuid
from collections.abc import Iterator
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime.datetime = Field(default_factory=_now)


class Transcript:
    """Ordered, immutable sequence of messages; every change returns a copy."""

    __slots__ = ("_messages",)

    def __init__(self, messages: tuple[ChatMessage, ...] = ()) -> None:
        self._messages = tuple(messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __getitem__(self, index: int) -> ChatMessage:
        return self._messages[index]

    def __repr__(self) -> str:
        return f"Transcript({len(self._messages)} messages)"

    def append(self, message: ChatMessage) -> Transcript:
        return Transcript(self._messages + (message,))

    def upsert(self, message: ChatMessage) -> Transcript:
        """Replace the message with the same id, or append it."""
        for i, existing in enumerate(self._messages):
            if existing.id == message.id:
                return Transcript(self._messages[:i] + (message,) + self._messages[i + 1:])
        return self.append(message)

    def clear(self) -> Transcript:
        return Transcript()

    def as_turns(self) -> list[dict[str, str]]:
        """Wire form expected by the relay: ``[{role, content}, ...]``."""
        return [{"role": m.role, "content": m.content} for m in self._messages]


class AssistantAccumulator:
    """Collects deltas for one assistant message, keyed by ``message_id``."""

    def __init__(self, message_id: str | None = None) -> None:
        self.message_id = message_id or str(uuid.uuid4())
        self._parts: list[str] = []
        self._started: datetime.datetime | None = None

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def apply(self, transcript: Transcript, delta: str) -> Transcript:
        """Append *delta* and swap the updated message into *transcript*."""
        self._parts.append(delta)
        if self._started is None:
            self._started = _now()
        message = ChatMessage(
            id=self.message_id,
            role="assistant",
            content=self.text,
            timestamp=self._started,
        )
        return transcript.upsert(message)

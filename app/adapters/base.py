"""Abstract contracts for the external collaborators the relay talks to.

Swap Supabase or the model gateway for another provider by implementing
these interfaces.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from pydantic import BaseModel


class AuthUser(BaseModel):
    """Identity resolved from a bearer token."""
    id: str
    email: str | None = None


class IdentityProvider(ABC):
    """Resolves bearer tokens to user identities."""

    @abstractmethod
    async def get_user(self, token: str) -> AuthUser:
        """Return the user behind *token* or raise ``InvalidAuthError``."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release network resources."""


class UpstreamStream(ABC):
    """An open, successful streaming response from the model gateway."""

    @abstractmethod
    def aiter_bytes(self) -> AsyncIterator[bytes]:
        """Yield raw response bytes as they arrive."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release the upstream connection."""


class ChatModelGateway(ABC):
    """Chat-completions endpoint with streaming output."""

    @abstractmethod
    async def open_stream(self, messages: list[dict[str, Any]]) -> UpstreamStream:
        """Start a streaming completion for *messages*.

        Raises ``RateLimitedError``, ``QuotaExhaustedError`` or
        ``UpstreamFailureError`` when the gateway refuses the request.
        """

    @abstractmethod
    async def aclose(self) -> None:
        """Release network resources."""

"""Request-terminal error taxonomy for the chat relay.

Every error carries a stable status code and a client-visible message.
``detail`` is for operators only and never leaves the process.
"""

from __future__ import annotations


class RelayError(Exception):
    kind = "RelayError"
    status_code = 500
    message = "Internal error"

    def __init__(self, detail: str = "", *, message: str | None = None) -> None:
        super().__init__(detail or self.message)
        self.detail = detail
        if message is not None:
            self.message = message


class MissingAuthError(RelayError):
    kind = "MissingAuth"
    status_code = 401
    message = "No authorization header"


class InvalidAuthError(RelayError):
    kind = "InvalidAuth"
    status_code = 401
    message = "Invalid token"


class MisconfiguredError(RelayError):
    kind = "Misconfigured"
    status_code = 500
    message = "AI service is not configured"


class RateLimitedError(RelayError):
    kind = "RateLimited"
    status_code = 429
    message = "rate limit exceeded, retry later"


class QuotaExhaustedError(RelayError):
    kind = "QuotaExhausted"
    status_code = 402
    message = "AI credits exhausted. Please add more credits."


class UpstreamFailureError(RelayError):
    kind = "UpstreamFailure"
    status_code = 500
    message = "AI service error"


class ContextAssemblyError(RelayError):
    kind = "ContextAssemblyFailure"
    status_code = 500
    message = "Failed to load project context"

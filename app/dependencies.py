"""FastAPI dependencies for the relay's external collaborators."""

from fastapi import Depends, Header, Request

from app.adapters.base import AuthUser, ChatModelGateway, IdentityProvider
from app.errors import MisconfiguredError, MissingAuthError


def get_identity_provider(request: Request) -> IdentityProvider:
    provider = getattr(request.app.state, "identity_provider", None)
    if provider is None:
        raise MisconfiguredError("identity provider not initialised")
    return provider


def get_gateway(request: Request) -> ChatModelGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise MisconfiguredError("model gateway not initialised")
    return gateway


def bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise MissingAuthError()
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        # Bare token without a scheme
        token = authorization.strip()
    token = token.strip()
    if not token:
        raise MissingAuthError("empty bearer credential")
    return token


async def get_current_user(
    authorization: str | None = Header(default=None),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> AuthUser:
    return await provider.get_user(bearer_token(authorization))

"""Supabase auth adapter — verifies access tokens against the auth API."""

from __future__ import annotations

import logging

import httpx

from app.adapters.base import AuthUser, IdentityProvider
from app.config import Settings
from app.errors import InvalidAuthError, MisconfiguredError

logger = logging.getLogger(__name__)


class SupabaseIdentityProvider(IdentityProvider):
    """Calls ``GET /auth/v1/user`` with the caller's token.

    The service key is sent as ``apikey`` so the project gateway accepts the
    request; the user's own token decides which identity comes back.
    """

    def __init__(self, user_url: str, service_key: str, http: httpx.AsyncClient) -> None:
        self._user_url = user_url
        self._service_key = service_key
        self._http = http

    @classmethod
    def from_settings(
        cls, settings: Settings, http: httpx.AsyncClient | None = None
    ) -> SupabaseIdentityProvider:
        if not settings.supabase_url or not settings.supabase_service_key:
            raise MisconfiguredError("TASKHIVE_SUPABASE_URL / TASKHIVE_SUPABASE_SERVICE_KEY not set")
        return cls(
            settings.auth_user_url,
            settings.supabase_service_key,
            http or httpx.AsyncClient(timeout=10.0),
        )

    async def get_user(self, token: str) -> AuthUser:
        try:
            resp = await self._http.get(
                self._user_url,
                headers={"apikey": self._service_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Auth API unreachable: %s", exc)
            raise InvalidAuthError(f"auth API error: {exc}") from exc

        if resp.status_code != 200:
            logger.info("Token rejected by auth API (status %d)", resp.status_code)
            raise InvalidAuthError(f"auth API returned {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise InvalidAuthError("auth API returned a non-JSON body") from exc
        if not isinstance(data, dict) or not data.get("id"):
            raise InvalidAuthError("auth API returned no user id")
        return AuthUser(id=data["id"], email=data.get("email"))

    async def aclose(self) -> None:
        await self._http.aclose()

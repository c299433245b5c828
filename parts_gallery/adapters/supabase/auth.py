"""
Supabase Auth (GoTrue) adapter.

Covers the two sign-in flows the gallery offers (OAuth redirect and
email magic link), user lookup for an access token, and sign-out.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from parts_gallery.adapters.supabase.client import (
    SupabaseConfig,
    build_http_client,
    error_payload,
)
from parts_gallery.core.ports.identity import IdentityProviderError, InvalidTokenError
from parts_gallery.domain.entities import Principal

logger = logging.getLogger(__name__)


def principal_from_user(user: dict[str, Any]) -> Principal:
    metadata = user.get("user_metadata") or {}
    return Principal(
        id=str(user["id"]),
        display_name=metadata.get("full_name") or metadata.get("name") or "",
        email=user.get("email"),
    )


class SupabaseAuthClient:
    def __init__(
        self,
        config: SupabaseConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    def _client(self, access_token: str | None = None) -> httpx.Client:
        return build_http_client(self.config, access_token, transport=self._transport)

    def send_magic_link(self, email: str, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        with self._client() as client:
            try:
                resp = client.post(
                    "/auth/v1/otp",
                    params=params,
                    json={"email": email, "create_user": True},
                )
            except httpx.HTTPError as e:
                raise IdentityProviderError(f"Magic link request failed: {e}") from e

        if resp.is_error:
            payload = error_payload(resp)
            raise IdentityProviderError(
                payload.get("msg") or payload.get("message") or "Error sending magic link"
            )

    def authorize_url(
        self,
        provider: str,
        redirect_to: str | None = None,
        query_params: dict[str, str] | None = None,
    ) -> str:
        params: dict[str, str] = {"provider": provider}
        if redirect_to:
            params["redirect_to"] = redirect_to
        params.update(query_params or {})
        return f"{self.config.base_url}/auth/v1/authorize?{urlencode(params)}"

    def get_user(self, access_token: str) -> Principal:
        with self._client(access_token) as client:
            try:
                resp = client.get("/auth/v1/user")
            except httpx.HTTPError as e:
                raise IdentityProviderError(f"User lookup failed: {e}") from e

        if resp.status_code in (401, 403):
            raise InvalidTokenError("Access token rejected")
        if resp.is_error:
            raise IdentityProviderError(f"User lookup failed: {resp.status_code}")

        return principal_from_user(resp.json())

    def sign_out(self, access_token: str) -> None:
        with self._client(access_token) as client:
            try:
                resp = client.post("/auth/v1/logout")
            except httpx.HTTPError as e:
                raise IdentityProviderError(f"Sign out failed: {e}") from e

        # An already-expired token is as good as signed out.
        if resp.is_error and resp.status_code not in (401, 403, 404):
            raise IdentityProviderError(f"Sign out failed: {resp.status_code}")
        logger.debug("Signed out session")

"""Shared HTTP plumbing for the Supabase REST APIs (storage, auth, PostgREST)."""

from __future__ import annotations

from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class SupabaseConfig:
    url: str
    anon_key: str

    @property
    def base_url(self) -> str:
        return self.url.rstrip("/")


def build_http_client(
    config: SupabaseConfig,
    access_token: str | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """
    Client carrying the project key and, when signed in, the caller's token.

    No timeout is applied locally; calls wait until the backend resolves.
    """
    headers = {"apikey": config.anon_key}
    headers["Authorization"] = f"Bearer {access_token or config.anon_key}"
    return httpx.Client(
        base_url=config.base_url,
        headers=headers,
        timeout=None,
        transport=transport,
    )


def error_payload(resp: httpx.Response) -> dict[str, str]:
    """Best-effort decode of a Supabase error body."""
    try:
        body = resp.json()
    except ValueError:
        return {"message": resp.text}
    if not isinstance(body, dict):
        return {"message": str(body)}
    return {k: str(v) for k, v in body.items()}

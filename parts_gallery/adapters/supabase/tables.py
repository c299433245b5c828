"""
PostgREST repositories for the inventory tables.

Requests carry the caller's access token, so the tables' row-level
security applies exactly as it does for the browser client.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

import httpx

from parts_gallery.adapters.supabase.client import (
    SupabaseConfig,
    build_http_client,
    error_payload,
)
from parts_gallery.core.ports.db import RepoError, RepoForbiddenError
from parts_gallery.domain.entities import PartCategory, PartRecord, SavedItem

logger = logging.getLogger(__name__)

# Postgres insufficient_privilege, raised by RLS WITH CHECK violations
RLS_VIOLATION = "42501"


class _PostgrestRepo:
    def __init__(
        self,
        config: SupabaseConfig,
        access_token: str | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = build_http_client(config, access_token, transport=transport)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, table: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = self._client.request(method, f"/rest/v1/{table}", **kwargs)
        except httpx.HTTPError as e:
            raise RepoError(f"{table}: request failed: {e}") from e

        if resp.is_error:
            payload = error_payload(resp)
            message = payload.get("message") or resp.text
            logger.warning("%s %s failed (%s): %s", method, table, resp.status_code, message)
            if resp.status_code in (401, 403) or payload.get("code") == RLS_VIOLATION:
                raise RepoForbiddenError(f"{table}: {message}")
            raise RepoError(f"{table}: {message}")
        return resp


def _part_from_row(row: dict[str, Any]) -> PartRecord:
    return PartRecord.model_validate(
        {
            **row,
            "features": row.get("features") or [],
            "compatible_models": row.get("compatible_models") or [],
            "compatible_years": row.get("compatible_years") or [],
        }
    )


class SupabasePartRepo(_PostgrestRepo):
    table = "vehicle_parts"

    def _get_one(self, column: str, value: str) -> PartRecord | None:
        resp = self._request("GET", self.table, params={"select": "*", column: f"eq.{value}"})
        rows = resp.json()
        return _part_from_row(rows[0]) if rows else None

    def get_by_slug(self, part_slug: str) -> PartRecord | None:
        return self._get_one("part_slug", part_slug)

    def get_by_id(self, part_id: UUID) -> PartRecord | None:
        return self._get_one("id", str(part_id))

    def upsert(self, part: PartRecord) -> PartRecord:
        body = part.model_dump(mode="json", exclude={"main_image_url"})
        resp = self._request(
            "POST",
            self.table,
            params={"on_conflict": "part_slug"},
            json=body,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        rows = resp.json()
        if not rows:
            raise RepoForbiddenError(f"{self.table}: upsert of {part.part_slug} returned no row")
        return _part_from_row(rows[0])

    def set_main_image_url(self, part_slug: str, url: str | None, owner_id: str) -> bool:
        resp = self._request(
            "PATCH",
            self.table,
            params={"part_slug": f"eq.{part_slug}", "owner_user_id": f"eq.{owner_id}"},
            json={"main_image_url": url},
            headers={"Prefer": "return=representation"},
        )
        return bool(resp.json())


class SupabaseCategoryRepo(_PostgrestRepo):
    table = "part_categories"

    def list_all(self) -> list[PartCategory]:
        resp = self._request("GET", self.table, params={"select": "*", "order": "name.asc"})
        return [PartCategory.model_validate(row) for row in resp.json()]


class SupabaseSavedItemRepo(_PostgrestRepo):
    table = "saved_items"

    def add(self, item: SavedItem) -> SavedItem:
        resp = self._request(
            "POST",
            self.table,
            json=item.model_dump(mode="json"),
            headers={"Prefer": "return=representation"},
        )
        rows = resp.json()
        return SavedItem.model_validate(rows[0]) if rows else item

    def delete(self, user_id: str, part_id: UUID) -> bool:
        resp = self._request(
            "DELETE",
            self.table,
            params={"user_id": f"eq.{user_id}", "part_id": f"eq.{part_id}"},
            headers={"Prefer": "return=representation"},
        )
        return bool(resp.json())

    def list_for_user(self, user_id: str) -> list[SavedItem]:
        resp = self._request(
            "GET",
            self.table,
            params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.desc"},
        )
        return [SavedItem.model_validate(row) for row in resp.json()]

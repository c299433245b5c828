"""
Supabase Storage Adapter.

Implements StoragePort against the Storage REST API
({url}/storage/v1/object/...), authenticated as the calling principal so the
backend's row-level security evaluates the ownership policy.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, BinaryIO
from urllib.parse import quote

import httpx

from parts_gallery.adapters.supabase.client import (
    SupabaseConfig,
    build_http_client,
    error_payload,
)
from parts_gallery.core.ports.storage import (
    ConflictError,
    ForbiddenError,
    KeyNotFoundError,
    RemoveResult,
    SortBy,
    StorageError,
    StorageUnavailableError,
    public_object_url,
)
from parts_gallery.domain.entities import ObjectInfo

logger = logging.getLogger(__name__)


def _parse_dt(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def map_storage_error(resp: httpx.Response, path: str, action: str) -> StorageError:
    """
    Translate a Storage API error response into the storage error hierarchy.

    The API often answers 400 with the semantic status in the body's
    "statusCode" field, so both are consulted.
    """
    payload = error_payload(resp)
    code = payload.get("statusCode", str(resp.status_code))
    message = payload.get("message", "")
    error = payload.get("error", "")

    if code == "409" or error == "Duplicate":
        return ConflictError(path)
    if code == "404" or error == "not_found":
        return KeyNotFoundError(path)
    if code in ("401", "403") or "row-level security" in message:
        return ForbiddenError(path, action)
    return StorageUnavailableError(
        f"Storage {action} failed for {path}: {resp.status_code} {message or error}"
    )


class SupabaseStorage:
    """StoragePort backed by Supabase Storage, bound to one access token."""

    def __init__(
        self,
        config: SupabaseConfig,
        bucket: str,
        access_token: str | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.bucket = bucket
        self._client = build_http_client(config, access_token, transport=transport)

    def close(self) -> None:
        self._client.close()

    def _object_url(self, path: str) -> str:
        return f"/storage/v1/object/{self.bucket}/{quote(path.lstrip('/'))}"

    def _send(self, method: str, url: str, path: str, action: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise StorageUnavailableError(f"Storage {action} failed for {path}: {e}") from e

        if resp.is_error:
            raise map_storage_error(resp, path, action)
        return resp

    # --- StoragePort ---

    def list(
        self,
        prefix: str,
        *,
        limit: int = 100,
        offset: int = 0,
        sort_by: SortBy | None = None,
    ) -> list[ObjectInfo]:
        sort_by = sort_by or SortBy()
        resp = self._send(
            "POST",
            f"/storage/v1/object/list/{self.bucket}",
            prefix,
            "select",
            json={
                "prefix": prefix,
                "limit": limit,
                "offset": offset,
                "sortBy": {"column": sort_by.column, "order": sort_by.order},
            },
        )

        items: list[ObjectInfo] = []
        for row in resp.json():
            metadata = row.get("metadata") or {}
            items.append(
                ObjectInfo(
                    name=row["name"],
                    id=row.get("id"),
                    created_at=_parse_dt(row.get("created_at")),
                    updated_at=_parse_dt(row.get("updated_at")),
                    size_bytes=metadata.get("size"),
                    content_type=metadata.get("mimetype"),
                )
            )
        return items

    def upload(
        self,
        path: str,
        data: bytes | BinaryIO,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        body = data if isinstance(data, bytes) else data.read()
        key = path.lstrip("/")

        try:
            self._post_object(key, body, content_type)
        except ConflictError:
            if not upsert:
                raise
            # The bucket grants no UPDATE, so overwrite is delete + insert.
            logger.debug("Replacing existing object %s", key)
            result = self.remove([key])
            if key in result.failed:
                raise ForbiddenError(key, "replace") from None
            try:
                self._post_object(key, body, content_type)
            except StorageError as e:
                logger.error("Previous object %s was removed but its replacement failed: %s", key, e)
                raise StorageUnavailableError(
                    f"Previous object at {key} was removed and its replacement failed: {e}"
                ) from e

        return key

    def _post_object(self, key: str, body: bytes, content_type: str) -> None:
        self._send(
            "POST",
            self._object_url(key),
            key,
            "insert",
            content=body,
            headers={
                "Content-Type": content_type,
                "x-upsert": "false",
                "cache-control": "max-age=3600",
            },
        )

    def remove(self, paths: list[str]) -> RemoveResult:
        result = RemoveResult()
        if not paths:
            return result

        resp = self._send(
            "DELETE",
            f"/storage/v1/object/{self.bucket}",
            ", ".join(paths),
            "delete",
            json={"prefixes": paths},
        )

        # Rows hidden by row-level security are skipped without an error, so a
        # missing object is indistinguishable from a foreign one and both fail
        # as forbidden.
        removed = {row.get("name") for row in resp.json()}
        for path in paths:
            if path.lstrip("/") in removed:
                result.deleted.append(path)
            else:
                result.failed[path] = "forbidden"
        return result

    def download(self, path: str) -> bytes:
        key = path.lstrip("/")
        resp = self._send(
            "GET",
            f"/storage/v1/object/authenticated/{self.bucket}/{quote(key)}",
            key,
            "select",
        )
        return resp.content

    def get_public_url(self, path: str) -> str:
        return public_object_url(self.config.base_url, self.bucket, path)

"""
Object storage port.

Protocol-based interface for the bucket the gallery writes to.
Implementations: local filesystem emulation (dev/tests), Supabase Storage.

Every call is re-checked by the backend's ownership policy; the client
performs no access check of its own and treats a policy rejection like any
other ForbiddenError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, Literal, Protocol
from urllib.parse import quote

from parts_gallery.domain.entities import ObjectInfo

ErrorKind = Literal[
    "validation_failed",
    "unauthenticated",
    "forbidden",
    "not_found",
    "conflict",
    "storage_unavailable",
    "partial_failure",
]

SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class SortBy:
    column: str = "created_at"
    order: SortOrder = "desc"


@dataclass
class RemoveResult:
    """Outcome of a batch remove. Deletes are never rolled back."""

    deleted: list[str] = field(default_factory=list)
    failed: dict[str, ErrorKind] = field(default_factory=dict)

    @property
    def is_partial(self) -> bool:
        return bool(self.deleted) and bool(self.failed)


class StoragePort(Protocol):
    """Bucket-scoped object storage bound to one calling principal."""

    bucket: str

    def list(
        self,
        prefix: str,
        *,
        limit: int = 100,
        offset: int = 0,
        sort_by: SortBy | None = None,
    ) -> list[ObjectInfo]:
        """
        List the immediate children of prefix.

        Raises:
            ForbiddenError: prefix is outside the caller's folder
            StorageUnavailableError: transport or backend failure
        """
        ...

    def upload(
        self,
        path: str,
        data: bytes | BinaryIO,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        """
        Store bytes at path and return the stored path.

        Raises:
            ConflictError: path exists and upsert is False
            ForbiddenError: ownership policy rejected the write
            StorageUnavailableError: transport or backend failure
        """
        ...

    def remove(self, paths: list[str]) -> RemoveResult:
        """Delete zero or more objects; per-path failures land in RemoveResult.failed."""
        ...

    def download(self, path: str) -> bytes:
        """
        Fetch object bytes.

        Raises:
            KeyNotFoundError: no object at path
            ForbiddenError: ownership policy rejected the read
        """
        ...

    def get_public_url(self, path: str) -> str:
        """Derive the public URL of an object. Pure, no network call."""
        ...


def public_object_url(base_url: str, bucket: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/storage/v1/object/public/{bucket}/{quote(path.lstrip('/'))}"


class StorageError(Exception):
    """Base class for storage errors."""

    kind: ErrorKind = "storage_unavailable"


class ForbiddenError(StorageError):
    """Raised when the ownership policy rejects an operation."""

    kind: ErrorKind = "forbidden"

    def __init__(self, path: str, action: str = "access") -> None:
        self.path = path
        self.action = action
        super().__init__(f"Forbidden: cannot {action} {path}")


class ConflictError(StorageError):
    """Raised when writing without upsert to a path that already exists."""

    kind: ErrorKind = "conflict"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"The resource already exists: {path}")


class KeyNotFoundError(StorageError):
    """Raised when key doesn't exist."""

    kind: ErrorKind = "not_found"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Object not found: {path}")


class StorageUnavailableError(StorageError):
    """Raised on transport failures or unexpected backend responses."""

    kind: ErrorKind = "storage_unavailable"


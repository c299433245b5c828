"""
Local Filesystem Bucket Adapter.

Implements StoragePort on the local filesystem for development and tests,
emulating a hosted bucket: objects live under {base_path}/{bucket}/ as
{key}.bin with a {key}.meta.json sidecar, and the ownership policy is
evaluated on every call the way the backend's row-level security would.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO
from uuid import uuid4

from parts_gallery.core.ports.storage import (
    ConflictError,
    ForbiddenError,
    KeyNotFoundError,
    RemoveResult,
    SortBy,
    StorageUnavailableError,
    public_object_url,
)
from parts_gallery.domain.entities import ObjectInfo, StorageAction
from parts_gallery.domain.policy import OwnershipPolicy

logger = logging.getLogger(__name__)

DATA_SUFFIX = ".bin"
META_SUFFIX = ".meta.json"


class LocalBucketStorage:
    """
    Local filesystem implementation of StoragePort.

    One instance is bound to one calling principal; use as_principal() to
    derive a client for another principal over the same files.
    """

    def __init__(
        self,
        base_path: str | Path,
        bucket: str,
        *,
        public_base_url: str = "http://localhost:8000",
        principal_id: str | None = None,
        policy: OwnershipPolicy | None = None,
        create_dirs: bool = True,
    ) -> None:
        self.base_path = Path(base_path)
        self.bucket = bucket
        self.public_base_url = public_base_url
        self.principal_id = principal_id
        self.policy = policy or OwnershipPolicy(bucket)
        self.root = (self.base_path / bucket).resolve()

        if create_dirs:
            self.root.mkdir(parents=True, exist_ok=True)

    def as_principal(self, principal_id: str | None) -> LocalBucketStorage:
        return LocalBucketStorage(
            self.base_path,
            self.bucket,
            public_base_url=self.public_base_url,
            principal_id=principal_id,
            policy=self.policy,
            create_dirs=False,
        )

    # --- Helpers ---

    def _authorize(self, path: str, action: StorageAction) -> None:
        if not self.policy.check(self.principal_id, self.bucket, path, action):
            logger.info(
                "Policy rejected %s on %s/%s for %s",
                action,
                self.bucket,
                path,
                self.principal_id,
            )
            raise ForbiddenError(path, action)

    def _key_to_paths(self, key: str) -> tuple[Path, Path]:
        """Convert storage key to file paths (data and metadata)."""
        parts = key.strip("/").split("/")
        if any(p in ("", ".", "..") for p in parts):
            raise ForbiddenError(key, "address")
        data_path = self.root.joinpath(*parts[:-1], parts[-1] + DATA_SUFFIX)
        meta_path = self.root.joinpath(*parts[:-1], parts[-1] + META_SUFFIX)
        return data_path, meta_path

    def _folder_path(self, prefix: str) -> Path:
        parts = [p for p in prefix.strip("/").split("/") if p]
        if any(p in (".", "..") for p in parts):
            raise ForbiddenError(prefix, "address")
        return self.root.joinpath(*parts)

    @staticmethod
    def _read_bytes(data: bytes | BinaryIO) -> bytes:
        if isinstance(data, bytes):
            return data
        return data.read()

    def _load_metadata(self, meta_path: Path, name: str) -> ObjectInfo:
        if not meta_path.exists():
            # Reconstruct metadata for objects written without a sidecar
            data_path = meta_path.with_name(name + DATA_SUFFIX)
            stat = data_path.stat()
            modified = datetime.fromtimestamp(stat.st_mtime, UTC)
            return ObjectInfo(
                name=name,
                id=str(uuid4()),
                created_at=modified,
                updated_at=modified,
                size_bytes=stat.st_size,
                content_type="application/octet-stream",
                sha256=hashlib.sha256(data_path.read_bytes()).hexdigest(),
            )

        with open(meta_path) as f:
            meta = json.load(f)

        return ObjectInfo(
            name=name,
            id=meta["id"],
            created_at=datetime.fromisoformat(meta["created_at"]),
            updated_at=datetime.fromisoformat(meta["updated_at"]),
            size_bytes=meta["size_bytes"],
            content_type=meta["content_type"],
            sha256=meta["sha256"],
        )

    # --- StoragePort ---

    def list(
        self,
        prefix: str,
        *,
        limit: int = 100,
        offset: int = 0,
        sort_by: SortBy | None = None,
    ) -> list[ObjectInfo]:
        folder = prefix.strip("/")
        self._authorize(f"{folder}/", "select")
        sort_by = sort_by or SortBy()

        directory = self._folder_path(folder)
        if not directory.is_dir():
            return []

        folders: list[ObjectInfo] = []
        files: list[ObjectInfo] = []
        try:
            for entry in directory.iterdir():
                if entry.is_dir():
                    folders.append(ObjectInfo(name=entry.name))
                elif entry.name.endswith(DATA_SUFFIX):
                    name = entry.name[: -len(DATA_SUFFIX)]
                    files.append(
                        self._load_metadata(entry.with_name(name + META_SUFFIX), name)
                    )
        except OSError as e:
            raise StorageUnavailableError(f"Cannot list {prefix}: {e}") from e

        folders.sort(key=lambda o: o.name)
        files.sort(key=lambda o: o.name)
        if sort_by.column in ("created_at", "updated_at"):
            epoch = datetime.min.replace(tzinfo=UTC)
            files.sort(
                key=lambda o: getattr(o, sort_by.column) or epoch,
                reverse=sort_by.order == "desc",
            )
        elif sort_by.order == "desc":
            files.reverse()

        entries = folders + files
        return entries[offset : offset + limit]

    def upload(
        self,
        path: str,
        data: bytes | BinaryIO,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        key = path.strip("/")
        self._authorize(key, "insert")
        data_path, meta_path = self._key_to_paths(key)

        if data_path.exists() and not upsert:
            raise ConflictError(key)

        data_bytes = self._read_bytes(data)
        now = datetime.now(UTC)

        try:
            data_path.parent.mkdir(parents=True, exist_ok=True)
            with open(data_path, "wb") as f:
                f.write(data_bytes)

            with open(meta_path, "w") as f:
                json.dump(
                    {
                        "id": str(uuid4()),
                        "created_at": now.isoformat(),
                        "updated_at": now.isoformat(),
                        "size_bytes": len(data_bytes),
                        "content_type": content_type,
                        "sha256": hashlib.sha256(data_bytes).hexdigest(),
                    },
                    f,
                )
        except OSError as e:
            # Leave neither half of a failed write behind
            data_path.unlink(missing_ok=True)
            meta_path.unlink(missing_ok=True)
            raise StorageUnavailableError(f"Cannot write {key}: {e}") from e

        return key

    def remove(self, paths: list[str]) -> RemoveResult:
        result = RemoveResult()
        for path in paths:
            key = path.strip("/")
            try:
                self._authorize(key, "delete")
                data_path, meta_path = self._key_to_paths(key)
            except ForbiddenError:
                result.failed[path] = "forbidden"
                continue

            if not data_path.exists():
                result.failed[path] = "not_found"
                continue

            try:
                data_path.unlink()
                meta_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Cannot remove %s: %s", key, e)
                result.failed[path] = "storage_unavailable"
                continue
            result.deleted.append(path)

        return result

    def download(self, path: str) -> bytes:
        key = path.strip("/")
        self._authorize(key, "select")
        data, _ = self.get_public(key)
        return data

    def get_public_url(self, path: str) -> str:
        return public_object_url(self.public_base_url, self.bucket, path)

    # --- Public bucket reads (no principal) ---

    def get_public(self, path: str) -> tuple[bytes, ObjectInfo]:
        """Read an object the way the public endpoint of a public bucket does."""
        key = path.strip("/")
        data_path, meta_path = self._key_to_paths(key)
        if not data_path.exists():
            raise KeyNotFoundError(key)

        with open(data_path, "rb") as f:
            data = f.read()

        return data, self._load_metadata(meta_path, key.rsplit("/", 1)[-1])


def create_local_storage(
    base_path: str | Path | None = None,
    *,
    bucket: str,
    public_base_url: str = "http://localhost:8000",
    env_var: str = "GALLERY_DATA_DIR",
    default_path: str = "./data",
) -> LocalBucketStorage:
    """
    Factory function to create LocalBucketStorage from config.

    Objects are kept under {data_dir}/storage/{bucket}.
    """
    if base_path is None:
        base_path = Path(os.environ.get(env_var, default_path)) / "storage"

    return LocalBucketStorage(base_path, bucket, public_base_url=public_base_url)

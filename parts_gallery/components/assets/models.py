"""
Assets component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO

from parts_gallery.core.ports.storage import ErrorKind, SortBy
from parts_gallery.domain.entities import VIEW_TYPES, GalleryImage, SessionContext

# --- Error ---


@dataclass(frozen=True)
class AssetError:
    """User-visible failure of an asset operation."""

    kind: ErrorKind
    code: str
    message: str
    path: str = ""


# --- Input Models ---


@dataclass(frozen=True)
class UploadImageInput:
    """
    Input for uploading one image.

    With view_type set, the image goes to the fixed slot
    {folder}/{view}_jpg/{view}.{ext} and replaces whatever was there.
    Without it, a fresh unique name is generated.
    """

    session: SessionContext
    filename: str
    content_type: str
    data: bytes | BinaryIO
    size: int | None = None  # computed from data when None
    view_type: str | None = None
    part_slug: str | None = None


@dataclass(frozen=True)
class ListImagesInput:
    session: SessionContext
    part_slug: str | None = None
    view_type: str | None = None


@dataclass(frozen=True)
class DeleteImagesInput:
    """Either leaf names inside the folder, or full object paths."""

    session: SessionContext
    names: list[str] = field(default_factory=list)
    paths: list[str] = field(default_factory=list)
    part_slug: str | None = None


@dataclass(frozen=True)
class EnsureFoldersInput:
    session: SessionContext
    part_slug: str | None = None


# --- Configuration Models ---


@dataclass(frozen=True)
class GalleryConfig:
    """Upload limits and listing options, normally loaded from rules.yaml."""

    max_upload_bytes: int = 5 * 1024 * 1024
    mime_prefix: str = "image/"
    allowed_extensions: tuple[str, ...] = ("jpg", "jpeg", "png", "gif", "webp")
    list_limit: int = 100
    list_offset: int = 0
    sort_by: SortBy = field(default_factory=SortBy)
    placeholder_name: str = ".emptyFolderPlaceholder"
    view_types: tuple[str, ...] = VIEW_TYPES
    naming: str = "uuid"  # "uuid" | "timestamp"


# --- Output Models ---


@dataclass(frozen=True)
class UploadOutput:
    path: str = ""
    public_url: str = ""
    replaced: list[str] = field(default_factory=list)
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ImageListOutput:
    folder: str
    items: list[GalleryImage]
    stale: bool = False
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class DeleteOutput:
    deleted: list[str] = field(default_factory=list)
    failed: dict[str, ErrorKind] = field(default_factory=dict)
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class EnsureFoldersOutput:
    folder: str = ""
    ensured: list[str] = field(default_factory=list)
    failed: dict[str, AssetError] = field(default_factory=dict)
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True

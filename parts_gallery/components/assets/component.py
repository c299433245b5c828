"""
Assets component - folder-scoped image upload, listing and removal.

Every path starts with the caller's folder key, so the bucket's ownership
policy (first path segment == principal id) accepts it. The component never
checks ownership itself; a policy rejection is just another ForbiddenError
from the storage port.

Invariants:
- Validation runs before any storage call; a rejected file never reaches the network
- Unscoped uploads always get a fresh name and never overwrite
- A view slot ({folder}/{view}_jpg/) holds at most one image
- Partial removes are reported per path and never rolled back
- Uploading or removing a part's main image refreshes its cached main_image_url
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from concurrent.futures import ThreadPoolExecutor
from typing import BinaryIO
from uuid import uuid4

from parts_gallery.core.ports.db import RepoError
from parts_gallery.core.ports.storage import StorageError
from parts_gallery.domain.entities import GalleryImage, ObjectInfo, SessionContext
from parts_gallery.domain.sanitize import (
    InvalidFolderKeyError,
    part_folder_key,
    sanitize_folder_name,
)

from .models import (
    AssetError,
    DeleteImagesInput,
    DeleteOutput,
    EnsureFoldersInput,
    EnsureFoldersOutput,
    GalleryConfig,
    ImageListOutput,
    ListImagesInput,
    UploadImageInput,
    UploadOutput,
)
from .ports import MainImagePort, StoragePort
from .snapshots import GallerySnapshots

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = GalleryConfig()

MAIN_VIEW = "main"
PLACEHOLDER_CONTENT_TYPE = "application/octet-stream"

_BASE36 = string.digits + string.ascii_lowercase


# --- Helper Functions ---


def _read_bytes(data: bytes | BinaryIO) -> bytes:
    if isinstance(data, bytes):
        return data
    data_bytes = data.read()
    if hasattr(data, "seek"):
        data.seek(0)
    return data_bytes


def _storage_error(e: StorageError, path: str) -> AssetError:
    return AssetError(kind=e.kind, code=e.kind, message=str(e), path=path)


def file_extension(filename: str) -> str:
    """Lower-cased text after the final '.', or "" when there is none."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def resolve_folder(session: SessionContext, part_slug: str | None = None) -> str:
    """
    Folder an operation works in: the caller's own folder, or a part folder
    nested under it.

    Raises:
        InvalidFolderKeyError: the folder key or part slug is empty
    """
    if not session.folder_key:
        raise InvalidFolderKeyError(f"Empty folder key for principal {session.principal.id!r}")
    if part_slug is None:
        return session.folder_key
    return part_folder_key(session.folder_key, part_slug)


def _folder_error(e: InvalidFolderKeyError) -> AssetError:
    return AssetError(kind="validation_failed", code="empty_folder_key", message=str(e))


# --- Naming ---


def generate_object_name(extension: str) -> str:
    """Random 128-bit name, e.g. '3f6c...e1.png'."""
    return f"{uuid4()}.{extension}"


def generate_timestamp_name(extension: str, *, now_ms: int | None = None) -> str:
    """Millisecond timestamp plus 7 random base36 chars, e.g. '1711475427000-k3j9x0a.jpg'."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"{now_ms}-{suffix}.{extension}"


def build_asset_path(folder: str, extension: str, *, naming: str = "uuid") -> str:
    """Unscoped path {folder}/{unique}.{ext}; every call yields a new path."""
    if naming == "timestamp":
        return f"{folder}/{generate_timestamp_name(extension)}"
    return f"{folder}/{generate_object_name(extension)}"


def view_slot(folder: str, view_type: str) -> str:
    return f"{folder}/{view_type}_jpg"


def build_view_path(
    folder: str,
    view_type: str,
    extension: str,
    view_types: tuple[str, ...] = DEFAULT_CONFIG.view_types,
) -> str:
    """
    Fixed path of a view slot: {folder}/{view}_jpg/{view}.{ext}.

    Raises:
        ValueError: unknown view type
    """
    if view_type not in view_types:
        raise ValueError(f"Unknown view type: {view_type}")
    return f"{view_slot(folder, view_type)}/{view_type}.{extension}"


# --- Validation Functions ---


def validate_mime_type(content_type: str, config: GalleryConfig = DEFAULT_CONFIG) -> list[AssetError]:
    if not (content_type or "").startswith(config.mime_prefix):
        return [
            AssetError(
                kind="validation_failed",
                code="invalid_mime_type",
                message="Selected file must be an image.",
            )
        ]
    return []


def validate_size(size: int, config: GalleryConfig = DEFAULT_CONFIG) -> list[AssetError]:
    if size > config.max_upload_bytes:
        limit_mb = config.max_upload_bytes // (1024 * 1024)
        return [
            AssetError(
                kind="validation_failed",
                code="file_too_large",
                message=f"Image size must be less than {limit_mb}MB.",
            )
        ]
    return []


def validate_extension(filename: str, config: GalleryConfig = DEFAULT_CONFIG) -> list[AssetError]:
    if file_extension(filename) not in config.allowed_extensions:
        return [
            AssetError(
                kind="validation_failed",
                code="invalid_extension",
                message="Invalid file type. Supported formats: JPG, PNG, GIF, WebP",
            )
        ]
    return []


def validate_file(
    filename: str,
    content_type: str,
    size: int,
    config: GalleryConfig = DEFAULT_CONFIG,
) -> list[AssetError]:
    """
    Run every upload rule and report all failures.

    A missing or empty file is reported alone.
    """
    if not filename or size <= 0:
        return [
            AssetError(
                kind="validation_failed",
                code="no_file",
                message="You must select an image to upload.",
            )
        ]

    errors: list[AssetError] = []
    errors.extend(validate_mime_type(content_type, config))
    errors.extend(validate_size(size, config))
    errors.extend(validate_extension(filename, config))
    return errors


# --- Main image cache ---


def _refresh_main_image(
    parts: MainImagePort | None,
    session: SessionContext,
    part_slug: str | None,
    url: str | None,
) -> list[AssetError]:
    """Write url into the caller's own part record, keyed by its stored slug."""
    if parts is None or part_slug is None:
        return []
    part_slug = sanitize_folder_name(part_slug)
    owner_id = session.principal.id
    try:
        if not parts.set_main_image_url(part_slug, url, owner_id):
            logger.info(
                "No part %s owned by %s, main image URL not cached", part_slug, owner_id
            )
    except RepoError as e:
        logger.warning("Failed to update main image URL of %s: %s", part_slug, e)
        return [
            AssetError(
                kind="storage_unavailable",
                code="main_image_update_failed",
                message=f"Image stored but part record not updated: {e}",
            )
        ]
    return []


# --- Entry Points ---


def run_upload(
    inp: UploadImageInput,
    *,
    storage: StoragePort,
    config: GalleryConfig = DEFAULT_CONFIG,
    parts: MainImagePort | None = None,
) -> UploadOutput:
    data = _read_bytes(inp.data)
    size = inp.size if inp.size is not None else len(data)

    errors = validate_file(inp.filename, inp.content_type, size, config)
    if inp.view_type is not None and inp.view_type not in config.view_types:
        errors.append(
            AssetError(
                kind="validation_failed",
                code="invalid_view_type",
                message=f"Unknown view type '{inp.view_type}'. "
                f"Expected one of: {', '.join(config.view_types)}",
            )
        )
    if errors:
        return UploadOutput(errors=errors, success=False)

    try:
        folder = resolve_folder(inp.session, inp.part_slug)
    except InvalidFolderKeyError as e:
        return UploadOutput(errors=[_folder_error(e)], success=False)

    ext = file_extension(inp.filename)
    if inp.view_type is not None:
        path = build_view_path(folder, inp.view_type, ext, config.view_types)
    else:
        path = build_asset_path(folder, ext, naming=config.naming)

    try:
        stored = storage.upload(
            path,
            data,
            content_type=inp.content_type,
            upsert=inp.view_type is not None,
        )
    except StorageError as e:
        logger.warning("Upload of %s failed: %s", path, e)
        return UploadOutput(path=path, errors=[_storage_error(e, path)], success=False)

    public_url = storage.get_public_url(stored)
    replaced: list[str] = []
    if inp.view_type is not None:
        replaced, errors = _remove_stale_siblings(storage, folder, inp.view_type, stored, config)

    if inp.view_type == MAIN_VIEW:
        errors.extend(_refresh_main_image(parts, inp.session, inp.part_slug, public_url))

    logger.info("Uploaded %s (%d bytes)", stored, size)
    return UploadOutput(
        path=stored,
        public_url=public_url,
        replaced=replaced,
        errors=errors,
        success=not errors,
    )


def _remove_stale_siblings(
    storage: StoragePort,
    folder: str,
    view_type: str,
    stored: str,
    config: GalleryConfig,
) -> tuple[list[str], list[AssetError]]:
    """Remove other-extension leftovers of a view slot after a successful write."""
    slot = view_slot(folder, view_type)
    leaf = stored.rsplit("/", 1)[-1]
    try:
        entries = storage.list(slot, limit=config.list_limit)
    except StorageError as e:
        logger.warning("Could not list slot %s after upload: %s", slot, e)
        return [], [_storage_error(e, slot)]

    stale = [
        f"{slot}/{o.name}"
        for o in entries
        if not o.is_folder and o.name != leaf and o.name.startswith(f"{view_type}.")
    ]
    if not stale:
        return [], []

    try:
        result = storage.remove(stale)
    except StorageError as e:
        logger.warning("Could not remove stale images in %s: %s", slot, e)
        return [], [_storage_error(e, slot)]

    errors = [
        AssetError(
            kind="partial_failure",
            code=kind,
            message=f"Previous image {path} could not be removed",
            path=path,
        )
        for path, kind in result.failed.items()
    ]
    for error in errors:
        logger.warning("Stale view image left behind: %s (%s)", error.path, error.code)
    return result.deleted, errors


def _to_gallery_images(
    storage: StoragePort,
    prefix: str,
    entries: list[ObjectInfo],
    config: GalleryConfig,
) -> list[GalleryImage]:
    images: list[GalleryImage] = []
    for entry in entries:
        if entry.is_folder or entry.name == config.placeholder_name:
            continue
        path = f"{prefix}/{entry.name}"
        images.append(
            GalleryImage(
                name=entry.name,
                path=path,
                public_url=storage.get_public_url(path),
                created_at=entry.created_at,
            )
        )
    return images


def _list_folder(
    storage: StoragePort,
    folder: str,
    view_type: str | None,
    config: GalleryConfig,
) -> list[GalleryImage]:
    list_opts = {"limit": config.list_limit, "offset": config.list_offset, "sort_by": config.sort_by}

    if view_type is not None:
        slot = view_slot(folder, view_type)
        return _to_gallery_images(storage, slot, storage.list(slot, **list_opts), config)

    entries = storage.list(folder, **list_opts)
    images = _to_gallery_images(storage, folder, entries, config)

    # view slots show up as folder entries
    slot_names = {f"{v}_jpg": v for v in config.view_types}
    for entry in entries:
        if entry.is_folder and entry.name in slot_names:
            slot = f"{folder}/{entry.name}"
            images.extend(_to_gallery_images(storage, slot, storage.list(slot, **list_opts), config))
    return images


def run_list(
    inp: ListImagesInput,
    *,
    storage: StoragePort,
    config: GalleryConfig = DEFAULT_CONFIG,
    snapshots: GallerySnapshots | None = None,
) -> ImageListOutput:
    """
    Re-list a folder.

    On failure the last known-good listing is returned with stale=True when
    one exists.
    """
    try:
        folder = resolve_folder(inp.session, inp.part_slug)
    except InvalidFolderKeyError as e:
        return ImageListOutput(folder="", items=[], errors=[_folder_error(e)], success=False)

    if inp.view_type is not None and inp.view_type not in config.view_types:
        return ImageListOutput(
            folder=folder,
            items=[],
            errors=[
                AssetError(
                    kind="validation_failed",
                    code="invalid_view_type",
                    message=f"Unknown view type '{inp.view_type}'",
                )
            ],
            success=False,
        )

    snapshot_key = view_slot(folder, inp.view_type) if inp.view_type else folder
    principal_id = inp.session.principal.id

    try:
        items = _list_folder(storage, folder, inp.view_type, config)
    except StorageError as e:
        logger.warning("Error fetching images for %s: %s", snapshot_key, e)
        previous = snapshots.get(principal_id, snapshot_key) if snapshots is not None else None
        if previous is not None:
            return ImageListOutput(folder=folder, items=previous, stale=True)
        return ImageListOutput(
            folder=folder, items=[], errors=[_storage_error(e, folder)], success=False
        )

    if snapshots is not None:
        snapshots.put(principal_id, snapshot_key, items)
    return ImageListOutput(folder=folder, items=items)


def run_delete(
    inp: DeleteImagesInput,
    *,
    storage: StoragePort,
    parts: MainImagePort | None = None,
) -> DeleteOutput:
    """
    Remove images by leaf name (relative to the folder) or by full path.

    Paths outside the caller's folder are sent as-is; the ownership policy
    rejects them per path.
    """
    try:
        folder = resolve_folder(inp.session, inp.part_slug)
    except InvalidFolderKeyError as e:
        return DeleteOutput(errors=[_folder_error(e)], success=False)

    paths = list(inp.paths) + [f"{folder}/{name.lstrip('/')}" for name in inp.names]
    if not paths:
        return DeleteOutput(
            errors=[
                AssetError(
                    kind="validation_failed",
                    code="no_paths",
                    message="Select at least one image to delete.",
                )
            ],
            success=False,
        )

    try:
        result = storage.remove(paths)
    except StorageError as e:
        logger.warning("Error deleting %d images: %s", len(paths), e)
        return DeleteOutput(errors=[_storage_error(e, "")], success=False)

    errors: list[AssetError] = []
    if result.failed:
        for path, kind in result.failed.items():
            logger.warning("Could not delete %s: %s", path, kind)
            errors.append(
                AssetError(kind=kind, code=kind, message=f"Could not delete {path}", path=path)
            )
    if result.is_partial:
        errors.insert(
            0,
            AssetError(
                kind="partial_failure",
                code="partial_failure",
                message=f"Deleted {len(result.deleted)} of {len(paths)} images",
            ),
        )

    main_prefix = f"{view_slot(folder, MAIN_VIEW)}/{MAIN_VIEW}."
    if inp.part_slug is not None and any(p.startswith(main_prefix) for p in result.deleted):
        errors.extend(_refresh_main_image(parts, inp.session, inp.part_slug, None))

    return DeleteOutput(
        deleted=list(result.deleted),
        failed=dict(result.failed),
        errors=errors,
        success=not errors,
    )


def run_ensure_folders(
    inp: EnsureFoldersInput,
    *,
    storage: StoragePort,
    config: GalleryConfig = DEFAULT_CONFIG,
) -> EnsureFoldersOutput:
    """
    Idempotently create one placeholder object per view slot.

    Runs one worker per view type and reports every slot that failed.
    """
    try:
        folder = resolve_folder(inp.session, inp.part_slug)
    except InvalidFolderKeyError as e:
        return EnsureFoldersOutput(errors=[_folder_error(e)], success=False)

    def ensure(view_type: str) -> str:
        path = f"{view_slot(folder, view_type)}/{config.placeholder_name}"
        return storage.upload(path, b"", content_type=PLACEHOLDER_CONTENT_TYPE, upsert=True)

    ensured: list[str] = []
    failed: dict[str, AssetError] = {}
    with ThreadPoolExecutor(max_workers=len(config.view_types)) as pool:
        futures = {v: pool.submit(ensure, v) for v in config.view_types}
        for view_type, future in futures.items():
            try:
                future.result()
                ensured.append(view_type)
            except StorageError as e:
                logger.warning("Could not create %s folder in %s: %s", view_type, folder, e)
                failed[view_type] = _storage_error(e, view_slot(folder, view_type))

    errors: list[AssetError] = []
    if failed:
        errors.append(
            AssetError(
                kind="partial_failure" if ensured else next(iter(failed.values())).kind,
                code="ensure_folders_failed",
                message=f"Could not create folders: {', '.join(failed)}",
                path=folder,
            )
        )
    return EnsureFoldersOutput(
        folder=folder,
        ensured=ensured,
        failed=failed,
        errors=errors,
        success=not failed,
    )

"""
Assets API routes.

Folder-scoped image upload, listing, removal and folder setup. Every
mutation answers with a fresh listing of the folder it touched.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse

from parts_gallery.api.deps import (
    get_gallery_config,
    get_part_repo,
    get_session_context,
    get_snapshots,
    get_storage,
)
from parts_gallery.api.errors import asset_error_dict, raise_asset_errors, status_for
from parts_gallery.api.schemas import (
    DeleteRequest,
    DeleteResponse,
    EnsureFoldersRequest,
    EnsureFoldersResponse,
    GalleryResponse,
    UploadResponse,
)
from parts_gallery.components.assets import (
    DeleteImagesInput,
    EnsureFoldersInput,
    GalleryConfig,
    GallerySnapshots,
    ListImagesInput,
    UploadImageInput,
    run_delete,
    run_ensure_folders,
    run_list,
    run_upload,
)
from parts_gallery.core.ports.storage import StoragePort
from parts_gallery.domain.entities import SessionContext

router = APIRouter()


def _refresh(
    session: SessionContext,
    part: str | None,
    storage: StoragePort,
    config: GalleryConfig,
    snapshots: GallerySnapshots,
) -> GalleryResponse:
    result = run_list(
        ListImagesInput(session=session, part_slug=part),
        storage=storage,
        config=config,
        snapshots=snapshots,
    )
    return GalleryResponse(folder=result.folder, items=result.items, stale=result.stale)


@router.get("", response_model=GalleryResponse)
def list_images(
    part: Annotated[str | None, Query()] = None,
    view: Annotated[str | None, Query()] = None,
    session: SessionContext = Depends(get_session_context),
    storage: StoragePort = Depends(get_storage),
    config: GalleryConfig = Depends(get_gallery_config),
    snapshots: GallerySnapshots = Depends(get_snapshots),
) -> GalleryResponse:
    """List the caller's images, or one part's images."""
    result = run_list(
        ListImagesInput(session=session, part_slug=part, view_type=view),
        storage=storage,
        config=config,
        snapshots=snapshots,
    )
    if not result.success:
        raise_asset_errors(result.errors)
    return GalleryResponse(folder=result.folder, items=result.items, stale=result.stale)


@router.post("", response_model=UploadResponse)
def upload_image(
    file: UploadFile | None = File(None),
    view_type: Annotated[str | None, Form()] = None,
    part: Annotated[str | None, Form()] = None,
    session: SessionContext = Depends(get_session_context),
    storage: StoragePort = Depends(get_storage),
    config: GalleryConfig = Depends(get_gallery_config),
    snapshots: GallerySnapshots = Depends(get_snapshots),
    part_repo: Any = Depends(get_part_repo),
) -> UploadResponse:
    """Upload one image, optionally into a fixed view slot."""
    content = file.file.read() if file is not None else b""

    inp = UploadImageInput(
        session=session,
        filename=(file.filename or "") if file is not None else "",
        content_type=(file.content_type or "") if file is not None else "",
        data=content,
        view_type=view_type or None,
        part_slug=part or None,
    )
    result = run_upload(inp, storage=storage, config=config, parts=part_repo)

    if not result.public_url:
        raise_asset_errors(result.errors)
    if not result.success:
        # Stored, but a follow-up step failed
        gallery = _refresh(session, inp.part_slug, storage, config, snapshots)
        return JSONResponse(  # type: ignore[return-value]
            status_code=status_for(result.errors),
            content={
                "path": result.path,
                "public_url": result.public_url,
                "replaced": result.replaced,
                "errors": [asset_error_dict(e) for e in result.errors],
                "gallery": gallery.model_dump(mode="json"),
            },
        )

    return UploadResponse(
        path=result.path,
        public_url=result.public_url,
        replaced=result.replaced,
        gallery=_refresh(session, inp.part_slug, storage, config, snapshots),
    )


@router.delete("", response_model=DeleteResponse)
def delete_images(
    request: DeleteRequest,
    session: SessionContext = Depends(get_session_context),
    storage: StoragePort = Depends(get_storage),
    config: GalleryConfig = Depends(get_gallery_config),
    snapshots: GallerySnapshots = Depends(get_snapshots),
    part_repo: Any = Depends(get_part_repo),
) -> DeleteResponse:
    """Delete images by name within the folder, or by full path."""
    result = run_delete(
        DeleteImagesInput(
            session=session,
            names=request.names,
            paths=request.paths,
            part_slug=request.part,
        ),
        storage=storage,
        parts=part_repo,
    )
    if not result.deleted:
        raise_asset_errors(result.errors)

    body = DeleteResponse(
        deleted=result.deleted,
        failed=dict(result.failed),
        errors=[asset_error_dict(e) for e in result.errors],
        gallery=_refresh(session, request.part, storage, config, snapshots),
    )
    if not result.success:
        return JSONResponse(  # type: ignore[return-value]
            status_code=status_for(result.errors),
            content=body.model_dump(mode="json"),
        )
    return body


@router.post("/folders", response_model=EnsureFoldersResponse)
def ensure_folders(
    request: EnsureFoldersRequest,
    session: SessionContext = Depends(get_session_context),
    storage: StoragePort = Depends(get_storage),
    config: GalleryConfig = Depends(get_gallery_config),
) -> EnsureFoldersResponse:
    """Create the view slot folders of the caller's folder or of one part."""
    result = run_ensure_folders(
        EnsureFoldersInput(session=session, part_slug=request.part),
        storage=storage,
        config=config,
    )
    if not result.ensured:
        raise_asset_errors(result.errors)

    body = EnsureFoldersResponse(
        folder=result.folder,
        ensured=result.ensured,
        failed={view: err.kind for view, err in result.failed.items()},
    )
    if not result.success:
        return JSONResponse(  # type: ignore[return-value]
            status_code=status_for(result.errors),
            content=body.model_dump(mode="json"),
        )
    return body

"""
Public object serving for the local bucket.

Mirrors the hosted storage's public URL shape
(/storage/v1/object/public/{bucket}/{path}) so URLs produced by
get_public_url() resolve in development. View slot objects are replaced in
place, so responses revalidate instead of being cached as immutable.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from parts_gallery.adapters.local_storage import LocalBucketStorage
from parts_gallery.api.deps import get_local_bucket
from parts_gallery.core.ports.storage import ForbiddenError, KeyNotFoundError

router = APIRouter()


# --- Constants ---

CACHE_CONTROL_PUBLIC = "public, max-age=60, must-revalidate"


# --- Helper Functions ---


def build_etag(sha256: str) -> str:
    """ETag from the first 16 chars of the content hash."""
    return f'"{sha256[:16]}"'


def check_if_none_match(request: Request, etag: str) -> bool:
    """
    Check If-None-Match header for conditional GET.

    Returns True if client has cached version (304 should be returned).
    """
    if_none_match = request.headers.get("if-none-match")
    if if_none_match:
        client_etags = [e.strip() for e in if_none_match.split(",")]
        return etag in client_etags or "*" in client_etags
    return False


# --- Endpoints ---


@router.get(
    "/{bucket}/{path:path}",
    summary="Get public object",
    responses={
        200: {"description": "Object bytes"},
        304: {"description": "Not modified"},
        404: {"description": "Object not found"},
    },
)
def get_public_object(
    request: Request,
    bucket: str,
    path: str,
    storage: LocalBucketStorage = Depends(get_local_bucket),
) -> Response:
    if bucket != storage.bucket:
        raise HTTPException(status_code=404, detail="Bucket not found")

    try:
        data, info = storage.get_public(path)
    except (KeyNotFoundError, ForbiddenError) as e:
        raise HTTPException(status_code=404, detail="Object not found") from e

    etag = build_etag(info.sha256 or "")
    if info.sha256 and check_if_none_match(request, etag):
        return Response(
            status_code=304,
            headers={"ETag": etag, "Cache-Control": CACHE_CONTROL_PUBLIC},
        )

    headers = {"Cache-Control": CACHE_CONTROL_PUBLIC, "Content-Length": str(len(data))}
    if info.sha256:
        headers["ETag"] = etag

    return Response(
        content=data,
        media_type=info.content_type or "application/octet-stream",
        headers=headers,
    )

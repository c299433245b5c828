"""Map component errors onto HTTP responses."""

from collections.abc import Sequence
from typing import Any

from fastapi import HTTPException

from parts_gallery.components.assets import AssetError
from parts_gallery.components.parts import PartValidationError

STATUS_BY_KIND: dict[str, int] = {
    "validation_failed": 400,
    "unauthenticated": 401,
    "forbidden": 403,
    "not_found": 404,
    "conflict": 409,
    "partial_failure": 207,
    "storage_unavailable": 503,
}

STATUS_BY_PART_CODE: dict[str, int] = {
    "forbidden": 403,
    "not_found": 404,
    "store_unavailable": 503,
}


def asset_error_dict(error: AssetError) -> dict[str, Any]:
    return {"kind": error.kind, "code": error.code, "message": error.message, "path": error.path}


def status_for(errors: Sequence[AssetError]) -> int:
    """Status of the first error; a partial failure outranks its per-path details."""
    if not errors:
        return 200
    if any(e.kind == "partial_failure" for e in errors):
        return STATUS_BY_KIND["partial_failure"]
    return STATUS_BY_KIND.get(errors[0].kind, 400)


def raise_asset_errors(errors: Sequence[AssetError]) -> None:
    raise HTTPException(
        status_code=status_for(errors),
        detail={
            "message": errors[0].message,
            "errors": [asset_error_dict(e) for e in errors],
        },
    )


def raise_part_errors(errors: Sequence[PartValidationError]) -> None:
    err = errors[0]
    raise HTTPException(
        status_code=STATUS_BY_PART_CODE.get(err.code, 400),
        detail={
            "message": err.message,
            "errors": [{"code": e.code, "message": e.message, "field": e.field} for e in errors],
        },
    )

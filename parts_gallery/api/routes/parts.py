from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends

from parts_gallery.api.deps import (
    get_category_repo,
    get_part_repo,
    get_saved_item_repo,
    get_session_context,
)
from parts_gallery.api.errors import raise_part_errors
from parts_gallery.api.schemas import PartUpsertRequest, SaveItemRequest
from parts_gallery.components.parts import (
    GetPartInput,
    ListSavedInput,
    SaveItemInput,
    UnsaveItemInput,
    UpsertPartInput,
    run_get_part,
    run_list_categories,
    run_list_saved,
    run_save_item,
    run_unsave_item,
    run_upsert_part,
)
from parts_gallery.domain.entities import PartCategory, PartRecord, SavedItem, SessionContext

router = APIRouter()


@router.get("/categories", response_model=list[PartCategory])
def list_categories(repo: Any = Depends(get_category_repo)) -> list[PartCategory]:
    """All part categories, by name."""
    result = run_list_categories(repo=repo)
    if not result.success:
        raise_part_errors(result.errors)
    return result.items


# --- Saved items ---


@router.get("/saved", response_model=list[SavedItem])
def list_saved(
    session: SessionContext = Depends(get_session_context),
    saved_repo: Any = Depends(get_saved_item_repo),
) -> list[SavedItem]:
    result = run_list_saved(ListSavedInput(actor=session.principal), saved_repo=saved_repo)
    if not result.success:
        raise_part_errors(result.errors)
    return result.items


@router.post("/saved", response_model=SavedItem, status_code=201)
def save_item(
    request: SaveItemRequest,
    session: SessionContext = Depends(get_session_context),
    saved_repo: Any = Depends(get_saved_item_repo),
    part_repo: Any = Depends(get_part_repo),
) -> SavedItem:
    result = run_save_item(
        SaveItemInput(actor=session.principal, part_id=request.part_id),
        saved_repo=saved_repo,
        part_repo=part_repo,
    )
    if not result.success or result.item is None:
        raise_part_errors(result.errors)
    return result.item  # type: ignore[return-value]


@router.delete("/saved/{part_id}")
def unsave_item(
    part_id: UUID,
    session: SessionContext = Depends(get_session_context),
    saved_repo: Any = Depends(get_saved_item_repo),
) -> dict[str, str]:
    result = run_unsave_item(
        UnsaveItemInput(actor=session.principal, part_id=part_id),
        saved_repo=saved_repo,
    )
    if not result.success:
        raise_part_errors(result.errors)
    return {"status": "success"}


# --- Parts ---


@router.put("/{part_slug}", response_model=PartRecord)
def upsert_part(
    part_slug: str,
    request: PartUpsertRequest,
    session: SessionContext = Depends(get_session_context),
    repo: Any = Depends(get_part_repo),
) -> PartRecord:
    """Create or update a part's metadata. main_image_url is managed by uploads."""
    inp = UpsertPartInput(actor=session.principal, part_slug=part_slug, **request.model_dump())
    result = run_upsert_part(inp, repo=repo)
    if not result.success or result.part is None:
        raise_part_errors(result.errors)
    return result.part  # type: ignore[return-value]


@router.get("/{part_slug}", response_model=PartRecord)
def get_part(part_slug: str, repo: Any = Depends(get_part_repo)) -> PartRecord:
    result = run_get_part(GetPartInput(part_slug=part_slug), repo=repo)
    if not result.success or result.part is None:
        raise_part_errors(result.errors)
    return result.part  # type: ignore[return-value]

"""
Parts component - inventory metadata records.

One vehicle_parts row per part, keyed by part_slug. The main_image_url
column is a cached copy of the public URL of the part's "main" view; it is
written only by the assets component when that slot changes, never by a
metadata upsert.
"""

from __future__ import annotations

import logging
from datetime import datetime

from parts_gallery.core.ports.db import RepoError, RepoForbiddenError
from parts_gallery.domain.entities import PartRecord, SavedItem
from parts_gallery.domain.sanitize import sanitize_folder_name

from .models import (
    CategoryListOutput,
    GetPartInput,
    ListSavedInput,
    PartOutput,
    PartValidationError,
    SavedItemOutput,
    SavedListOutput,
    SaveItemInput,
    UnsaveItemInput,
    UpsertPartInput,
)
from .ports import CategoryRepoPort, PartRepoPort, SavedItemRepoPort

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 200


def _repo_error(e: RepoError) -> PartValidationError:
    if isinstance(e, RepoForbiddenError):
        return PartValidationError(code="forbidden", message=str(e))
    return PartValidationError(code="store_unavailable", message=str(e))


# --- Validation ---


def validate_part(inp: UpsertPartInput, part_slug: str) -> list[PartValidationError]:
    errors: list[PartValidationError] = []

    if not inp.name or not inp.name.strip():
        errors.append(
            PartValidationError(code="name_required", message="Name is required", field="name")
        )
    elif len(inp.name) > MAX_NAME_LENGTH:
        errors.append(
            PartValidationError(
                code="name_too_long",
                message=f"Name must be {MAX_NAME_LENGTH} characters or less",
                field="name",
            )
        )

    if not part_slug:
        errors.append(
            PartValidationError(
                code="slug_invalid",
                message="Part slug must contain at least one letter or digit",
                field="part_slug",
            )
        )

    if inp.price < 0:
        errors.append(
            PartValidationError(code="price_negative", message="Price cannot be negative", field="price")
        )

    if inp.stock < 0:
        errors.append(
            PartValidationError(code="stock_negative", message="Stock cannot be negative", field="stock")
        )

    return errors


# --- Entry Points ---


def run_upsert_part(inp: UpsertPartInput, *, repo: PartRepoPort) -> PartOutput:
    part_slug = sanitize_folder_name(inp.part_slug if inp.part_slug is not None else inp.name)

    errors = validate_part(inp, part_slug)
    if errors:
        return PartOutput(part=None, errors=errors, success=False)

    try:
        existing = repo.get_by_slug(part_slug)
        if existing is not None and existing.owner_user_id not in (None, inp.actor.id):
            return PartOutput(
                part=None,
                errors=[
                    PartValidationError(
                        code="forbidden",
                        message=f"Part '{part_slug}' belongs to another user",
                        field="part_slug",
                    )
                ],
                success=False,
            )

        now = datetime.utcnow()
        part = PartRecord(
            part_slug=part_slug,
            name=inp.name.strip(),
            make=inp.make,
            model=inp.model,
            condition=inp.condition,
            price=inp.price,
            stock=inp.stock,
            category_id=inp.category_id,
            features=list(inp.features),
            compatible_models=list(inp.compatible_models),
            compatible_years=list(inp.compatible_years),
            weight=inp.weight,
            dimensions=inp.dimensions,
            material=inp.material,
            warranty=inp.warranty,
            owner_user_id=inp.actor.id,
            updated_at=now,
        )
        if existing is not None:
            part.id = existing.id
            part.created_at = existing.created_at
            part.main_image_url = existing.main_image_url

        saved = repo.upsert(part)
    except RepoError as e:
        logger.warning("Upsert of part %s failed: %s", part_slug, e)
        return PartOutput(part=None, errors=[_repo_error(e)], success=False)

    return PartOutput(part=saved, errors=[], success=True)


def run_get_part(inp: GetPartInput, *, repo: PartRepoPort) -> PartOutput:
    # Same canonical form run_upsert_part stores under
    part_slug = sanitize_folder_name(inp.part_slug)
    try:
        part = repo.get_by_slug(part_slug) if part_slug else None
    except RepoError as e:
        logger.warning("Lookup of part %s failed: %s", inp.part_slug, e)
        return PartOutput(part=None, errors=[_repo_error(e)], success=False)

    if part is None:
        return PartOutput(
            part=None,
            errors=[
                PartValidationError(
                    code="not_found",
                    message=f"Part {inp.part_slug} not found",
                    field="part_slug",
                )
            ],
            success=False,
        )
    return PartOutput(part=part, errors=[], success=True)


def run_list_categories(*, repo: CategoryRepoPort) -> CategoryListOutput:
    try:
        items = repo.list_all()
    except RepoError as e:
        logger.warning("Listing categories failed: %s", e)
        return CategoryListOutput(items=[], errors=[_repo_error(e)], success=False)

    return CategoryListOutput(items=sorted(items, key=lambda c: c.name), errors=[], success=True)


def run_save_item(
    inp: SaveItemInput,
    *,
    saved_repo: SavedItemRepoPort,
    part_repo: PartRepoPort,
) -> SavedItemOutput:
    try:
        if part_repo.get_by_id(inp.part_id) is None:
            return SavedItemOutput(
                errors=[
                    PartValidationError(
                        code="not_found",
                        message=f"Part {inp.part_id} not found",
                        field="part_id",
                    )
                ],
                success=False,
            )

        for item in saved_repo.list_for_user(inp.actor.id):
            if item.part_id == inp.part_id:
                return SavedItemOutput(item=item, success=True)

        item = saved_repo.add(SavedItem(user_id=inp.actor.id, part_id=inp.part_id))
    except RepoError as e:
        logger.warning("Saving part %s failed: %s", inp.part_id, e)
        return SavedItemOutput(errors=[_repo_error(e)], success=False)

    return SavedItemOutput(item=item, success=True)


def run_unsave_item(inp: UnsaveItemInput, *, saved_repo: SavedItemRepoPort) -> SavedItemOutput:
    try:
        removed = saved_repo.delete(inp.actor.id, inp.part_id)
    except RepoError as e:
        logger.warning("Unsaving part %s failed: %s", inp.part_id, e)
        return SavedItemOutput(errors=[_repo_error(e)], success=False)

    if not removed:
        return SavedItemOutput(
            errors=[
                PartValidationError(
                    code="not_found",
                    message=f"Part {inp.part_id} is not saved",
                    field="part_id",
                )
            ],
            success=False,
        )
    return SavedItemOutput(success=True)


def run_list_saved(inp: ListSavedInput, *, saved_repo: SavedItemRepoPort) -> SavedListOutput:
    try:
        items = saved_repo.list_for_user(inp.actor.id)
    except RepoError as e:
        logger.warning("Listing saved items failed: %s", e)
        return SavedListOutput(items=[], errors=[_repo_error(e)], success=False)

    return SavedListOutput(items=items, errors=[], success=True)


def run(
    inp: UpsertPartInput | GetPartInput | SaveItemInput | UnsaveItemInput | ListSavedInput,
    *,
    part_repo: PartRepoPort,
    saved_repo: SavedItemRepoPort | None = None,
) -> PartOutput | SavedItemOutput | SavedListOutput:
    """
    Main entry point for the parts component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, UpsertPartInput):
        return run_upsert_part(inp, repo=part_repo)

    elif isinstance(inp, GetPartInput):
        return run_get_part(inp, repo=part_repo)

    elif isinstance(inp, SaveItemInput):
        if saved_repo is None:
            raise ValueError("SavedItemRepoPort is required for saved item operations")
        return run_save_item(inp, saved_repo=saved_repo, part_repo=part_repo)

    elif isinstance(inp, UnsaveItemInput):
        if saved_repo is None:
            raise ValueError("SavedItemRepoPort is required for saved item operations")
        return run_unsave_item(inp, saved_repo=saved_repo)

    elif isinstance(inp, ListSavedInput):
        if saved_repo is None:
            raise ValueError("SavedItemRepoPort is required for saved item operations")
        return run_list_saved(inp, saved_repo=saved_repo)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")

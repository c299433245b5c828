"""
Parts component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from parts_gallery.domain.entities import PartCategory, PartRecord, Principal, SavedItem

# --- Validation Error ---


@dataclass(frozen=True)
class PartValidationError:
    """Part validation error with actionable message."""

    code: str
    message: str
    field: str = ""


# --- Input Models ---


@dataclass(frozen=True)
class UpsertPartInput:
    """Input for creating or updating a part's metadata record."""

    actor: Principal
    name: str
    part_slug: str | None = None  # derived from name when omitted
    make: str = ""
    model: str = ""
    condition: str = ""
    price: float = 0.0
    stock: int = 0
    category_id: UUID | None = None
    features: list[str] = field(default_factory=list)
    compatible_models: list[str] = field(default_factory=list)
    compatible_years: list[str] = field(default_factory=list)
    weight: str = ""
    dimensions: str = ""
    material: str = ""
    warranty: str = ""


@dataclass(frozen=True)
class GetPartInput:
    part_slug: str


@dataclass(frozen=True)
class SaveItemInput:
    actor: Principal
    part_id: UUID


@dataclass(frozen=True)
class UnsaveItemInput:
    actor: Principal
    part_id: UUID


@dataclass(frozen=True)
class ListSavedInput:
    actor: Principal


# --- Output Models ---


@dataclass(frozen=True)
class PartOutput:
    part: PartRecord | None
    errors: list[PartValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class CategoryListOutput:
    items: list[PartCategory]
    errors: list[PartValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class SavedItemOutput:
    item: SavedItem | None = None
    errors: list[PartValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class SavedListOutput:
    items: list[SavedItem]
    errors: list[PartValidationError] = field(default_factory=list)
    success: bool = True

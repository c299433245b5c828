from __future__ import annotations

from typing import Protocol
from uuid import UUID

from parts_gallery.domain.entities import PartCategory, PartRecord, SavedItem


class PartRepoPort(Protocol):
    """Repository for vehicle_parts rows, keyed by part_slug."""

    def get_by_slug(self, part_slug: str) -> PartRecord | None: ...

    def get_by_id(self, part_id: UUID) -> PartRecord | None: ...

    def upsert(self, part: PartRecord) -> PartRecord:
        """Insert or update the row with part.part_slug."""
        ...

    def set_main_image_url(self, part_slug: str, url: str | None, owner_id: str) -> bool:
        """Refresh the cached main image URL of owner_id's part. Returns False if no such part."""
        ...


class CategoryRepoPort(Protocol):
    """Read-only part_categories."""

    def list_all(self) -> list[PartCategory]:
        """All categories ordered by name ascending."""
        ...


class SavedItemRepoPort(Protocol):
    """saved_items keyed by (user_id, part_id); insert/delete only."""

    def add(self, item: SavedItem) -> SavedItem: ...

    def delete(self, user_id: str, part_id: UUID) -> bool: ...

    def list_for_user(self, user_id: str) -> list[SavedItem]: ...

"""
Assets component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from parts_gallery.core.ports.storage import StoragePort


class MainImagePort(Protocol):
    """Cached main image URL on the part metadata record."""

    def set_main_image_url(self, part_slug: str, url: str | None, owner_id: str) -> bool:
        """Returns False when owner_id has no record for part_slug."""
        ...


__all__ = ["MainImagePort", "StoragePort"]

"""
Last known-good folder listings.

Every mutation is followed by a full re-list. When that re-list fails the
gallery keeps showing the previous snapshot (flagged stale) instead of an
error state.
"""

from __future__ import annotations

import logging
from threading import Lock

from parts_gallery.domain.entities import AuthEvent, GalleryImage, SessionContext

logger = logging.getLogger(__name__)


class GallerySnapshots:
    def __init__(self) -> None:
        self._items: dict[tuple[str, str], list[GalleryImage]] = {}
        self._lock = Lock()

    def get(self, principal_id: str, folder: str) -> list[GalleryImage] | None:
        with self._lock:
            items = self._items.get((principal_id, folder))
            return list(items) if items is not None else None

    def put(self, principal_id: str, folder: str, items: list[GalleryImage]) -> None:
        with self._lock:
            self._items[(principal_id, folder)] = list(items)

    def drop(self, principal_id: str) -> int:
        """Forget every snapshot of one principal. Returns how many were dropped."""
        with self._lock:
            keys = [k for k in self._items if k[0] == principal_id]
            for key in keys:
                del self._items[key]
        return len(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def on_auth_event(self, event: AuthEvent, session: SessionContext) -> None:
        """AuthStateHub listener."""
        if event == "SIGNED_OUT":
            dropped = self.drop(session.principal.id)
            logger.debug("Dropped %d snapshots for %s", dropped, session.principal.id)

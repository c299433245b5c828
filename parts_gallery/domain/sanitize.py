import re

from parts_gallery.domain.entities import FolderKeyMode, Principal

_WHITESPACE_RUN = re.compile(r"\s+")
_INVALID_CHARS = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUN = re.compile(r"-+")


class InvalidFolderKeyError(ValueError):
    """Raised when a principal resolves to an empty folder key."""


def sanitize_folder_name(name: str) -> str:
    """
    Derive a storage-safe slug from a display name.

    "My Car Part!!" -> "my-car-part". All-invalid input yields "".
    """
    slug = name.lower()
    slug = _WHITESPACE_RUN.sub("-", slug)
    slug = _INVALID_CHARS.sub("", slug)
    slug = _HYPHEN_RUN.sub("-", slug)
    return slug.strip("-")


def resolve_folder_key(principal: Principal, mode: FolderKeyMode = "id") -> str:
    """
    Derive the folder key scoping a principal's storage paths.

    "id" uses the immutable identifier. "slug" uses the sanitized display name,
    which is not injective: two names that sanitize alike share a folder.
    """
    if mode == "id":
        key = principal.id
    else:
        key = sanitize_folder_name(principal.display_name)

    if not key:
        raise InvalidFolderKeyError(
            f"Cannot derive a folder key for principal {principal.id!r} (mode={mode})"
        )
    return key


def part_folder_key(owner_key: str, part_slug: str) -> str:
    """Folder for one inventory part, nested under its owner's folder."""
    slug = sanitize_folder_name(part_slug)
    if not owner_key or not slug:
        raise InvalidFolderKeyError(f"Invalid part folder: {owner_key!r}/{part_slug!r}")
    return f"{owner_key}/{slug}"

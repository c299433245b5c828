from datetime import datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
ViewType = Literal["main", "front", "back", "left", "right", "top"]
FolderKeyMode = Literal["id", "slug"]
StorageAction = Literal["insert", "select", "update", "delete"]
AuthEvent = Literal["SIGNED_IN", "SIGNED_OUT"]

VIEW_TYPES: tuple[ViewType, ...] = ("main", "front", "back", "left", "right", "top")

# --- Identity ---

class Principal(BaseModel):
    id: str
    display_name: str = ""
    email: str | None = None


class SessionContext(BaseModel):
    """Authenticated session passed explicitly into every folder-scoped operation."""

    principal: Principal
    access_token: str
    folder_key: str

# --- Storage ---

class ObjectInfo(BaseModel):
    name: str
    id: str | None = None  # None for folder entries
    created_at: datetime | None = None
    updated_at: datetime | None = None
    size_bytes: int | None = None
    content_type: str | None = None
    sha256: str | None = None

    @property
    def is_folder(self) -> bool:
        return self.id is None


class GalleryImage(BaseModel):
    name: str
    path: str
    public_url: str
    created_at: datetime | None = None

# --- Inventory ---

class PartCategory(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    description: str = ""


class PartRecord(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    part_slug: str
    name: str
    make: str = ""
    model: str = ""
    condition: str = ""
    price: float = 0.0
    stock: int = 0
    category_id: UUID | None = None
    features: list[str] = Field(default_factory=list)
    compatible_models: list[str] = Field(default_factory=list)
    compatible_years: list[str] = Field(default_factory=list)
    weight: str = ""
    dimensions: str = ""
    material: str = ""
    warranty: str = ""
    # Cached public URL of the part's "main" view; refreshed on every main-slot mutation.
    main_image_url: str | None = None
    owner_user_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class SavedItem(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    part_id: UUID
    created_at: datetime = Field(default_factory=datetime.utcnow)

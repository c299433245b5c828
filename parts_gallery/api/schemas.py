from uuid import UUID

from pydantic import BaseModel, Field

from parts_gallery.domain.entities import GalleryImage


# --- Auth ---
class MagicLinkRequest(BaseModel):
    email: str
    redirect_to: str | None = None


class SessionRequest(BaseModel):
    access_token: str


class OAuthUrlResponse(BaseModel):
    provider: str
    url: str


class MeResponse(BaseModel):
    id: str
    email: str | None = None
    display_name: str
    folder_key: str


# --- Assets ---
class GalleryResponse(BaseModel):
    folder: str
    items: list[GalleryImage]
    stale: bool = False


class UploadResponse(BaseModel):
    path: str
    public_url: str
    replaced: list[str] = []
    gallery: GalleryResponse


class DeleteRequest(BaseModel):
    names: list[str] = []
    paths: list[str] = []
    part: str | None = None


class DeleteResponse(BaseModel):
    deleted: list[str]
    failed: dict[str, str] = {}
    errors: list[dict[str, str]] = []
    gallery: GalleryResponse


class EnsureFoldersRequest(BaseModel):
    part: str | None = None


class EnsureFoldersResponse(BaseModel):
    folder: str
    ensured: list[str]
    failed: dict[str, str] = {}


# --- Parts ---
class PartUpsertRequest(BaseModel):
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


class SaveItemRequest(BaseModel):
    part_id: UUID


from typing import Literal

from pydantic import BaseModel, Field

from parts_gallery.domain.entities import VIEW_TYPES, FolderKeyMode, ViewType


class UploadsRules(BaseModel):
    max_upload_bytes: int = Field(gt=0)
    mime_prefix: str
    allowlist_extensions: list[str]
    naming: Literal["uuid", "timestamp"] = "uuid"

class StorageRules(BaseModel):
    bucket: str
    list_limit: int = Field(default=100, gt=0)
    list_offset: int = Field(default=0, ge=0)
    sort_column: Literal["created_at", "updated_at", "name"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    placeholder_name: str = ".emptyFolderPlaceholder"

class FoldersRules(BaseModel):
    key_mode: FolderKeyMode = "id"
    view_types: list[ViewType] = Field(default_factory=lambda: list(VIEW_TYPES))

class OpsRules(BaseModel):
    data_dir_required: bool
    required_env: list[str]

class Rules(BaseModel):
    uploads: UploadsRules
    storage: StorageRules
    folders: FoldersRules
    ops: OpsRules

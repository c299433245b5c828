"""
Assets component - folder-scoped image upload, listing and removal.
"""

from .component import (
    build_asset_path,
    build_view_path,
    file_extension,
    generate_object_name,
    generate_timestamp_name,
    resolve_folder,
    run_delete,
    run_ensure_folders,
    run_list,
    run_upload,
    validate_extension,
    validate_file,
    validate_mime_type,
    validate_size,
)
from .models import (
    AssetError,
    DeleteImagesInput,
    DeleteOutput,
    EnsureFoldersInput,
    EnsureFoldersOutput,
    GalleryConfig,
    ImageListOutput,
    ListImagesInput,
    UploadImageInput,
    UploadOutput,
)
from .ports import MainImagePort, StoragePort
from .snapshots import GallerySnapshots

__all__ = [
    # Entry points
    "run_delete",
    "run_ensure_folders",
    "run_list",
    "run_upload",
    # Helpers
    "build_asset_path",
    "build_view_path",
    "file_extension",
    "generate_object_name",
    "generate_timestamp_name",
    "resolve_folder",
    # Validation
    "validate_extension",
    "validate_file",
    "validate_mime_type",
    "validate_size",
    # State
    "GallerySnapshots",
    # Models
    "AssetError",
    "DeleteImagesInput",
    "DeleteOutput",
    "EnsureFoldersInput",
    "EnsureFoldersOutput",
    "GalleryConfig",
    "ImageListOutput",
    "ListImagesInput",
    "UploadImageInput",
    "UploadOutput",
    # Ports
    "MainImagePort",
    "StoragePort",
]

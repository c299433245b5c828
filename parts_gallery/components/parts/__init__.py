"""
Parts component - vehicle part metadata, categories and saved items.
"""

from .component import (
    run,
    run_get_part,
    run_list_categories,
    run_list_saved,
    run_save_item,
    run_unsave_item,
    run_upsert_part,
    validate_part,
)
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

__all__ = [
    # Entry points
    "run",
    "run_get_part",
    "run_list_categories",
    "run_list_saved",
    "run_save_item",
    "run_unsave_item",
    "run_upsert_part",
    "validate_part",
    # Models
    "CategoryListOutput",
    "GetPartInput",
    "ListSavedInput",
    "PartOutput",
    "PartValidationError",
    "SavedItemOutput",
    "SavedListOutput",
    "SaveItemInput",
    "UnsaveItemInput",
    "UpsertPartInput",
    # Ports
    "CategoryRepoPort",
    "PartRepoPort",
    "SavedItemRepoPort",
]

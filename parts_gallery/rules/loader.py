"""
Rules file loading.

rules.yaml is plain YAML, or a markdown document whose first ```yaml fenced
block holds the rules. Either way the result is validated against Rules.
"""

import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from parts_gallery.components.assets.models import GalleryConfig
from parts_gallery.core.ports.storage import SortBy
from parts_gallery.rules.models import Rules

_YAML_FENCE = re.compile(r"^\s*```yaml[^\n]*\n(.*?)^\s*```", re.MULTILINE | re.DOTALL)


def _yaml_source(text: str) -> str:
    fenced = _YAML_FENCE.search(text)
    return fenced.group(1) if fenced else text


def load_rules(path: Path) -> Rules:
    """
    Read and validate the rules at path.

    Raises:
        FileNotFoundError: nothing at path
        ValueError: the YAML does not parse or does not match the schema
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    try:
        data = yaml.safe_load(_yaml_source(path.read_text()))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e


def gallery_config(rules: Rules) -> GalleryConfig:
    """Upload and listing options the assets component runs with."""
    return GalleryConfig(
        max_upload_bytes=rules.uploads.max_upload_bytes,
        mime_prefix=rules.uploads.mime_prefix,
        allowed_extensions=tuple(ext.lower() for ext in rules.uploads.allowlist_extensions),
        list_limit=rules.storage.list_limit,
        list_offset=rules.storage.list_offset,
        sort_by=SortBy(column=rules.storage.sort_column, order=rules.storage.sort_order),
        placeholder_name=rules.storage.placeholder_name,
        view_types=tuple(rules.folders.view_types),
        naming=rules.uploads.naming,
    )

"""
Whisper model catalog.

Maps symbolic model names to a pinned download: source URL plus expected
content digest. The builtin catalog ships as package data
(data/models.json); a user catalog file may add entries or override builtin
ones.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .digest import parse_digest
from .errors import CatalogError, UnknownModel

logger = logging.getLogger(__name__)

CATALOG_VERSION = 1


class CatalogEntry(BaseModel):
    """A pinned model artifact."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    source_url: str = Field(..., alias="url", description="Download URL")
    content_hash: str = Field(..., alias="hash", description="Expected digest, '<algorithm>:<hex>'")
    size_mb: Optional[int] = Field(default=None, description="Approximate download size")
    description: Optional[str] = None

    @field_validator("content_hash")
    @classmethod
    def _check_digest(cls, value: str) -> str:
        algorithm, hexdigest = parse_digest(value)
        return f"{algorithm}:{hexdigest}"

    @property
    def filename(self) -> str:
        """File name of the artifact as published."""
        return self.source_url.rstrip("/").rsplit("/", 1)[-1] or f"ggml-{self.name}.bin"


class ModelCatalog:
    """Read-only lookup of catalog entries by symbolic name."""

    def __init__(self, entries: Mapping[str, CatalogEntry]):
        self._entries: Dict[str, CatalogEntry] = dict(entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def names(self) -> List[str]:
        """Model names in catalog order."""
        return list(self._entries)

    def entries(self) -> List[CatalogEntry]:
        return list(self._entries.values())

    def get(self, name: str) -> CatalogEntry:
        """
        Look up an entry.

        Raises:
            UnknownModel: If the name is not in the catalog
        """
        try:
            return self._entries[name]
        except KeyError:
            raise UnknownModel(name, self.names())

    def merged_with(self, override: "ModelCatalog") -> "ModelCatalog":
        """Return a catalog where override's entries win over this one's."""
        entries = dict(self._entries)
        entries.update(override._entries)
        return ModelCatalog(entries)


def parse_catalog(data: object, source: str = "<catalog>") -> ModelCatalog:
    """
    Build a catalog from its JSON structure.

    Raises:
        CatalogError: If the structure or any entry is malformed
    """
    if not isinstance(data, dict):
        raise CatalogError(f"{source}: top-level must be an object")

    version = data.get("version", CATALOG_VERSION)
    if version != CATALOG_VERSION:
        raise CatalogError(f"{source}: unsupported catalog version {version!r}")

    models = data.get("models")
    if not isinstance(models, dict):
        raise CatalogError(f"{source}: 'models' must be an object")

    entries: Dict[str, CatalogEntry] = {}
    for name, raw in models.items():
        if not isinstance(raw, dict):
            raise CatalogError(f"{source}: models.{name} must be an object")
        try:
            entries[name] = CatalogEntry.model_validate({**raw, "name": name})
        except (PydanticValidationError, ValueError) as e:
            raise CatalogError(f"{source}: models.{name} is invalid: {e}")
    return ModelCatalog(entries)


def load_catalog_file(path: Union[str, Path]) -> ModelCatalog:
    """
    Load a catalog from a JSON file.

    Raises:
        CatalogError: If the file is missing or malformed
    """
    catalog_path = Path(path)
    if not catalog_path.is_file():
        raise CatalogError(f"Catalog file not found: {catalog_path}")

    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise CatalogError(f"{catalog_path}: invalid JSON: {e}")

    return parse_catalog(data, str(catalog_path))


def load_builtin_catalog() -> ModelCatalog:
    """Load data/models.json from the package."""
    package_dir = Path(__file__).parent.parent
    return load_catalog_file(package_dir / "data" / "models.json")


def load_catalog(user_catalog: Optional[Union[str, Path]] = None) -> ModelCatalog:
    """
    Load the builtin catalog, merged with an optional user catalog.

    Args:
        user_catalog: Optional JSON catalog whose entries override builtin ones

    Returns:
        Merged catalog
    """
    catalog = load_builtin_catalog()
    if user_catalog:
        override = load_catalog_file(user_catalog)
        logger.info(f"Merging {len(override)} model(s) from user catalog {user_catalog}")
        catalog = catalog.merged_with(override)
    return catalog

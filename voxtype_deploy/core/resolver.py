"""
Model resolution.

Turns a model selection into a concrete local artifact reference: an
explicit path is used as-is, a catalog name is looked up, fetched through the
fetch collaborator and verified against the catalog's pinned digest before
its path is exposed.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from .catalog import CatalogEntry, ModelCatalog
from .digest import calculate_file_digest, parse_digest
from .errors import FetchError, IntegrityMismatch
from .fetch import Fetcher, FetchRequest
from .options import CatalogModel, ExplicitModel, parse_model_selection
from .types import ExplicitModelRef, FetchedModel, ModelReference

logger = logging.getLogger(__name__)


def select_model(name: Optional[str] = None, path: Optional[str] = None) -> Union[CatalogModel, ExplicitModel]:
    """
    Turn the two optional model fields into a model selection.

    Raises:
        AmbiguousModelSelection: If both or neither are set
    """
    return parse_model_selection({"name": name, "path": path})


class ModelResolver:
    """
    Resolves model selections against a catalog and a fetch collaborator.

    The resolver keeps no cache of its own; it relies on the fetcher being
    idempotent, and verification makes retries safe.
    """

    def __init__(self, catalog: ModelCatalog, fetcher: Fetcher):
        self.catalog = catalog
        self.fetcher = fetcher

    def lookup(self, selection: Union[CatalogModel, ExplicitModel]) -> Optional[CatalogEntry]:
        """
        Return the catalog entry a selection needs, or None for explicit paths.

        Raises:
            UnknownModel: If a catalog name is not in the catalog
        """
        if isinstance(selection, ExplicitModel):
            return None
        return self.catalog.get(selection.name)

    @staticmethod
    def request_for(entry: CatalogEntry) -> FetchRequest:
        return FetchRequest(
            name=entry.name,
            source_url=entry.source_url,
            expected_hash=entry.content_hash,
            filename=entry.filename,
        )

    def resolve(self, selection: Union[CatalogModel, ExplicitModel]) -> ModelReference:
        """
        Resolve a selection into a model reference.

        Args:
            selection: Catalog or explicit model selection

        Returns:
            ExplicitModelRef or a verified FetchedModel

        Raises:
            UnknownModel: Name not in catalog (raised before any fetch)
            FetchError: The fetch collaborator failed
            IntegrityMismatch: Fetched content does not match the pinned digest
        """
        entry = self.lookup(selection)
        if entry is None:
            return ExplicitModelRef(resolved_local_path=selection.path)

        fetched = Path(self.fetcher.fetch(self.request_for(entry)))
        if not fetched.is_file():
            raise FetchError(entry.source_url, f"fetcher returned a missing file: {fetched}")
        self._verify(entry, fetched)

        return FetchedModel(
            symbolic_name=entry.name,
            content_hash=entry.content_hash,
            source_url=entry.source_url,
            resolved_local_path=str(fetched),
        )

    def _verify(self, entry: CatalogEntry, fetched: Path) -> None:
        algorithm, _ = parse_digest(entry.content_hash)
        actual = calculate_file_digest(fetched, algorithm=algorithm)
        if actual == entry.content_hash:
            logger.info(f"Verified model {entry.name} ({actual})")
            return

        logger.warning(f"Discarding {fetched}: digest {actual} does not match pinned {entry.content_hash}")
        fetched.unlink(missing_ok=True)
        raise IntegrityMismatch(entry.name, entry.content_hash, actual)

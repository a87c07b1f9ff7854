"""
Fetch collaborator for pinned model downloads.

The resolver asks a fetcher for ``{source_url, expected_hash}`` and receives a
local path. The HTTP fetcher checks a download against the expected digest
before moving it into place; the resolver verifies whatever any fetcher
returns. Repeated calls for the same request are idempotent and safe to
retry.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Protocol

import requests
from pydantic import BaseModel, ConfigDict

from .digest import calculate_file_digest, parse_digest
from .errors import FetchError, IntegrityMismatch
from .timing import timer

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 1024 * 1024


class FetchRequest(BaseModel):
    """What to fetch and what its content must hash to."""

    model_config = ConfigDict(frozen=True)

    name: str
    source_url: str
    expected_hash: str
    filename: str


class Fetcher(Protocol):
    def fetch(self, request: FetchRequest) -> Path:
        """Return a local path holding the requested content, or raise FetchError."""
        ...


class HttpFetcher:
    """
    Downloads artifacts over HTTP(S) into a hash-named store directory.

    Layout: ``<store_dir>/<hex digest>/<filename>``. A completed download is
    reused on later calls; partial downloads are written to a ``.part`` file
    and only renamed into place once complete and matching the expected
    digest, so the hash-named path never holds unverified content.
    """

    def __init__(self, store_dir: Path, timeout: int = 300, session: Optional[requests.Session] = None):
        self.store_dir = Path(store_dir)
        self.timeout = timeout
        self.session = session or requests.Session()

    def target_path(self, request: FetchRequest) -> Path:
        _, hexdigest = parse_digest(request.expected_hash)
        return self.store_dir / hexdigest / request.filename

    @timer
    def fetch(self, request: FetchRequest) -> Path:
        target = self.target_path(request)
        if target.is_file():
            logger.info(f"Reusing downloaded model {request.name} at {target}")
            return target

        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        logger.info(f"Downloading model {request.name} from {request.source_url}")

        try:
            with self.session.get(request.source_url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except requests.exceptions.RequestException as e:
            partial.unlink(missing_ok=True)
            raise FetchError(request.source_url, str(e))
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise FetchError(request.source_url, f"cannot write {partial}: {e}")

        algorithm, _ = parse_digest(request.expected_hash)
        actual = calculate_file_digest(partial, algorithm=algorithm)
        if actual != request.expected_hash:
            partial.unlink(missing_ok=True)
            raise IntegrityMismatch(request.name, request.expected_hash, actual)

        os.replace(partial, target)
        return target

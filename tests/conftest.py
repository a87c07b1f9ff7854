"""
Shared fixtures: an offline fetcher, a small pinned catalog and a fake
dependency search path.
"""

import hashlib
from pathlib import Path
from typing import List

import pytest

from voxtype_deploy.core.catalog import ModelCatalog, parse_catalog
from voxtype_deploy.core.fetch import FetchRequest
from voxtype_deploy.core.wrapper import DependencyLocator

MODEL_BYTES = b"ggml fake whisper weights"


class FakeFetcher:
    """
    Stand-in for HttpFetcher that never touches the network.

    Writes ``content`` to ``<store>/<filename>`` and records every request so
    tests can assert whether a fetch happened.
    """

    def __init__(self, store: Path, content: bytes = MODEL_BYTES):
        self.store = store
        self.content = content
        self.requests: List[FetchRequest] = []

    def fetch(self, request: FetchRequest) -> Path:
        self.requests.append(request)
        target = self.store / request.filename
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.content)
        return target


def make_catalog(content: bytes = MODEL_BYTES) -> ModelCatalog:
    """Catalog with one model pinned to the sha256 of ``content``."""
    return parse_catalog(
        {
            "version": 1,
            "models": {
                "test-model": {
                    "url": "https://models.example.invalid/ggml-test-model.bin",
                    "hash": f"sha256:{hashlib.sha256(content).hexdigest()}",
                    "size_mb": 1,
                    "description": "Fixture model",
                }
            },
        },
        source="<fixture>",
    )


def write_executable(path: Path, body: str = "#!/bin/sh\nexit 0\n") -> Path:
    """Helper to create an executable file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    path.chmod(0o755)
    return path


@pytest.fixture
def fetcher(tmp_path: Path) -> FakeFetcher:
    return FakeFetcher(tmp_path / "fetched")


@pytest.fixture
def catalog() -> ModelCatalog:
    return make_catalog()


@pytest.fixture
def dep_bin(tmp_path: Path) -> Path:
    """A bin directory providing wtype and wl-copy only."""
    bin_dir = tmp_path / "deps" / "bin"
    write_executable(bin_dir / "wtype")
    write_executable(bin_dir / "wl-copy")
    return bin_dir


@pytest.fixture
def locator(dep_bin: Path) -> DependencyLocator:
    return DependencyLocator(str(dep_bin))


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every engine directory into tmp_path and clear engine variables."""
    for var in (
        "VOXDEPLOY_ENV_FILE",
        "VOXTYPE_DEPLOY_ENV_FILE",
        "VOXDEPLOY_CATALOG",
        "VOXDEPLOY_MODEL_STORE",
        "VOXDEPLOY_WRAPPER_STORE",
        "VOXDEPLOY_OPTIONS",
        "VOXDEPLOY_FETCH_TIMEOUT",
        "VOXDEPLOY_DEBUG",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("VOXDEPLOY_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("VOXDEPLOY_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("VOXDEPLOY_DEPENDENCY_PATH", str(tmp_path / "deps" / "bin"))
    return tmp_path

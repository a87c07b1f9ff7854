"""
Environment configuration for the VoxType deployment engine.

This module handles the engine's own settings (where artifacts are written,
where models are stored, fetch timeouts) using python-dotenv for explicit
.env loading. No implicit loading occurs at import time.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

ENV_FILE_ENV_VARS = ("VOXDEPLOY_ENV_FILE", "VOXTYPE_DEPLOY_ENV_FILE")
DEFAULT_FETCH_TIMEOUT = 300


class ConfigError(Exception):
    """Raised when engine configuration is invalid."""

    pass


@lru_cache(maxsize=32)
def load_config(env_path: Optional[str] = None, override: bool = False) -> None:
    """Explicitly load environment variables from the given .env file path.

    Notes:
    - This function does NOT perform implicit loading when env_path is None.
    - Use load_env_file() to honour VOXDEPLOY_ENV_FILE.
    """
    if env_path:
        load_dotenv(dotenv_path=env_path, override=override)


def load_env_file(env_path: Optional[str] = None, override: bool = False) -> Optional[str]:
    """
    Load an engine environment file, if one is configured.

    Load order (first match wins):
    1) The explicit env_path argument
    2) VOXDEPLOY_ENV_FILE or VOXTYPE_DEPLOY_ENV_FILE

    Returns the path loaded, or None if nothing was loaded.

    Raises:
        ConfigError: If an explicitly named file does not exist
    """
    if env_path:
        if not Path(env_path).is_file():
            raise ConfigError(f"Environment file not found: {env_path}")
        load_config(env_path, override=override)
        return env_path

    for var in ENV_FILE_ENV_VARS:
        explicit = os.getenv(var)
        if explicit:
            if not Path(explicit).is_file():
                raise ConfigError(f"{var} points to a missing file: {explicit}")
            load_config(explicit, override=override)
            return explicit

    return None


def _env_dir(names: List[str], fallback: Path) -> Path:
    for name in names:
        value = os.getenv(name)
        if value:
            return Path(value).expanduser()
    return fallback


class Config:
    """Configuration settings for the deployment engine."""

    @property
    def config_home(self) -> Path:
        """Base directory for generated config files (default: ~/.config)."""
        return _env_dir(["VOXDEPLOY_CONFIG_HOME", "XDG_CONFIG_HOME"], Path.home() / ".config")

    @property
    def data_home(self) -> Path:
        """Base directory for stored artifacts (default: ~/.local/share)."""
        return _env_dir(["VOXDEPLOY_DATA_HOME", "XDG_DATA_HOME"], Path.home() / ".local" / "share")

    @property
    def model_store(self) -> Path:
        """Directory holding fetched whisper models."""
        return _env_dir(["VOXDEPLOY_MODEL_STORE"], self.data_home / "voxtype-deploy" / "models")

    @property
    def wrapper_store(self) -> Path:
        """Directory holding content-addressed executable wrappers."""
        return _env_dir(["VOXDEPLOY_WRAPPER_STORE"], self.data_home / "voxtype-deploy" / "wrappers")

    @property
    def options_file(self) -> Path:
        """Override document read by the CLI when --config is not given."""
        return _env_dir(["VOXDEPLOY_OPTIONS"], self.config_home / "voxtype-deploy" / "options.toml")

    @property
    def catalog_path(self) -> Optional[Path]:
        """Optional user model catalog merged over the builtin one."""
        value = os.getenv("VOXDEPLOY_CATALOG")
        return Path(value).expanduser() if value else None

    @property
    def dependency_path(self) -> str:
        """Search path used to locate runtime dependencies (default: PATH)."""
        return os.getenv("VOXDEPLOY_DEPENDENCY_PATH") or os.getenv("PATH", "")

    @property
    def fetch_timeout(self) -> int:
        """Timeout in seconds for model downloads (default: 300)."""
        raw = os.getenv("VOXDEPLOY_FETCH_TIMEOUT", str(DEFAULT_FETCH_TIMEOUT))
        try:
            value = int(raw)
        except ValueError:
            raise ConfigError(f"VOXDEPLOY_FETCH_TIMEOUT must be an integer, got: {raw!r}")
        if value <= 0:
            raise ConfigError(f"VOXDEPLOY_FETCH_TIMEOUT must be positive, got: {value}")
        return value

    @property
    def debug(self) -> bool:
        """Check if debug tracing is enabled (default: False)."""
        value = os.getenv("VOXDEPLOY_DEBUG", "0").lower()
        return value in ("true", "1", "yes", "on")


# Global config instance
config = Config()


class ArtifactLayout(BaseModel):
    """Where each artifact of a resolution pass is written."""

    model_config = ConfigDict(frozen=True)

    config_file: Path
    service_dir: Path
    wrapper_store: Path

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None, output_root: Optional[str] = None) -> "ArtifactLayout":
        """
        Derive the artifact layout from engine configuration.

        Args:
            cfg: Engine configuration (default: the global instance)
            output_root: Optional prefix; when set, every artifact lands under it
                         using the same relative layout (config/, data/)

        Returns:
            ArtifactLayout instance
        """
        cfg = cfg or config
        if output_root:
            root = Path(output_root).expanduser()
            config_home = root / "config"
            wrapper_store = root / "data" / "voxtype-deploy" / "wrappers"
        else:
            config_home = cfg.config_home
            wrapper_store = cfg.wrapper_store
        return cls(
            config_file=config_home / "voxtype" / "config.toml",
            service_dir=config_home / "systemd" / "user",
            wrapper_store=wrapper_store,
        )

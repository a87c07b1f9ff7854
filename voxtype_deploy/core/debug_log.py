"""
Debug trace of resolution passes.

When VOXDEPLOY_DEBUG=1 each pass writes JSON snapshots of its steps (merged
options, resolved model, generated artifacts, failures) into a session
directory under <data_home>/voxtype-deploy/debug/.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .config import config


class DebugLogger:
    """
    Writes one JSON file per step of a resolution pass.

    Files land in {log_root}/session_{timestamp}/ so consecutive passes can be
    compared side by side.
    """

    def __init__(self, log_root: Optional[Path] = None, enabled: Optional[bool] = None):
        """
        Initialize debug logger.

        Args:
            log_root: Directory for session folders (default: under config.data_home)
            enabled: Override the enable flag; uses VOXDEPLOY_DEBUG if None
        """
        self.log_root = Path(log_root) if log_root else config.data_home / "voxtype-deploy" / "debug"
        self.enabled = enabled if enabled is not None else is_debug_enabled()
        self.session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._counter = 0

        if self.enabled:
            self.session_dir = self.log_root / f"session_{self.session_id}"
            self.session_dir.mkdir(parents=True, exist_ok=True)

    def _write(self, step: str, payload: Dict[str, Any]) -> None:
        if not self.enabled:
            return

        self._counter += 1
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "session_id": self.session_id,
            "step": step,
            **payload,
        }
        log_file = self.session_dir / f"{self._counter:02d}_{step}.json"
        with open(log_file, "w", encoding="utf-8") as f:
            json.dump(log_data, f, indent=2, ensure_ascii=False, default=str)

    def log_options(self, options: Dict[str, Any], overrides: Dict[str, Any]) -> None:
        """Log the override document and the merged options tree."""
        self._write("options", {"overrides": overrides, "options": options})

    def log_model(self, model: Dict[str, Any]) -> None:
        """Log the resolved model reference."""
        self._write("model", {"model": model})

    def log_deployment(self, deployment: Dict[str, Any]) -> None:
        """Log every artifact of the pass."""
        self._write("deployment", {"deployment": deployment})

    def log_failure(self, error: Exception) -> None:
        """Log the error that ended the pass."""
        payload: Dict[str, Any] = {"error": str(error), "error_type": type(error).__name__}
        violations = getattr(error, "violations", None)
        if violations:
            payload["violations"] = [v.model_dump() for v in violations]
        self._write("failure", payload)


def is_debug_enabled() -> bool:
    """Check if debug tracing is enabled via VOXDEPLOY_DEBUG."""
    return config.debug

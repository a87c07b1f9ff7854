"""
Tests for the debug step timer.
"""

from pathlib import Path

import pytest

from voxtype_deploy import main
from voxtype_deploy.core.compiler import compile_config
from voxtype_deploy.core.options import default_options
from voxtype_deploy.core.timing import timer
from voxtype_deploy.core.types import ExplicitModelRef

MODEL = ExplicitModelRef(resolved_local_path="/models/ggml-base.en.bin")


class TestTimer:
    """Test that timings follow the debug flag at call time."""

    def test_silent_without_debug(self, isolated_env: Path, capsys: pytest.CaptureFixture):
        compile_config(default_options(), MODEL)
        assert "[VOXDEPLOY_DEBUG]" not in capsys.readouterr().err

    def test_flag_set_after_import(self, isolated_env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture):
        """Setting VOXDEPLOY_DEBUG after the module is imported enables timings."""
        monkeypatch.setenv("VOXDEPLOY_DEBUG", "1")
        compile_config(default_options(), MODEL)
        assert "[VOXDEPLOY_DEBUG] compile_config:" in capsys.readouterr().err

    def test_debug_option_enables_timings(self, isolated_env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture):
        """The --debug path of the CLI turns timings on for decorated steps."""
        # Recorded so the variable _prepare sets is undone afterwards.
        monkeypatch.setenv("VOXDEPLOY_DEBUG", "0")
        main._prepare(None, debug=True)
        compile_config(default_options(), MODEL)
        assert "[VOXDEPLOY_DEBUG] compile_config:" in capsys.readouterr().err

    def test_return_value_and_name_kept(self, isolated_env: Path, monkeypatch: pytest.MonkeyPatch):
        @timer
        def double(value: int) -> int:
            return value * 2

        monkeypatch.setenv("VOXDEPLOY_DEBUG", "1")
        assert double(21) == 42
        assert double.__name__ == "double"

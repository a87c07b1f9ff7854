"""
Tests for executable wrapping.
"""

import os
from pathlib import Path

from voxtype_deploy.core.options import PackageOptions
from voxtype_deploy.core.wrapper import (
    RUNTIME_DEPENDENCIES,
    DependencyLocator,
    install_wrapper,
    render_launcher,
    wrap_executable,
)

from .conftest import write_executable

PACKAGE = PackageOptions(path="/opt/voxtype", version="0.4.1", executable="voxtype")


class TestDependencyLocator:
    """Test locating runtime dependencies on a search path."""

    def test_finds_directory(self, dep_bin: Path, locator: DependencyLocator):
        assert locator.locate("wtype") == dep_bin

    def test_missing_program(self, locator: DependencyLocator):
        assert locator.locate("xdotool") is None

    def test_first_directory_wins(self, tmp_path: Path):
        first = tmp_path / "a"
        second = tmp_path / "b"
        write_executable(first / "wtype")
        write_executable(second / "wtype")
        locator = DependencyLocator(os.pathsep.join([str(first), str(second)]))
        assert locator.locate("wtype") == first


class TestWrapExecutable:
    """Test the pure wrapping step."""

    def test_deterministic(self, tmp_path: Path, locator: DependencyLocator):
        """The same package and dependencies give an equal reference."""
        first = wrap_executable(PACKAGE, RUNTIME_DEPENDENCIES, locator, tmp_path / "store")
        second = wrap_executable(PACKAGE, RUNTIME_DEPENDENCIES, locator, tmp_path / "store")
        assert first == second

    def test_naming_and_original(self, tmp_path: Path, locator: DependencyLocator):
        ref = wrap_executable(PACKAGE, RUNTIME_DEPENDENCIES, locator, tmp_path / "store")
        assert ref.name == "voxtype-wrapped-0.4.1"
        assert ref.original_executable == "/opt/voxtype/bin/voxtype"
        assert ref.dependencies == RUNTIME_DEPENDENCIES
        assert ref.store_path.endswith("-voxtype-wrapped-0.4.1")
        assert ref.executable_path == f"{ref.store_path}/bin/voxtype"

    def test_missing_dependencies_are_skipped(self, tmp_path: Path, dep_bin: Path, locator: DependencyLocator):
        """Dependencies not on the search path are reported, not fatal."""
        ref = wrap_executable(PACKAGE, RUNTIME_DEPENDENCIES, locator, tmp_path / "store")
        assert ref.search_path == (str(dep_bin),)
        assert ref.missing == ("ydotool", "xdotool", "xclip", "libnotify", "pciutils")

    def test_search_path_keeps_declared_order(self, tmp_path: Path):
        """Directories appear once, in dependency declaration order."""
        wayland = tmp_path / "wayland"
        x11 = tmp_path / "x11"
        write_executable(wayland / "wtype")
        write_executable(wayland / "wl-copy")
        write_executable(x11 / "xdotool")
        write_executable(x11 / "xclip")
        locator = DependencyLocator(os.pathsep.join([str(x11), str(wayland)]))

        ref = wrap_executable(PACKAGE, RUNTIME_DEPENDENCIES, locator, tmp_path / "store")

        assert ref.search_path == (str(wayland), str(x11))

    def test_different_dependencies_change_digest(self, tmp_path: Path, locator: DependencyLocator):
        full = wrap_executable(PACKAGE, RUNTIME_DEPENDENCIES, locator, tmp_path / "store")
        bare = wrap_executable(PACKAGE, (), locator, tmp_path / "store")
        assert full.digest != bare.digest
        assert full.store_path != bare.store_path

    def test_launcher_text(self):
        launcher = render_launcher("/opt/voxtype/bin/voxtype", ["/deps/a", "/deps/b c"])
        lines = launcher.splitlines()
        assert lines[0] == "#!/bin/sh"
        assert "PATH=/deps/a:'/deps/b c'${PATH:+':'$PATH}" in lines
        assert lines[-1] == 'exec /opt/voxtype/bin/voxtype "$@"'

    def test_launcher_without_dependencies(self):
        launcher = render_launcher("/opt/voxtype/bin/voxtype", [])
        assert "PATH" not in launcher


class TestInstallWrapper:
    """Test materialising a wrapper in the store."""

    def test_installs_executable_launcher(self, tmp_path: Path, locator: DependencyLocator):
        ref = wrap_executable(PACKAGE, RUNTIME_DEPENDENCIES, locator, tmp_path / "store")
        target = install_wrapper(ref)

        assert target == Path(ref.executable_path)
        assert target.read_text(encoding="utf-8") == ref.launcher
        assert os.access(target, os.X_OK)

    def test_existing_install_is_reused(self, tmp_path: Path, locator: DependencyLocator):
        ref = wrap_executable(PACKAGE, RUNTIME_DEPENDENCIES, locator, tmp_path / "store")
        target = install_wrapper(ref)
        marker = target.parent / "marker"
        marker.write_text("kept", encoding="utf-8")

        assert install_wrapper(ref) == target
        assert marker.exists()

    def test_damaged_install_is_replaced(self, tmp_path: Path, locator: DependencyLocator):
        ref = wrap_executable(PACKAGE, RUNTIME_DEPENDENCIES, locator, tmp_path / "store")
        target = install_wrapper(ref)
        target.write_text("#!/bin/sh\nexit 1\n", encoding="utf-8")

        install_wrapper(ref)

        assert target.read_text(encoding="utf-8") == ref.launcher
        assert [p.name for p in (tmp_path / "store").iterdir()] == [Path(ref.store_path).name]

"""
Executable wrapping.

Composes the VoxType executable with its runtime dependencies: the wrapper is
a launcher script that prefixes PATH with the directories providing each
dependency and then execs the original executable. The original package is
never copied or modified.

A wrapper is content-addressed: the same package and dependency set always
give the same launcher, digest and install directory, so an existing install
is reused.
"""

import logging
import os
import shlex
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .digest import calculate_text_digest
from .options import PackageOptions
from .types import WrappedExecutableRef

logger = logging.getLogger(__name__)

# Runtime dependency name -> program probed to find where it is installed.
DEPENDENCY_PROGRAMS: Dict[str, str] = {
    # Wayland typing
    "wtype": "wtype",
    "wl-clipboard": "wl-copy",
    # Alternative typing backend (works on X11 and Wayland)
    "ydotool": "ydotool",
    # X11 fallback
    "xdotool": "xdotool",
    "xclip": "xclip",
    # Common utilities
    "libnotify": "notify-send",
    "pciutils": "lspci",
}

RUNTIME_DEPENDENCIES = tuple(DEPENDENCY_PROGRAMS)


class DependencyLocator:
    """Finds the directory providing a program on a fixed search path."""

    def __init__(self, search_path: str):
        self.search_path = search_path

    def locate(self, program: str) -> Optional[Path]:
        found = shutil.which(program, path=self.search_path)
        return Path(found).parent if found else None


def render_launcher(original_executable: str, search_path: Sequence[str]) -> str:
    """Render the launcher script for an executable and PATH prefix."""
    lines = [
        "#!/bin/sh",
        "# Generated by voxtype-deploy. Do not edit.",
    ]
    if search_path:
        prefix = ":".join(shlex.quote(d) for d in search_path)
        lines.append(f"PATH={prefix}${{PATH:+':'$PATH}}")
        lines.append("export PATH")
    lines.append(f'exec {shlex.quote(original_executable)} "$@"')
    return "\n".join(lines) + "\n"


def wrap_executable(
    package: PackageOptions,
    dependencies: Sequence[str],
    locator: DependencyLocator,
    store_dir: Union[str, Path],
) -> WrappedExecutableRef:
    """
    Build the wrapped executable reference for a package.

    Args:
        package: Package to wrap
        dependencies: Declared runtime dependency names, in PATH order
        locator: Finds where each dependency is installed
        store_dir: Wrapper store the install directory lives in

    Returns:
        WrappedExecutableRef; dependencies that cannot be located are listed
        in ``missing`` and left out of the search path
    """
    original = str(Path(package.path) / "bin" / package.executable)

    search_path: List[str] = []
    missing: List[str] = []
    for dependency in dependencies:
        program = DEPENDENCY_PROGRAMS.get(dependency, dependency)
        location = locator.locate(program)
        if location is None:
            logger.debug(f"Runtime dependency {dependency} ({program}) not found on the search path")
            missing.append(dependency)
            continue
        directory = str(location)
        if directory not in search_path:
            search_path.append(directory)

    name = f"{package.executable}-wrapped-{package.version}"
    launcher = render_launcher(original, search_path)
    digest = calculate_text_digest(f"{name}\n{launcher}")
    store_path = Path(store_dir) / f"{digest.split(':', 1)[1][:32]}-{name}"

    return WrappedExecutableRef(
        name=name,
        package_path=package.path,
        executable=package.executable,
        original_executable=original,
        dependencies=tuple(dependencies),
        search_path=tuple(search_path),
        missing=tuple(missing),
        digest=digest,
        launcher=launcher,
        store_path=str(store_path),
    )


def install_wrapper(ref: WrappedExecutableRef) -> Path:
    """
    Materialise a wrapper in its content-addressed store directory.

    An existing install with the same launcher is reused as-is. Otherwise the
    directory is assembled next to its final location and renamed into place.

    Returns:
        Path of the installed wrapped executable
    """
    store_path = Path(ref.store_path)
    target = Path(ref.executable_path)

    if target.is_file() and target.read_text(encoding="utf-8") == ref.launcher:
        logger.info(f"Reusing wrapper {store_path}")
        return target

    staging = store_path.with_name(f"{store_path.name}.tmp-{os.getpid()}")
    if staging.exists():
        shutil.rmtree(staging)
    (staging / "bin").mkdir(parents=True)
    launcher_path = staging / "bin" / ref.executable
    launcher_path.write_text(ref.launcher, encoding="utf-8")
    launcher_path.chmod(0o755)

    if store_path.exists():
        shutil.rmtree(store_path)
    os.replace(staging, store_path)
    logger.info(f"Installed wrapper {store_path}")
    return target

"""
One resolution pass, end to end.

resolve_deployment computes every artifact in memory from one validated
options tree; write_deployment puts them on disk. Nothing is written unless
the whole pass succeeded.

Order: typed merge -> validation -> catalog lookup -> model fetch and
verification -> config compilation, executable wrapping and service
descriptors (independent of each other).
"""

import logging
import os
from pathlib import Path
from typing import Any, List, Mapping, Optional, Set, Union

from .catalog import load_catalog
from .compiler import compile_config
from .config import ArtifactLayout, Config, config
from .debug_log import DebugLogger
from .errors import DeployError, ValidationError
from .fetch import HttpFetcher
from .options import OptionsTree, default_options, merge_overrides
from .progress import reporter
from .resolver import ModelResolver
from .service import UNIT_HEADER, generate_service_descriptor, generate_ydotool_descriptor, render_unit
from .types import Deployment
from .validator import check_options, validate_options
from .wrapper import RUNTIME_DEPENDENCIES, DependencyLocator, install_wrapper, wrap_executable

logger = logging.getLogger(__name__)

MANAGED_UNITS = ("voxtype.service", "ydotoold.service")

INPUT_GROUP_WARNING = (
    "hotkey.enable uses the built-in evdev hotkey, which needs membership in the 'input' group. "
    "That group grants read access to ALL input devices, so any process running as your user "
    "could act as a keylogger. Compositor keybindings need no special permissions."
)


def default_resolver(cfg: Optional[Config] = None) -> ModelResolver:
    """Resolver using the builtin (plus user) catalog and the HTTP fetcher."""
    cfg = cfg or config
    fetcher = HttpFetcher(cfg.model_store, timeout=cfg.fetch_timeout)
    return ModelResolver(load_catalog(cfg.catalog_path), fetcher)


def default_locator(cfg: Optional[Config] = None) -> DependencyLocator:
    cfg = cfg or config
    return DependencyLocator(cfg.dependency_path)


def collect_warnings(tree: OptionsTree) -> List[str]:
    """Non-fatal notices about the options themselves."""
    warnings = []
    if tree.hotkey.enable:
        warnings.append(INPUT_GROUP_WARNING)
    return warnings


def resolve_deployment(
    overrides: Optional[Mapping[str, Any]],
    resolver: ModelResolver,
    locator: DependencyLocator,
    wrapper_store: Union[str, Path],
    debug_logger: Optional[DebugLogger] = None,
) -> Deployment:
    """
    Resolve an override document into every deployment artifact.

    Args:
        overrides: Override document (None or empty means all defaults)
        resolver: Model resolver (catalog + fetch collaborator)
        locator: Locates runtime dependencies
        wrapper_store: Directory wrappers are installed into
        debug_logger: Optional trace writer

    Returns:
        Deployment holding every artifact; ``enabled`` is False and no
        artifact is produced when the options disable the deployment

    Raises:
        DeployError: Any schema, validation, model or fetch failure
    """
    debug_logger = debug_logger or DebugLogger(enabled=False)
    try:
        reporter.step("Merging options…")
        tree, type_violations = merge_overrides(default_options(), overrides)
        debug_logger.log_options(tree.model_dump(by_alias=True), dict(overrides or {}))
        if type_violations:
            raise ValidationError(type_violations + validate_options(tree))
        if not tree.enable:
            logger.info("Deployment disabled by options; nothing to resolve")
            return Deployment(enabled=False)

        reporter.step("Validating options…")
        check_options(tree)
        resolver.lookup(tree.model)
        warnings = collect_warnings(tree)

        reporter.step("Resolving model…")
        model = resolver.resolve(tree.model)
        debug_logger.log_model(model.model_dump())

        reporter.step("Generating artifacts…")
        compiled = compile_config(tree, model)
        wrapped = wrap_executable(tree.package, RUNTIME_DEPENDENCIES, locator, wrapper_store)
        warnings.extend(f"Runtime dependency {name} was not found; it is left out of the wrapper PATH" for name in wrapped.missing)
        if not Path(wrapped.original_executable).exists():
            warnings.append(f"Executable {wrapped.original_executable} does not exist yet")

        services = []
        descriptor = generate_service_descriptor(tree, wrapped)
        if descriptor is not None:
            services.append(descriptor)
        if tree.ydotool.enable_daemon:
            ydotoold = locator.locate("ydotoold")
            if ydotoold is None:
                warnings.append("ydotoold was not found; the ydotoold service calls it by name")
                ydotoold_command = "ydotoold"
            else:
                ydotoold_command = str(ydotoold / "ydotoold")
            services.append(generate_ydotool_descriptor(tree, ydotoold_command))

        for warning in warnings:
            logger.warning(warning)

        deployment = Deployment(model=model, compiled=compiled, wrapper=wrapped, services=services, warnings=warnings)
        debug_logger.log_deployment(deployment.model_dump())
        return deployment
    except DeployError as e:
        debug_logger.log_failure(e)
        raise


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


def write_deployment(deployment: Deployment, layout: ArtifactLayout) -> List[Path]:
    """
    Write a resolved deployment to disk.

    Each artifact replaces its previous version wholesale. Unit files this
    tool generated earlier but that are no longer part of the deployment are
    removed; unit files written by anyone else are left alone.

    A disabled deployment writes nothing but still removes generated units.

    Returns:
        Paths written, in order: wrapper, config file, service units
    """
    if not deployment.enabled:
        _remove_stale_units(layout, set())
        return []

    written: List[Path] = []

    written.append(install_wrapper(deployment.wrapper))

    _atomic_write(layout.config_file, deployment.compiled.text)
    written.append(layout.config_file)

    wanted = set()
    for descriptor in deployment.services:
        unit_path = layout.service_dir / descriptor.unit_name
        _atomic_write(unit_path, render_unit(descriptor))
        written.append(unit_path)
        wanted.add(descriptor.unit_name)

    _remove_stale_units(layout, wanted)
    return written


def _remove_stale_units(layout: ArtifactLayout, wanted: Set[str]) -> None:
    for unit_name in MANAGED_UNITS:
        stale = layout.service_dir / unit_name
        if unit_name in wanted or not stale.is_file():
            continue
        if stale.read_text(encoding="utf-8").startswith(UNIT_HEADER):
            logger.info(f"Removing {stale}; the service is no longer enabled")
            stale.unlink()

"""
Option schema for a VoxType deployment.

This module declares every configurable field, its default and its domain as
pydantic models, and implements the first (typed) stage of the layered merge:
applying a partial override document to an options tree field by field.

Override documents use the camelCase field paths shown in the aliases
(e.g. ``audio.feedback.volume``, ``status.iconTheme``, ``stateFile``).
"""

import logging
import tomllib
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import AmbiguousModelSelection, SchemaError, ValidationError, Violation
from .merge import deep_merge

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "base.en"

# Fields whose override value is not a plain replacement. Nested records are
# detected from the schema and always merge recursively.
MERGE_STRATEGIES = {
    "model": "selection",
    "status.icons": "keywise",
    "settings": "deep",
}


class OptionsModel(BaseModel):
    """Base for every options record: closed, immutable, camelCase aliases."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class PackageOptions(OptionsModel):
    """The VoxType package to deploy (deployment-time only)."""

    path: str = Field(default="/usr", description="Package root containing bin/<executable>")
    version: str = Field(default="unknown", description="Package version, used in the wrapper name")
    executable: str = Field(default="voxtype", description="Executable name under bin/")


class CatalogModel(OptionsModel):
    """Model selected by symbolic name from the catalog."""

    kind: Literal["catalog"] = "catalog"
    name: str


class ExplicitModel(OptionsModel):
    """Model file managed by the user."""

    kind: Literal["explicit"] = "explicit"
    path: str


ModelSelection = Annotated[Union[CatalogModel, ExplicitModel], Field(discriminator="kind")]


class HotkeyOptions(OptionsModel):
    enable: bool = False
    key: str = "SCROLLLOCK"
    modifiers: Tuple[str, ...] = ()
    mode: Literal["push_to_talk", "toggle"] = "push_to_talk"

    @field_validator("modifiers")
    @classmethod
    def _collapse_duplicates(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        # First occurrence wins so generated output keeps the user's order.
        return tuple(dict.fromkeys(value))


class FeedbackOptions(OptionsModel):
    enable: bool = False
    theme: str = "default"
    volume: float = 0.7


class AudioOptions(OptionsModel):
    device: str = "default"
    sample_rate: int = 16000
    max_duration_secs: int = 60
    feedback: FeedbackOptions = Field(default_factory=FeedbackOptions)


class WhisperOptions(OptionsModel):
    language: str = "en"
    translate: bool = False
    threads: Optional[int] = None
    on_demand_loading: bool = False


class NotificationOptions(OptionsModel):
    on_recording_start: bool = False
    on_recording_stop: bool = False
    on_transcription: bool = True


class PostProcessOptions(OptionsModel):
    command: Optional[str] = None
    timeout_ms: int = 30000


class OutputOptions(OptionsModel):
    mode: Literal["type", "clipboard", "paste"] = "type"
    fallback_to_clipboard: bool = True
    type_delay_ms: int = 0
    notification: NotificationOptions = Field(default_factory=NotificationOptions)
    post_process: PostProcessOptions = Field(default_factory=PostProcessOptions)


class StatusOptions(OptionsModel):
    icon_theme: str = "emoji"
    icons: Dict[str, str] = Field(default_factory=dict, description="Per-state icon overrides")


class ServiceOptions(OptionsModel):
    enable: bool = False


class YdotoolOptions(OptionsModel):
    enable_daemon: bool = False


class OptionsTree(OptionsModel):
    """
    The fully-defaulted, typed configuration of one deployment.

    Every leaf has a default, so ``OptionsTree()`` is a complete tree.
    """

    enable: bool = True
    package: PackageOptions = Field(default_factory=PackageOptions)
    model: ModelSelection = Field(default_factory=lambda: CatalogModel(name=DEFAULT_MODEL))
    hotkey: HotkeyOptions = Field(default_factory=HotkeyOptions)
    audio: AudioOptions = Field(default_factory=AudioOptions)
    whisper: WhisperOptions = Field(default_factory=WhisperOptions)
    output: OutputOptions = Field(default_factory=OutputOptions)
    status: StatusOptions = Field(default_factory=StatusOptions)
    state_file: str = "auto"
    service: ServiceOptions = Field(default_factory=ServiceOptions)
    ydotool: YdotoolOptions = Field(default_factory=YdotoolOptions)
    settings: Dict[str, Any] = Field(default_factory=dict, description="Free-form escape hatch merged last")


def default_options() -> OptionsTree:
    """Return a fully-defaulted options tree."""
    return OptionsTree()


def parse_model_selection(raw: Mapping[str, Any], field_path: str = "model") -> Union[CatalogModel, ExplicitModel]:
    """
    Parse a raw ``model`` section into the model selection variant.

    This is the only place where the name/path exclusivity is checked at
    runtime; past this boundary the variant cannot express both or neither.

    Raises:
        SchemaError: If the section has keys other than name/path
        AmbiguousModelSelection: If both or neither of name/path are set
    """
    if not isinstance(raw, Mapping):
        raise SchemaError(field_path, "must be a table with 'name' or 'path'")

    unknown = sorted(set(raw) - {"name", "path"})
    if unknown:
        raise SchemaError(f"{field_path}.{unknown[0]}", "unknown option")

    name = raw.get("name")
    path = raw.get("path")
    if (name is None) == (path is None):
        raise AmbiguousModelSelection(name, path)

    try:
        if name is not None:
            return CatalogModel(name=name)
        return ExplicitModel(path=str(path))
    except PydanticValidationError as e:
        raise _to_validation_error(e, prefix=field_path)


def _is_record(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, OptionsModel)


def _merge_record(model_cls: type, base: Dict[str, Any], override: Mapping[str, Any], path: str) -> Dict[str, Any]:
    fields = {(info.alias or name): info for name, info in model_cls.model_fields.items()}
    merged = dict(base)

    for key, value in override.items():
        field_path = f"{path}.{key}" if path else key
        info = fields.get(key)
        if info is None:
            raise SchemaError(field_path)

        strategy = MERGE_STRATEGIES.get(field_path)
        if strategy == "selection":
            merged[key] = parse_model_selection(value, field_path).model_dump(by_alias=True)
        elif strategy == "keywise" and isinstance(value, Mapping):
            merged[key] = {**merged.get(key, {}), **value}
        elif strategy == "deep" and isinstance(value, Mapping):
            merged[key] = deep_merge(merged.get(key, {}), value)
        elif _is_record(info.annotation) and isinstance(value, Mapping):
            merged[key] = _merge_record(info.annotation, merged.get(key, {}), value, field_path)
        else:
            # Scalars, enumerations and lists replace wholesale. Type errors
            # surface from pydantic when the tree is rebuilt.
            merged[key] = value

    return merged


def _to_validation_error(error: PydanticValidationError, prefix: str = "") -> ValidationError:
    violations = []
    for item in error.errors():
        # Drop discriminator tags so paths read like option paths.
        loc = [str(p) for p in item["loc"] if p not in ("catalog", "explicit")]
        field_path = ".".join(([prefix] if prefix else []) + loc)
        violations.append(Violation(field_path=field_path or prefix, reason=item["msg"]))
    return ValidationError(violations)


def _drop_invalid(raw: Dict[str, Any], loc: Sequence[Any]) -> None:
    # Remove the deepest table key on the error path so the field falls back
    # to its default.
    container = raw
    for i, key in enumerate(loc):
        value = container.get(key)
        if i == len(loc) - 1 or not isinstance(value, dict):
            container.pop(key, None)
            return
        container = value


def merge_overrides(base: OptionsTree, overrides: Optional[Mapping[str, Any]]) -> Tuple[OptionsTree, List[Violation]]:
    """
    Apply an override document, collecting type errors instead of raising them.

    Fields whose override value does not fit their type keep their default,
    so the returned tree is complete and can still be validated. Callers that
    need every problem at once combine the returned violations with the
    invariant checks over that tree.

    Returns:
        (tree, type violations); the list is empty when every value fits

    Raises:
        SchemaError: If the override references an unknown option
        AmbiguousModelSelection: If the model section sets both or neither of name/path
    """
    if not overrides:
        return base, []
    if not isinstance(overrides, Mapping):
        raise SchemaError("", "override document must be a table")

    raw = _merge_record(OptionsTree, base.model_dump(by_alias=True), overrides, "")
    try:
        return OptionsTree.model_validate(raw), []
    except PydanticValidationError as e:
        violations = _to_validation_error(e).violations
        for item in e.errors():
            _drop_invalid(raw, item["loc"])

    try:
        return OptionsTree.model_validate(raw), violations
    except PydanticValidationError as e:
        logger.debug(f"Options still invalid after dropping bad values, falling back to base: {e}")
        return base, violations


def apply_overrides(base: OptionsTree, overrides: Optional[Mapping[str, Any]]) -> OptionsTree:
    """
    Apply a partial override document to an options tree.

    Nested records merge recursively, scalar and enumeration fields replace,
    list fields replace wholesale, ``status.icons`` merges key by key and the
    ``settings`` escape hatch is deep-merged. Applying the same override twice
    yields the same tree as applying it once.

    Args:
        base: Tree to start from
        overrides: Override document keyed by option path (None means no change)

    Returns:
        New options tree; ``base`` is left untouched

    Raises:
        SchemaError: If the override references an unknown option
        AmbiguousModelSelection: If the model section sets both or neither of name/path
        ValidationError: If values do not fit their declared types
    """
    tree, violations = merge_overrides(base, overrides)
    if violations:
        raise ValidationError(violations)
    return tree


def build_options(overrides: Optional[Mapping[str, Any]] = None) -> OptionsTree:
    """Build an options tree from defaults plus an optional override document."""
    return apply_overrides(default_options(), overrides)


def load_overrides(path: Optional[Union[str, Path]]) -> Dict[str, Any]:
    """
    Read a TOML override document.

    Args:
        path: Path to the document; None or a missing file means no overrides

    Returns:
        Parsed override document

    Raises:
        SchemaError: If the document cannot be parsed
    """
    if path is None:
        return {}

    doc_path = Path(path).expanduser()
    if not doc_path.exists():
        logger.info(f"No override document at {doc_path}, using defaults")
        return {}

    try:
        with open(doc_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SchemaError("", f"invalid TOML in {doc_path}: {e}")

"""
Cross-field invariant checks over a fully merged options tree.

Validation is total: every check runs and all violations are reported
together, in a stable order, so one pass surfaces every problem. No check has
side effects.
"""

import re
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from .errors import ValidationError, Violation
from .options import ExplicitModel, OptionsTree, default_options, merge_overrides

ICON_THEMES = (
    # Font-based
    "emoji",
    "nerd-font",
    "material",
    "phosphor",
    "codicons",
    "omarchy",
    # Universal
    "minimal",
    "dots",
    "arrows",
    "text",
)

FEEDBACK_THEMES = ("default", "subtle", "mechanical")

KEY_NAME_PATTERN = re.compile(r"^[A-Z0-9_]+$")


def _check_package(tree: OptionsTree) -> Iterable[Violation]:
    if not tree.package.path.startswith("/"):
        yield Violation(field_path="package.path", reason="must be an absolute path")
    if not tree.package.executable or "/" in tree.package.executable:
        yield Violation(field_path="package.executable", reason="must be a bare executable name")


def _check_model(tree: OptionsTree) -> Iterable[Violation]:
    if isinstance(tree.model, ExplicitModel):
        if not tree.model.path.startswith("/"):
            yield Violation(field_path="model.path", reason="must be an absolute path")
    elif not tree.model.name.strip():
        yield Violation(field_path="model.name", reason="must not be empty")


def _check_hotkey(tree: OptionsTree) -> Iterable[Violation]:
    hotkey = tree.hotkey
    if not KEY_NAME_PATTERN.match(hotkey.key):
        yield Violation(field_path="hotkey.key", reason=f"'{hotkey.key}' is not an evdev key name (e.g. SCROLLLOCK, F13)")
    for i, modifier in enumerate(hotkey.modifiers):
        if not KEY_NAME_PATTERN.match(modifier):
            yield Violation(field_path=f"hotkey.modifiers[{i}]", reason=f"'{modifier}' is not an evdev key name (e.g. LEFTCTRL)")


def _check_audio(tree: OptionsTree) -> Iterable[Violation]:
    audio = tree.audio
    if not audio.device.strip():
        yield Violation(field_path="audio.device", reason="must not be empty")
    if audio.sample_rate <= 0:
        yield Violation(field_path="audio.sampleRate", reason="must be a positive number of Hz")
    if audio.max_duration_secs <= 0:
        yield Violation(field_path="audio.maxDurationSecs", reason="must be a positive number of seconds")

    feedback = audio.feedback
    if not 0.0 <= feedback.volume <= 1.0:
        yield Violation(field_path="audio.feedback.volume", reason=f"must be between 0.0 and 1.0, got {feedback.volume}")
    if feedback.theme not in FEEDBACK_THEMES and not feedback.theme.startswith("/"):
        yield Violation(
            field_path="audio.feedback.theme",
            reason=f"must be one of {', '.join(FEEDBACK_THEMES)} or an absolute path to a custom theme",
        )


def _check_whisper(tree: OptionsTree) -> Iterable[Violation]:
    whisper = tree.whisper
    if not whisper.language.strip():
        yield Violation(field_path="whisper.language", reason="must not be empty (use 'auto' for detection)")
    if whisper.threads is not None and whisper.threads < 1:
        yield Violation(field_path="whisper.threads", reason="must be at least 1 when set")


def _check_output(tree: OptionsTree) -> Iterable[Violation]:
    output = tree.output
    if output.type_delay_ms < 0:
        yield Violation(field_path="output.typeDelayMs", reason="must not be negative")
    post = output.post_process
    if post.command is not None and not post.command.strip():
        yield Violation(field_path="output.postProcess.command", reason="must not be blank when set")
    if post.timeout_ms <= 0:
        yield Violation(field_path="output.postProcess.timeoutMs", reason="must be a positive number of milliseconds")


def _check_status(tree: OptionsTree) -> Iterable[Violation]:
    if tree.status.icon_theme not in ICON_THEMES:
        yield Violation(field_path="status.iconTheme", reason=f"must be one of {', '.join(ICON_THEMES)}")


def _check_state_file(tree: OptionsTree) -> Iterable[Violation]:
    if not tree.state_file.strip():
        yield Violation(field_path="stateFile", reason="must be 'auto', 'disabled' or a path")


CHECKS: List[Callable[[OptionsTree], Iterable[Violation]]] = [
    _check_package,
    _check_model,
    _check_hotkey,
    _check_audio,
    _check_whisper,
    _check_output,
    _check_status,
    _check_state_file,
]


def validate_options(tree: OptionsTree) -> List[Violation]:
    """
    Evaluate every invariant over the tree.

    Returns:
        All violations in check order; an empty list means the tree is valid
    """
    violations: List[Violation] = []
    for check in CHECKS:
        violations.extend(check(tree))
    return violations


def check_options(tree: OptionsTree) -> OptionsTree:
    """
    Validate the tree, raising the complete set of violations.

    Raises:
        ValidationError: If any invariant is violated
    """
    violations = validate_options(tree)
    if violations:
        raise ValidationError(violations)
    return tree


def validate_overrides(overrides: Optional[Mapping[str, Any]]) -> Tuple[OptionsTree, List[Violation]]:
    """
    Merge an override document onto the defaults and validate the result.

    Type errors from the merge and invariant violations are reported
    together: values that do not fit their type are left at their default
    so the invariant checks still run over the rest of the tree.

    Returns:
        (tree, violations); type errors come first, then invariant
        violations in check order

    Raises:
        SchemaError: If the override references an unknown option
        AmbiguousModelSelection: If the model section sets both or neither of name/path
    """
    tree, violations = merge_overrides(default_options(), overrides)
    return tree, violations + validate_options(tree)

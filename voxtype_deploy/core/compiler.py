"""
Config compilation.

Projects a validated options tree and its resolved model reference into the
daemon's config.toml document:

1. a base document built strictly from typed options, leaving out optional
   values that are not set and subsections whose feature is disabled;
2. the free-form ``settings`` layer deep-merged on top, override wins;
3. canonical key ordering, then TOML rendering.

Identical input always renders byte-identical output.
"""

from typing import Any, Dict

import tomli_w

from .digest import calculate_text_digest
from .errors import ValidationError, Violation
from .merge import canonicalize, deep_merge
from .options import OptionsTree
from .timing import timer
from .types import CompiledConfig, ModelReference


def build_base_document(tree: OptionsTree, model: ModelReference) -> Dict[str, Any]:
    """
    Build the structured document from typed options only.

    Deployment-time sections (package, service, ydotool, enable) are not part
    of the daemon's config and are left out. Of the model reference only the
    local path is written.
    """
    hotkey = tree.hotkey
    audio = tree.audio
    whisper = tree.whisper
    output = tree.output
    status = tree.status

    audio_doc: Dict[str, Any] = {
        "device": audio.device,
        "sample_rate": audio.sample_rate,
        "max_duration_secs": audio.max_duration_secs,
    }
    if audio.feedback.enable:
        audio_doc["feedback"] = {
            "enabled": True,
            "theme": audio.feedback.theme,
            "volume": audio.feedback.volume,
        }

    whisper_doc: Dict[str, Any] = {
        "model": model.resolved_local_path,
        "language": whisper.language,
        "translate": whisper.translate,
        "on_demand_loading": whisper.on_demand_loading,
    }
    if whisper.threads is not None:
        whisper_doc["threads"] = whisper.threads

    output_doc: Dict[str, Any] = {
        "mode": output.mode,
        "fallback_to_clipboard": output.fallback_to_clipboard,
        "type_delay_ms": output.type_delay_ms,
        "notification": {
            "on_recording_start": output.notification.on_recording_start,
            "on_recording_stop": output.notification.on_recording_stop,
            "on_transcription": output.notification.on_transcription,
        },
    }
    if output.post_process.command is not None:
        output_doc["post_process"] = {
            "command": output.post_process.command,
            "timeout_ms": output.post_process.timeout_ms,
        }

    status_doc: Dict[str, Any] = {"icon_theme": status.icon_theme}
    if status.icons:
        status_doc["icons"] = dict(status.icons)

    return {
        "state_file": tree.state_file,
        "hotkey": {
            "enabled": hotkey.enable,
            "key": hotkey.key,
            "modifiers": list(hotkey.modifiers),
            "mode": hotkey.mode,
        },
        "audio": audio_doc,
        "whisper": whisper_doc,
        "output": output_doc,
        "status": status_doc,
    }


def render_toml(document: Dict[str, Any]) -> str:
    """
    Render a document as TOML with sorted keys at every level.

    Raises:
        ValidationError: If the document holds values TOML cannot represent
    """
    try:
        return tomli_w.dumps(canonicalize(document))
    except TypeError as e:
        raise ValidationError([Violation(field_path="settings", reason=f"cannot be written as TOML: {e}")])


@timer
def compile_config(tree: OptionsTree, model: ModelReference) -> CompiledConfig:
    """
    Compile a validated options tree into the daemon config document.

    Args:
        tree: Validated options tree
        model: Resolved model reference

    Returns:
        CompiledConfig with the canonical document, its TOML text and digest
    """
    document = canonicalize(deep_merge(build_base_document(tree, model), tree.settings))
    text = render_toml(document)
    return CompiledConfig(document=document, text=text, digest=calculate_text_digest(text))

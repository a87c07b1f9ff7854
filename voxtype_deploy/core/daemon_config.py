"""
The daemon's own view of config.toml.

These models describe what the VoxType daemon reads at startup. They are used
to re-parse a compiled document and confirm that every value the engine
wrote reads back the same way. Sections the engine does not know (added
through the settings escape hatch) are kept as extra fields.
"""

import tomllib
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class DaemonSection(BaseModel):
    model_config = ConfigDict(extra="allow")


class DaemonHotkey(DaemonSection):
    enabled: bool = False
    key: str = "SCROLLLOCK"
    modifiers: List[str] = Field(default_factory=list)
    mode: Literal["push_to_talk", "toggle"] = "push_to_talk"


class DaemonFeedback(DaemonSection):
    enabled: bool = False
    theme: str = "default"
    volume: float = 0.7


class DaemonAudio(DaemonSection):
    device: str = "default"
    sample_rate: int = 16000
    max_duration_secs: int = 60
    feedback: Optional[DaemonFeedback] = None


class DaemonWhisper(DaemonSection):
    model: str
    language: str = "en"
    translate: bool = False
    threads: Optional[int] = None
    on_demand_loading: bool = False


class DaemonNotification(DaemonSection):
    on_recording_start: bool = False
    on_recording_stop: bool = False
    on_transcription: bool = True


class DaemonPostProcess(DaemonSection):
    command: str
    timeout_ms: int = 30000


class DaemonOutput(DaemonSection):
    mode: Literal["type", "clipboard", "paste"] = "type"
    fallback_to_clipboard: bool = True
    type_delay_ms: int = 0
    notification: DaemonNotification = Field(default_factory=DaemonNotification)
    post_process: Optional[DaemonPostProcess] = None


class DaemonStatus(DaemonSection):
    icon_theme: str = "emoji"
    icons: Dict[str, str] = Field(default_factory=dict)


class DaemonConfig(DaemonSection):
    state_file: str = "auto"
    hotkey: DaemonHotkey = Field(default_factory=DaemonHotkey)
    audio: DaemonAudio = Field(default_factory=DaemonAudio)
    whisper: DaemonWhisper
    output: DaemonOutput = Field(default_factory=DaemonOutput)
    status: DaemonStatus = Field(default_factory=DaemonStatus)


def parse_compiled(text: str) -> DaemonConfig:
    """
    Parse config.toml text the way the daemon does.

    Raises:
        tomllib.TOMLDecodeError: If the text is not valid TOML
        pydantic.ValidationError: If values do not fit the daemon's schema
    """
    return DaemonConfig.model_validate(tomllib.loads(text))

"""
Tests for the option schema and the typed override merge.
"""

from pathlib import Path

import pytest

from voxtype_deploy.core.errors import AmbiguousModelSelection, SchemaError, ValidationError
from voxtype_deploy.core.options import (
    CatalogModel,
    ExplicitModel,
    OptionsTree,
    apply_overrides,
    build_options,
    default_options,
    load_overrides,
    parse_model_selection,
)


class TestDefaults:
    """Test the fully-defaulted tree."""

    def test_default_tree_is_complete(self):
        """Every leaf has a default."""
        tree = default_options()
        assert tree.enable is True
        assert tree.model == CatalogModel(name="base.en")
        assert tree.hotkey.key == "SCROLLLOCK"
        assert tree.hotkey.mode == "push_to_talk"
        assert tree.audio.sample_rate == 16000
        assert tree.audio.feedback.volume == 0.7
        assert tree.whisper.threads is None
        assert tree.output.mode == "type"
        assert tree.output.post_process.command is None
        assert tree.status.icon_theme == "emoji"
        assert tree.state_file == "auto"
        assert tree.service.enable is False
        assert tree.settings == {}

    def test_empty_override_is_identity(self):
        """None and {} leave the tree unchanged."""
        base = default_options()
        assert apply_overrides(base, None) == base
        assert apply_overrides(base, {}) == base

    def test_tree_is_immutable(self):
        """Options records are frozen."""
        tree = default_options()
        with pytest.raises(Exception):
            tree.enable = False


class TestApplyOverrides:
    """Test the field-by-field merge."""

    def test_nested_record_merges_recursively(self):
        """Setting one leaf keeps its siblings at their defaults."""
        tree = build_options({"audio": {"feedback": {"enable": True}}})
        assert tree.audio.feedback.enable is True
        assert tree.audio.feedback.theme == "default"
        assert tree.audio.feedback.volume == 0.7
        assert tree.audio.device == "default"

    def test_camel_case_paths(self):
        """Override documents use the camelCase option paths."""
        tree = build_options(
            {
                "audio": {"sampleRate": 48000, "maxDurationSecs": 120},
                "output": {"typeDelayMs": 5, "postProcess": {"command": "ollama run llama3.2:1b"}},
                "status": {"iconTheme": "nerd-font"},
                "stateFile": "disabled",
                "ydotool": {"enableDaemon": True},
            }
        )
        assert tree.audio.sample_rate == 48000
        assert tree.audio.max_duration_secs == 120
        assert tree.output.type_delay_ms == 5
        assert tree.output.post_process.command == "ollama run llama3.2:1b"
        assert tree.output.post_process.timeout_ms == 30000
        assert tree.status.icon_theme == "nerd-font"
        assert tree.state_file == "disabled"
        assert tree.ydotool.enable_daemon is True

    def test_lists_replace_wholesale(self):
        """A later list replaces an earlier one instead of concatenating."""
        first = build_options({"hotkey": {"modifiers": ["LEFTCTRL", "LEFTALT"]}})
        second = apply_overrides(first, {"hotkey": {"modifiers": ["RIGHTALT"]}})
        assert second.hotkey.modifiers == ("RIGHTALT",)

    def test_icons_merge_keywise(self):
        """status.icons keeps existing keys not named by the override."""
        first = build_options({"status": {"icons": {"idle": "I", "recording": "R"}}})
        second = apply_overrides(first, {"status": {"icons": {"recording": "●"}}})
        assert second.status.icons == {"idle": "I", "recording": "●"}

    def test_settings_deep_merge(self):
        """The settings escape hatch merges nested tables."""
        first = build_options({"settings": {"whisper": {"gpu": {"enabled": True}}}})
        second = apply_overrides(first, {"settings": {"whisper": {"gpu": {"device": 1}}}})
        assert second.settings == {"whisper": {"gpu": {"enabled": True, "device": 1}}}

    def test_override_is_idempotent(self):
        """Applying the same override twice equals applying it once."""
        overrides = {
            "hotkey": {"enable": True, "modifiers": ["LEFTCTRL"]},
            "status": {"icons": {"idle": "x"}},
            "settings": {"extra": {"a": [1, 2]}},
            "model": {"path": "/models/custom.bin"},
        }
        once = build_options(overrides)
        twice = apply_overrides(once, overrides)
        assert once == twice

    def test_base_is_not_modified(self):
        """apply_overrides returns a new tree."""
        base = default_options()
        apply_overrides(base, {"whisper": {"language": "de"}})
        assert base.whisper.language == "en"

    def test_duplicate_modifiers_collapse(self):
        """Repeated modifiers keep their first occurrence."""
        tree = build_options({"hotkey": {"modifiers": ["LEFTCTRL", "LEFTALT", "LEFTCTRL"]}})
        assert tree.hotkey.modifiers == ("LEFTCTRL", "LEFTALT")


class TestOverrideErrors:
    """Test rejection of malformed override documents."""

    def test_unknown_top_level_key(self):
        """Unknown options raise SchemaError with their path."""
        with pytest.raises(SchemaError) as exc_info:
            build_options({"hotkeys": {"enable": True}})
        assert exc_info.value.field_path == "hotkeys"

    def test_unknown_nested_key(self):
        """The full dotted path of a nested unknown key is reported."""
        with pytest.raises(SchemaError) as exc_info:
            build_options({"audio": {"feedback": {"loudness": 3}}})
        assert exc_info.value.field_path == "audio.feedback.loudness"

    def test_type_error_becomes_violation(self):
        """Values of the wrong type become ValidationError violations."""
        with pytest.raises(ValidationError) as exc_info:
            build_options({"audio": {"sampleRate": "fast"}})
        paths = [v.field_path for v in exc_info.value.violations]
        assert paths == ["audio.sampleRate"]

    def test_enum_outside_domain(self):
        """Enumerated fields reject values outside their domain."""
        with pytest.raises(ValidationError):
            build_options({"output": {"mode": "shout"}})

    def test_out_of_range_volume_is_left_to_validator(self):
        """Range checks are not part of the schema."""
        tree = build_options({"audio": {"feedback": {"volume": 1.5}}})
        assert tree.audio.feedback.volume == 1.5


class TestModelSelection:
    """Test the name/path variant parsed at the override boundary."""

    def test_name_selects_catalog(self):
        assert parse_model_selection({"name": "small.en"}) == CatalogModel(name="small.en")

    def test_path_selects_explicit(self):
        assert parse_model_selection({"path": "/m/ggml.bin"}) == ExplicitModel(path="/m/ggml.bin")

    def test_both_is_ambiguous(self):
        """Setting both name and path is rejected."""
        with pytest.raises(AmbiguousModelSelection) as exc_info:
            build_options({"model": {"name": "base.en", "path": "/m/ggml.bin"}})
        assert "both" in str(exc_info.value)

    def test_neither_is_ambiguous(self):
        """An empty model section is rejected."""
        with pytest.raises(AmbiguousModelSelection) as exc_info:
            build_options({"model": {}})
        assert "either" in str(exc_info.value)

    def test_model_replaces_wholesale(self):
        """Switching to an explicit path drops the catalog name."""
        first = build_options({"model": {"name": "tiny"}})
        second = apply_overrides(first, {"model": {"path": "/m/ggml.bin"}})
        assert second.model == ExplicitModel(path="/m/ggml.bin")

    def test_unknown_model_key(self):
        with pytest.raises(SchemaError) as exc_info:
            build_options({"model": {"url": "https://example.invalid"}})
        assert exc_info.value.field_path == "model.url"


class TestLoadOverrides:
    """Test reading override documents from TOML."""

    def test_missing_file_means_defaults(self, tmp_path: Path):
        assert load_overrides(tmp_path / "absent.toml") == {}
        assert load_overrides(None) == {}

    def test_reads_toml(self, tmp_path: Path):
        """Tables and arrays come through as plain dicts and lists."""
        doc = tmp_path / "voxtype.toml"
        doc.write_text(
            '[hotkey]\nenable = true\nmodifiers = ["LEFTCTRL"]\n\n[model]\nname = "small.en"\n',
            encoding="utf-8",
        )
        overrides = load_overrides(doc)
        assert overrides == {"hotkey": {"enable": True, "modifiers": ["LEFTCTRL"]}, "model": {"name": "small.en"}}
        tree = build_options(overrides)
        assert isinstance(tree, OptionsTree)
        assert tree.model == CatalogModel(name="small.en")

    def test_invalid_toml(self, tmp_path: Path):
        """Unparseable documents raise SchemaError."""
        doc = tmp_path / "broken.toml"
        doc.write_text("[hotkey\nenable = true\n", encoding="utf-8")
        with pytest.raises(SchemaError):
            load_overrides(doc)

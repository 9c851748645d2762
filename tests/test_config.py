"""Tests for the clack configuration system.

Tests default generation, deep merge, local .clack.yml overrides,
validation warnings with typo suggestions, typed accessors falling back
to defaults, and --reset-config.
"""

from __future__ import annotations

import os

import pytest
import yaml

from clack.config import (
    DEFAULT_CONFIG,
    LOCAL_CONFIG_NAME,
    ClackConfig,
    _closest_match,
    _deep_merge,
    _edit_distance,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    """Run every test in an empty directory so no stray .clack.yml is merged."""
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.fixture()
def tmp_config(tmp_path):
    """Create a temporary config file path."""
    return str(tmp_path / "config" / "config.yml")


def write_config(path: str, data: dict) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(data, f)


# ---------------------------------------------------------------------------
# Merge helpers
# ---------------------------------------------------------------------------

class TestDeepMerge:
    def test_override_wins(self):
        assert _deep_merge({"a": 1}, {"a": 2}) == {"a": 2}

    def test_nested(self):
        base = {"speech": {"rateWpm": 300, "command": "auto"}}
        merged = _deep_merge(base, {"speech": {"rateWpm": 200}})
        assert merged == {"speech": {"rateWpm": 200, "command": "auto"}}

    def test_base_not_mutated(self):
        base = {"speech": {"rateWpm": 300}}
        _deep_merge(base, {"speech": {"rateWpm": 200}})
        assert base["speech"]["rateWpm"] == 300


class TestClosestMatch:
    def test_typo(self):
        assert _closest_match("rateWmp", {"rateWpm", "command"}) == "rateWpm"

    def test_case_insensitive(self):
        assert _closest_match("RATEWPM", {"rateWpm"}) == "rateWpm"

    def test_too_far(self):
        assert _closest_match("zzzzzzzz", {"rateWpm"}) is None

    def test_edit_distance(self):
        assert _edit_distance("kitten", "sitting") == 3
        assert _edit_distance("", "abc") == 3


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class TestLoad:
    def test_missing_file_writes_defaults(self, tmp_config):
        config = ClackConfig.load(tmp_config)
        assert os.path.isfile(tmp_config)
        with open(tmp_config) as f:
            assert yaml.safe_load(f) == DEFAULT_CONFIG
        assert config.validation_warnings == []

    def test_defaults(self, tmp_config):
        config = ClackConfig.load(tmp_config)
        assert config.rate_wpm == 300
        assert config.speech_command == "auto"
        assert config.tone_volume == 0.5
        assert config.wrap_navigation is False
        assert config.spaces_per_indent == 4
        assert config.key_bindings["quit"] == "ctrl+q"

    def test_user_values(self, tmp_config):
        write_config(tmp_config, {
            "speech": {"rateWpm": 180, "command": "espeak-ng"},
            "navigation": {"wrap": True},
        })
        config = ClackConfig.load(tmp_config)
        assert config.rate_wpm == 180
        assert config.speech_command == "espeak-ng"
        assert config.wrap_navigation is True
        assert config.tone_volume == 0.5

    def test_local_config_overrides_user_config(self, tmp_config, _isolated_cwd):
        write_config(tmp_config, {"speech": {"rateWpm": 180}})
        write_config(str(_isolated_cwd / LOCAL_CONFIG_NAME), {"speech": {"rateWpm": 400}})
        assert ClackConfig.load(tmp_config).rate_wpm == 400

    def test_invalid_yaml_falls_back_to_defaults(self, tmp_config):
        os.makedirs(os.path.dirname(tmp_config), exist_ok=True)
        with open(tmp_config, "w") as f:
            f.write("speech: [unclosed\n")
        config = ClackConfig.load(tmp_config)
        assert config.rate_wpm == 300

    def test_non_mapping_file_ignored(self, tmp_config):
        os.makedirs(os.path.dirname(tmp_config), exist_ok=True)
        with open(tmp_config, "w") as f:
            f.write("- just\n- a list\n")
        assert ClackConfig.load(tmp_config).rate_wpm == 300

    def test_reset_rewrites_defaults(self, tmp_config):
        write_config(tmp_config, {"speech": {"rateWpm": 120}})
        config = ClackConfig.reset(tmp_config)
        assert config.rate_wpm == 300
        with open(tmp_config) as f:
            assert yaml.safe_load(f)["speech"]["rateWpm"] == 300


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidation:
    def test_unknown_top_level_key_suggests_fix(self, tmp_config):
        write_config(tmp_config, {"speach": {"rateWpm": 200}})
        config = ClackConfig.load(tmp_config)
        assert any("speach" in w and "speech" in w for w in config.validation_warnings)

    def test_unknown_nested_key(self, tmp_config):
        write_config(tmp_config, {"speech": {"rateWmp": 200}})
        config = ClackConfig.load(tmp_config)
        assert any("speech.rateWmp" in w and "rateWpm" in w for w in config.validation_warnings)

    @pytest.mark.parametrize("rate", [0, 10, 5000, "fast", 2.5, True])
    def test_bad_rate_falls_back(self, tmp_config, rate):
        write_config(tmp_config, {"speech": {"rateWpm": rate}})
        config = ClackConfig.load(tmp_config)
        assert config.rate_wpm == 300
        assert any("rateWpm" in w for w in config.validation_warnings)

    def test_bad_volume_falls_back(self, tmp_config):
        write_config(tmp_config, {"tones": {"volume": 3}})
        config = ClackConfig.load(tmp_config)
        assert config.tone_volume == 0.5
        assert any("tones.volume" in w for w in config.validation_warnings)

    def test_bad_indent_falls_back(self, tmp_config):
        write_config(tmp_config, {"indent": {"spacesPerLevel": 0}})
        config = ClackConfig.load(tmp_config)
        assert config.spaces_per_indent == 4

    def test_unknown_voice_program_warns(self, tmp_config):
        write_config(tmp_config, {"speech": {"command": "festival"}})
        config = ClackConfig.load(tmp_config)
        assert any("festival" in w for w in config.validation_warnings)

    def test_section_not_a_mapping(self, tmp_config):
        write_config(tmp_config, {"tones": 7})
        config = ClackConfig.load(tmp_config)
        assert config.tone_volume == 0.5
        assert any("'tones' should be a mapping" in w for w in config.validation_warnings)

    def test_wrap_must_be_bool(self, tmp_config):
        write_config(tmp_config, {"navigation": {"wrap": "yes"}})
        config = ClackConfig.load(tmp_config)
        assert config.wrap_navigation is False
        assert any("navigation.wrap" in w for w in config.validation_warnings)


class TestAccessors:
    def test_rate_override_wins(self, tmp_config):
        write_config(tmp_config, {"speech": {"rateWpm": 180}})
        config = ClackConfig.load(tmp_config)
        config.rate_override = 450
        assert config.rate_wpm == 450

    def test_key_bindings_merge_with_defaults(self, tmp_config):
        write_config(tmp_config, {"keyBindings": {"save": "ctrl+o", "bogus": "x", "quit": ""}})
        bindings = ClackConfig.load(tmp_config).key_bindings
        assert bindings["save"] == "ctrl+o"
        assert bindings["quit"] == "ctrl+q"
        assert "bogus" not in bindings

    def test_default_instance_without_file(self):
        assert ClackConfig().rate_wpm == 300

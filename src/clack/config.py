"""Configuration system for clack.

Reads config from $XDG_CONFIG_HOME/clack/config.yml (or --config-file)
and merges a project-local .clack.yml from the current directory on top.

The config defines:
  - speech: voice program and rate in words per minute
  - tones: volume of navigation and indentation cues
  - navigation: whether left/right wrap across rows
  - indent: how many spaces make one indentation level
  - keyBindings: key name for each editor action

Bad values never stop the editor: they are reported in
``validation_warnings`` and the default is used instead.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from .audio import DEFAULT_RATE_WPM, SPEECH_BINARIES
from .logging import get_logger

_log = get_logger("clack.config")


DEFAULT_CONFIG_DIR = os.path.join(
    os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config")),
    "clack",
)
DEFAULT_CONFIG_FILE = os.path.join(DEFAULT_CONFIG_DIR, "config.yml")
LOCAL_CONFIG_NAME = ".clack.yml"

MIN_RATE_WPM = 50
MAX_RATE_WPM = 1000

# Full default config, written on first run and used as fallback for missing keys
DEFAULT_CONFIG: dict[str, Any] = {
    "speech": {
        "rateWpm": DEFAULT_RATE_WPM,
        "command": "auto",            # "auto", "say", "espeak-ng", "espeak" or a path
    },
    "tones": {
        "volume": 0.5,
    },
    "navigation": {
        "wrap": False,                # left/right move across row boundaries
    },
    "indent": {
        "spacesPerLevel": 4,
    },
    "keyBindings": {
        "quit": "ctrl+q",
        "save": "ctrl+s",
        "find": "ctrl+f",
        "findNext": "ctrl+g",
        "findPrevious": "ctrl+r",
        "speakPosition": "ctrl+p",
        "speakRow": "ctrl+l",
        "spellWord": "ctrl+w",
        "stopSpeech": "escape",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep-merge override into base. Override values win."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _closest_match(key: str, valid_keys: set[str], max_distance: int = 3) -> str | None:
    """Find the closest match for a key in a set of valid keys.

    Uses Levenshtein edit distance to suggest typo corrections.
    Returns None if no match is close enough (within max_distance edits).
    """
    best_match = None
    best_dist = max_distance + 1
    key_lower = key.lower()
    for candidate in valid_keys:
        cand_lower = candidate.lower()
        if key_lower == cand_lower:
            return candidate
        if abs(len(key_lower) - len(cand_lower)) > max_distance:
            continue
        dist = _edit_distance(key_lower, cand_lower)
        if dist < best_dist:
            best_dist = dist
            best_match = candidate
    return best_match if best_dist <= max_distance else None


def _edit_distance(a: str, b: str) -> int:
    """Compute Levenshtein edit distance between two strings."""
    if len(a) > len(b):
        a, b = b, a
    prev = list(range(len(a) + 1))
    for j in range(1, len(b) + 1):
        curr = [j] + [0] * len(a)
        for i in range(1, len(a) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            curr[i] = min(curr[i - 1] + 1, prev[i] + 1, prev[i - 1] + cost)
        prev = curr
    return prev[len(a)]


def _load_yaml(path: str) -> dict[str, Any]:
    """Read a YAML mapping; anything unreadable or not a mapping is empty."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        _log.warning("failed to load config from %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        if data is not None:
            _log.warning("ignoring config %s: top level is not a mapping", path)
        return {}
    return data


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class ClackConfig:
    """Parsed clack configuration."""

    raw: dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_CONFIG))
    """The merged config (defaults + user file + local file)."""

    config_path: str = DEFAULT_CONFIG_FILE
    """Path to the config file."""

    validation_warnings: list[str] = field(default_factory=list)
    """Warnings from the last validation run."""

    rate_override: Optional[int] = None
    """Words per minute from ``--rate``; wins over the file when set."""

    @classmethod
    def reset(cls, config_path: Optional[str] = None) -> "ClackConfig":
        """Delete the config file and regenerate it with all current defaults."""
        path = config_path or DEFAULT_CONFIG_FILE
        if os.path.isfile(path):
            os.unlink(path)
            _log.info("deleted config %s", path)
        return cls.load(path)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "ClackConfig":
        """Load config from file, creating it with defaults if not found.

        Merge order (later takes precedence):
        1. DEFAULT_CONFIG (built-in defaults)
        2. ~/.config/clack/config.yml (user config)
        3. .clack.yml in cwd (project-local)
        """
        path = config_path or DEFAULT_CONFIG_FILE
        raw = copy.deepcopy(DEFAULT_CONFIG)

        if os.path.isfile(path):
            raw = _deep_merge(raw, _load_yaml(path))
        else:
            try:
                os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
                with open(path, "w") as f:
                    yaml.dump(raw, f, default_flow_style=False, sort_keys=False)
                _log.info("created default config %s", path)
            except OSError as e:
                _log.warning("failed to write default config to %s: %s", path, e)

        local_path = os.path.join(os.getcwd(), LOCAL_CONFIG_NAME)
        if os.path.isfile(local_path) and os.path.abspath(local_path) != os.path.abspath(path):
            raw = _deep_merge(raw, _load_yaml(local_path))
            _log.info("merged local config %s", local_path)

        cfg = cls(raw=raw, config_path=path)
        cfg._validate()
        for warning in cfg.validation_warnings:
            _log.warning("config: %s", warning)
        return cfg

    def _validate(self) -> None:
        """Validate config structure and record warnings for issues."""
        warnings: list[str] = []

        known_top_level = set(DEFAULT_CONFIG)
        for key in self.raw:
            if key not in known_top_level:
                suggest = _closest_match(key, known_top_level)
                hint = f" (did you mean '{suggest}'?)" if suggest else ""
                warnings.append(
                    f"Unknown top-level key '{key}'{hint} — "
                    f"expected one of: {', '.join(sorted(known_top_level))}"
                )

        for section, defaults in DEFAULT_CONFIG.items():
            value = self.raw.get(section)
            if not isinstance(value, dict):
                warnings.append(f"'{section}' should be a mapping — using defaults")
                continue
            known = set(defaults)
            for key in value:
                if key not in known:
                    suggest = _closest_match(key, known)
                    hint = f" (did you mean '{suggest}'?)" if suggest else ""
                    warnings.append(
                        f"Unknown key '{section}.{key}'{hint} — "
                        f"expected one of: {', '.join(sorted(known))}"
                    )

        rate = self._get("speech", "rateWpm")
        if not isinstance(rate, int) or isinstance(rate, bool) \
                or not MIN_RATE_WPM <= rate <= MAX_RATE_WPM:
            warnings.append(
                f"speech.rateWpm {rate!r} is not a whole number in "
                f"{MIN_RATE_WPM}-{MAX_RATE_WPM} — using {DEFAULT_RATE_WPM}"
            )

        command = self._get("speech", "command")
        if not isinstance(command, str) or not command:
            warnings.append(f"speech.command {command!r} is not a string — using 'auto'")
        elif command != "auto" and os.path.basename(command) not in SPEECH_BINARIES:
            warnings.append(
                f"speech.command '{command}' is not a known voice program — "
                f"expected 'auto' or one of: {', '.join(SPEECH_BINARIES)}"
            )

        volume = self._get("tones", "volume")
        if not _is_number(volume) or not 0.0 <= volume <= 1.0:
            warnings.append(f"tones.volume {volume!r} is out of range (0.0-1.0)")

        spaces = self._get("indent", "spacesPerLevel")
        if not isinstance(spaces, int) or isinstance(spaces, bool) or spaces < 1:
            warnings.append(f"indent.spacesPerLevel {spaces!r} must be a positive integer")

        if not isinstance(self._get("navigation", "wrap"), bool):
            warnings.append("navigation.wrap must be true or false")

        self.validation_warnings = warnings

    def _get(self, section: str, key: str) -> Any:
        """Value of ``section.key``, or the default when the section is malformed."""
        value = self.raw.get(section)
        if isinstance(value, dict) and key in value:
            return value[key]
        return DEFAULT_CONFIG[section][key]

    # ─── Typed accessors (fall back to defaults on bad values) ────

    @property
    def rate_wpm(self) -> int:
        if self.rate_override is not None:
            return self.rate_override
        rate = self._get("speech", "rateWpm")
        if isinstance(rate, int) and not isinstance(rate, bool) \
                and MIN_RATE_WPM <= rate <= MAX_RATE_WPM:
            return rate
        return DEFAULT_RATE_WPM

    @property
    def speech_command(self) -> str:
        command = self._get("speech", "command")
        if isinstance(command, str) and command:
            return command
        return "auto"

    @property
    def tone_volume(self) -> float:
        volume = self._get("tones", "volume")
        if _is_number(volume) and 0.0 <= volume <= 1.0:
            return float(volume)
        return DEFAULT_CONFIG["tones"]["volume"]

    @property
    def wrap_navigation(self) -> bool:
        wrap = self._get("navigation", "wrap")
        return wrap if isinstance(wrap, bool) else False

    @property
    def spaces_per_indent(self) -> int:
        spaces = self._get("indent", "spacesPerLevel")
        if isinstance(spaces, int) and not isinstance(spaces, bool) and spaces >= 1:
            return spaces
        return DEFAULT_CONFIG["indent"]["spacesPerLevel"]

    @property
    def key_bindings(self) -> dict[str, str]:
        """Action name → key, defaults filled in for anything missing."""
        bindings = dict(DEFAULT_CONFIG["keyBindings"])
        user = self.raw.get("keyBindings")
        if isinstance(user, dict):
            for action, key in user.items():
                if action in bindings and isinstance(key, str) and key:
                    bindings[action] = key
        return bindings

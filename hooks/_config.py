"""
Centralized configuration for thrash guard hooks.

Loads settings from ~/.claude/config/hook_settings.json with sensible defaults.
Supports hot-reload on file change via mtime checking.

Environment and file lookups happen here, in the host adapter. The detector
itself only ever sees a typed DetectorConfig.
"""

import _lib_path  # noqa: F401
import hashlib
import json
import os
import time
from pathlib import Path
from typing import Any

from thrash_detector import DetectorConfig

# =============================================================================
# CONFIG PATHS
# =============================================================================

CONFIG_DIR = Path.home() / ".claude" / "config"
HOOK_SETTINGS_FILE = CONFIG_DIR / "hook_settings.json"
STATE_ROOT = Path.home() / ".claude" / "memory" / "state" / "projects"

STATE_DIR_ENV = "CLAUDE_THRASH_STATE_DIR"

# =============================================================================
# DEFAULT VALUES (used when config file missing or key not found)
# =============================================================================

DEFAULTS = {
    "thrash": {
        "enabled": True,
        "errorThreshold": 3,
        "editThreshold": 3,
        "toolCallThreshold": 3,
        "windowSeconds": 600,
        "recentSampleSize": 10,
        "failureRateThreshold": 7,
        "max_findings": 4,
        "state_dir": None,  # None = project-isolated default
    },
}

# =============================================================================
# CONFIG LOADER WITH HOT-RELOAD
# =============================================================================


class HookConfig:
    """Configuration loader with mtime-based hot-reload."""

    def __init__(self, settings_file: Path = HOOK_SETTINGS_FILE):
        self.settings_file = Path(settings_file)
        self._config: dict = {}
        self._mtime: float = 0
        self._last_check: float = 0
        self._check_interval: float = 5.0  # Check for changes every 5 seconds
        self._load()

    def _should_reload(self) -> bool:
        """Check if config file has changed since last load."""
        now = time.time()
        if now - self._last_check < self._check_interval:
            return False
        self._last_check = now

        if not self.settings_file.exists():
            return bool(self._config)

        current_mtime = self.settings_file.stat().st_mtime
        return current_mtime != self._mtime

    def _load(self) -> None:
        """Load config from file."""
        if self.settings_file.exists():
            try:
                loaded = json.loads(self.settings_file.read_text())
                self._config = loaded if isinstance(loaded, dict) else {}
                self._mtime = self.settings_file.stat().st_mtime
            except (json.JSONDecodeError, OSError):
                self._config = {}
        else:
            self._config = {}

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get a config value with fallback to defaults."""
        if self._should_reload():
            self._load()

        loaded = self._config.get(section)
        if isinstance(loaded, dict) and key in loaded:
            return loaded[key]

        if section in DEFAULTS and key in DEFAULTS[section]:
            return DEFAULTS[section][key]

        return default

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        if self._should_reload():
            self._load()

        result = dict(DEFAULTS.get(section, {}))
        loaded = self._config.get(section)
        if isinstance(loaded, dict):
            result.update(loaded)
        return result

    def reload(self) -> None:
        """Force reload config from disk."""
        self._load()


# =============================================================================
# SINGLETON INSTANCE
# =============================================================================

config = HookConfig()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def _cwd_project_id() -> str:
    """cwd-hash project id, so parallel projects never share thrash state."""
    cwd = os.path.realpath(os.getcwd())
    return f"cwd_{hashlib.sha256(cwd.encode()).hexdigest()[:12]}"


def is_enabled(cfg: HookConfig = None) -> bool:
    return bool((cfg or config).get("thrash", "enabled", True))


def get_max_findings(cfg: HookConfig = None) -> int:
    try:
        return max(1, int((cfg or config).get("thrash", "max_findings", 4)))
    except (TypeError, ValueError):
        return DEFAULTS["thrash"]["max_findings"]


def get_detector_config(cfg: HookConfig = None) -> DetectorConfig:
    """Typed detector config from the "thrash" settings section."""
    return DetectorConfig.from_options((cfg or config).get_section("thrash"))


def get_state_dir(cfg: HookConfig = None) -> Path:
    """Resolve the thrash state directory.

    Resolution order:
    1. CLAUDE_THRASH_STATE_DIR environment variable
    2. "state_dir" in the thrash settings section
    3. ~/.claude/memory/state/projects/{cwd_hash}/thrash
    """
    override = os.environ.get(STATE_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    configured = (cfg or config).get("thrash", "state_dir")
    if configured:
        return Path(str(configured)).expanduser()
    return STATE_ROOT / _cwd_project_id() / "thrash"

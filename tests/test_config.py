"""Tests for hook configuration loading."""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "hooks"))
sys.path.insert(0, str(Path(__file__).parent.parent / "lib"))

import _config
from _config import (
    DEFAULTS,
    STATE_DIR_ENV,
    HookConfig,
    get_detector_config,
    get_max_findings,
    get_state_dir,
    is_enabled,
)
from thrash_detector import DetectorConfig, FailureRateConfig, ThresholdConfig


def write_settings(path: Path, thrash: dict) -> HookConfig:
    path.write_text(json.dumps({"thrash": thrash}))
    return HookConfig(path)


class TestHookConfig:
    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = HookConfig(tmp_path / "missing.json")

        assert cfg.get_section("thrash") == DEFAULTS["thrash"]
        assert cfg.get("thrash", "windowSeconds") == 600

    def test_file_values_override_defaults(self, tmp_path):
        cfg = write_settings(tmp_path / "s.json", {"errorThreshold": 5})

        section = cfg.get_section("thrash")

        assert section["errorThreshold"] == 5
        assert section["editThreshold"] == 3

    def test_corrupted_file_falls_back(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("{broken")

        cfg = HookConfig(path)

        assert cfg.get("thrash", "enabled") is True

    def test_unknown_key_returns_default_arg(self, tmp_path):
        cfg = HookConfig(tmp_path / "missing.json")

        assert cfg.get("thrash", "nope", "fallback") == "fallback"

    def test_reload_picks_up_changes(self, tmp_path):
        path = tmp_path / "s.json"
        cfg = write_settings(path, {"editThreshold": 4})

        path.write_text(json.dumps({"thrash": {"editThreshold": 8}}))
        cfg.reload()

        assert cfg.get("thrash", "editThreshold") == 8


class TestConvenienceFunctions:
    def test_detector_config_from_settings(self, tmp_path):
        cfg = write_settings(
            tmp_path / "s.json",
            {"toolCallThreshold": 4, "windowSeconds": 300, "recentSampleSize": 8, "failureRateThreshold": 6},
        )

        config = get_detector_config(cfg)

        assert config.tool_call == ThresholdConfig(4, 300.0)
        assert config.error == ThresholdConfig(3, 300.0)
        assert config.failure_rate == FailureRateConfig(8, 6)

    def test_default_detector_config(self, tmp_path):
        assert get_detector_config(HookConfig(tmp_path / "missing.json")) == DetectorConfig()

    def test_enabled_flag(self, tmp_path):
        cfg = write_settings(tmp_path / "s.json", {"enabled": False})

        assert is_enabled(cfg) is False

    def test_max_findings_bad_value(self, tmp_path):
        cfg = write_settings(tmp_path / "s.json", {"max_findings": "many"})

        assert get_max_findings(cfg) == 4


class TestStateDir:
    def test_env_override_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv(STATE_DIR_ENV, str(tmp_path / "env"))
        cfg = write_settings(tmp_path / "s.json", {"state_dir": str(tmp_path / "cfg")})

        assert get_state_dir(cfg) == tmp_path / "env"

    def test_configured_state_dir(self, tmp_path, monkeypatch):
        monkeypatch.delenv(STATE_DIR_ENV, raising=False)
        cfg = write_settings(tmp_path / "s.json", {"state_dir": str(tmp_path / "cfg")})

        assert get_state_dir(cfg) == tmp_path / "cfg"

    def test_default_is_project_isolated(self, tmp_path, monkeypatch):
        monkeypatch.delenv(STATE_DIR_ENV, raising=False)
        cfg = HookConfig(tmp_path / "missing.json")

        monkeypatch.chdir(tmp_path)
        first = get_state_dir(cfg)
        other = tmp_path / "other"
        other.mkdir()
        monkeypatch.chdir(other)
        second = get_state_dir(cfg)

        assert first != second
        assert first.parent.parent == _config.STATE_ROOT
        assert first.name == "thrash"
        assert first.parent.name.startswith("cwd_")

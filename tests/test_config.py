"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import yaml

from zen_focus.core.config import Config


def test_defaults(monkeypatch):
    monkeypatch.delenv("ZEN_FOCUS_LOG_LEVEL", raising=False)
    config = Config()

    assert config.timer.tick_interval_seconds == 1.0
    assert config.timer.default_focus_minutes == 25
    assert config.ledger.retention_days == 30
    assert config.ledger.history_limit == 100
    assert config.sound.chime_file is None
    assert config.db_path.name == "zen_focus.db"


def test_load_from_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "data_dir": str(tmp_path / "data"),
                "ledger": {"retention_days": 14, "history_limit": 50},
                "timer": {"default_focus_minutes": 50},
            }
        )
    )

    config = Config.load(path)

    assert config.data_dir == tmp_path / "data"
    assert config.ledger.retention_days == 14
    assert config.ledger.history_limit == 50
    assert config.timer.default_focus_minutes == 50
    assert config.timer.default_break_minutes == 5


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("ZEN_FOCUS_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("ZEN_FOCUS_LEDGER__RETENTION_DAYS", "7")

    config = Config.load(tmp_path / "missing.yaml")

    assert config.log_level == "DEBUG"
    assert config.ledger.retention_days == 7


def test_save_round_trip(tmp_path):
    config = Config(
        data_dir=tmp_path / "data",
        config_dir=tmp_path / "cfg",
        sound={"chime_file": str(tmp_path / "chime.wav")},
    )
    config.save()

    loaded = Config.load(config.config_file)

    assert loaded.data_dir == tmp_path / "data"
    assert loaded.sound.chime_file == Path(tmp_path / "chime.wav")


def test_load_reads_file_from_configured_directory(monkeypatch, tmp_path):
    monkeypatch.setenv("ZEN_FOCUS_CONFIG_DIR", str(tmp_path / "cfg"))
    Config(ledger={"history_limit": 42}).save()

    loaded = Config.load()

    assert loaded.config_file == tmp_path / "cfg" / "config.yaml"
    assert loaded.ledger.history_limit == 42

"""Configuration management with Pydantic and YAML support."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TimerConfig(BaseModel):
    """Timer engine configuration."""

    tick_interval_seconds: float = Field(
        default=1.0, gt=0, le=60, description="UI refresh cadence while running"
    )
    default_focus_minutes: int = Field(default=25, ge=1, le=240)
    default_break_minutes: int = Field(default=5, ge=1, le=120)


class LedgerConfig(BaseModel):
    """Statistics retention configuration."""

    retention_days: int = Field(default=30, ge=1, description="Days of daily stats to keep")
    history_limit: int = Field(default=100, ge=1, description="Max session records kept")
    week_days: int = Field(default=7, ge=1, le=31, description="Days shown in the weekly view")


class SoundConfig(BaseModel):
    """Completion chime configuration."""

    enabled: bool = Field(default=True, description="Default for the sound preference")
    chime_file: Path | None = Field(default=None, description="Audio file to play on completion")
    player_command: list[str] = Field(
        default_factory=lambda: ["paplay"],
        description="Command used to play the chime file (file path is appended)",
    )


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ZEN_FOCUS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/zen-focus")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".local/state/zen-focus")
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config/zen-focus")

    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Sub-configurations
    timer: TimerConfig = Field(default_factory=TimerConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    sound: SoundConfig = Field(default_factory=SoundConfig)

    @property
    def db_path(self) -> Path:
        """Path to SQLite database."""
        return self.data_dir / "zen_focus.db"

    @property
    def config_file(self) -> Path:
        """Path to YAML config file."""
        return self.config_dir / "config.yaml"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        os.chmod(self.data_dir, 0o700)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from YAML file, environment variables, and defaults.

        Priority (highest to lowest):
        1. YAML config file
        2. Environment variables
        3. Default values
        """
        # Same location `save()` writes to, so ZEN_FOCUS_CONFIG_DIR is honoured
        config_path = config_path or cls().config_file

        yaml_config: dict[str, Any] = {}
        if config_path.exists():
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}

        return cls(**yaml_config)

    def save(self, config_path: Path | None = None) -> None:
        """Save current configuration to YAML file."""
        config_path = config_path or self.config_file
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode="json", exclude_none=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


@lru_cache
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.load()

"""Configuration model, file locations and loading."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

log = logging.getLogger(__name__)

APP_NAME = "idlewatch"


class ConfigError(ValueError):
    """Raised when an explicitly requested configuration cannot be used."""


class MonitorConfig(BaseModel):
    target_name: str = Field(default="claude", min_length=1)
    refresh_interval: float = Field(default=1.0, gt=0)
    full_scan_interval: float = Field(default=10.0, gt=0)
    cpu_threshold: int = Field(default=50, ge=0)
    io_threshold: int = Field(default=16384, ge=0)
    debounce_seconds: float = Field(default=5.0, ge=0)
    idle_notify_delay: float = Field(default=5.0, ge=0)
    notify_cooldown: float = Field(default=30.0, ge=0)
    notify: bool = False
    sticky: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


def config_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_NAME


def config_path() -> Path:
    return config_dir() / "config.json"


def state_dir() -> Path:
    base = os.environ.get("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return Path(base) / APP_NAME


def log_path() -> Path:
    return state_dir() / f"{APP_NAME}.log"


class ConfigStore:
    """Reads and writes ``MonitorConfig`` as JSON."""

    def __init__(self, path: Path | None = None) -> None:
        self._explicit = path is not None
        self._path = path or config_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> MonitorConfig:
        """
        Load the configuration.

        A missing default file yields defaults. A missing explicit file raises
        ConfigError. An unreadable or invalid file is logged and yields defaults.
        """
        if not self._path.exists():
            if self._explicit:
                raise ConfigError(f"Config file not found: {self._path}")
            return MonitorConfig()

        try:
            data: Any = json.loads(self._path.read_text(encoding="utf-8"))
            return MonitorConfig.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            log.warning("Ignoring invalid config %s: %s", self._path, exc)
            return MonitorConfig()

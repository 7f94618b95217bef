"""Configuration management for xliff-workspace."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def parse_bool(value: Any, default: bool) -> bool:
    """Parse a boolean from YAML, accepting common string spellings.

    Args:
        value: Raw value (bool, int, str or None).
        default: Returned when value is None.

    Returns:
        Parsed boolean.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in {"true", "yes", "on", "1"}


def _expand(path: str) -> Path:
    return Path(os.path.expanduser(path))


@dataclass
class WorkspaceConfig:
    """Configuration for scanning and watching a workspace."""

    # Workspace used when no root is given on the command line
    workspace_root: Path | None = None

    # Maximum queued watch events, 0 for unbounded
    event_queue_size: int = 0

    # Seconds the service waits for an event per loop iteration
    poll_interval: float = 0.5

    # Run a full scan before watching
    rescan_on_start: bool = True

    # Logging
    log_file: Path = field(
        default_factory=lambda: Path.home() / ".local/state/xliff-workspace/xliff-workspace.log"
    )
    log_level: str = "INFO"

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return Path.home() / ".config/xliff-workspace/config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> WorkspaceConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration.

        Raises:
            ValueError: If the file is not valid YAML or holds invalid values.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        with config_path.open(encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Invalid config in {config_path}: expected a mapping")

        config = cls._from_dict(data)
        config.validate()
        return config

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> WorkspaceConfig:
        """Create config from dictionary."""
        config = cls()

        if data.get("workspace_root"):
            config.workspace_root = _expand(data["workspace_root"])
        if "event_queue_size" in data:
            config.event_queue_size = int(data["event_queue_size"])
        if "poll_interval" in data:
            config.poll_interval = float(data["poll_interval"])
        if "rescan_on_start" in data:
            config.rescan_on_start = parse_bool(data["rescan_on_start"], True)

        # Logging
        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if "file" in logging_cfg:
                config.log_file = _expand(logging_cfg["file"])
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"]).upper()

        return config

    def validate(self) -> None:
        """Check values that YAML cannot constrain.

        Raises:
            ValueError: On the first invalid value.

        """
        if self.event_queue_size < 0:
            raise ValueError("event_queue_size must not be negative")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "workspace_root": str(self.workspace_root) if self.workspace_root else None,
            "event_queue_size": self.event_queue_size,
            "poll_interval": self.poll_interval,
            "rescan_on_start": self.rescan_on_start,
            "logging": {
                "file": str(self.log_file),
                "level": self.log_level,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

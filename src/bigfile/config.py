"""Configuration management for bigfile."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .rules import Rule, RuleSet
from .size import MIB

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_rules() -> RuleSet:
    """Rules used when the configuration does not supply any."""
    return RuleSet(
        [
            Rule(
                threshold=1,
                patterns=("*",),
                feature_names=(
                    "indent_blankline",
                    "illuminate",
                    "lsp",
                    "treesitter",
                    "syntax",
                    "matchparen",
                    "vimopts",
                ),
            ),
            Rule(threshold=5, patterns=("*",), feature_names=("filetype",)),
        ]
    )


@dataclass
class BigfileConfig:
    """Configuration for bigfile."""

    # Size/pattern rules, replaced wholesale by the config file
    rules: RuleSet = field(default_factory=default_rules)

    # Bytes per size unit used by rule thresholds
    size_unit: int = MIB

    # Directories the watch command monitors
    watch_directories: list[Path] = field(default_factory=list)

    # Logging
    log_file: Path = field(default_factory=lambda: Path.home() / ".local/state/bigfile/bigfile.log")
    log_level: str = "INFO"

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
        return Path(config_home) / "bigfile" / "config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> BigfileConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration, or the defaults if the file is missing.

        Raises:
            ConfigError: If the file cannot be parsed or is invalid.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Cannot parse {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> BigfileConfig:
        """Create config from dictionary."""
        config = cls()

        if "rules" in data:
            if not isinstance(data["rules"], list):
                raise ConfigError("'rules' must be a list")
            config.rules = RuleSet.from_config(data["rules"])

        if "size_unit" in data:
            try:
                size_unit = int(data["size_unit"])
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"'size_unit' must be an integer, got {data['size_unit']!r}") from exc
            if size_unit <= 0:
                raise ConfigError(f"'size_unit' must be positive, got {size_unit}")
            config.size_unit = size_unit

        if "watch_directories" in data:
            config.watch_directories = [
                Path(os.path.expanduser(p)) for p in data["watch_directories"]
            ]

        # Logging
        if "logging" in data:
            logging_cfg = data["logging"]
            if not isinstance(logging_cfg, dict):
                raise ConfigError("'logging' must be a mapping")
            if "file" in logging_cfg:
                config.log_file = Path(os.path.expanduser(logging_cfg["file"]))
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"]).upper()

        config.validate()
        return config

    def validate(self) -> None:
        """Check values that cannot be checked field by field.

        Raises:
            ConfigError: If the log level is unknown.

        """
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {self.log_level}")

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "rules": [rule.to_dict() for rule in self.rules],
            "size_unit": self.size_unit,
            "watch_directories": [str(p) for p in self.watch_directories],
            "logging": {
                "file": str(self.log_file),
                "level": self.log_level,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

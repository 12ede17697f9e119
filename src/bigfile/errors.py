"""Exceptions raised by bigfile."""

from __future__ import annotations


class BigfileError(Exception):
    """Base class for all bigfile errors."""


class UnresolvedFeatureError(BigfileError, LookupError):
    """A rule references a feature name that has no registered feature."""

    def __init__(self, name: str) -> None:
        super().__init__(f"feature '{name}' does not exist")
        self.name = name


class ConfigError(BigfileError, ValueError):
    """Configuration is malformed."""

"""Disable expensive editor features on very large files."""

from __future__ import annotations

from .errors import BigfileError, ConfigError, UnresolvedFeatureError
from .plugin import Bigfile, setup

__version__ = "0.1.0"

__all__ = [
    "Bigfile",
    "BigfileError",
    "ConfigError",
    "UnresolvedFeatureError",
    "setup",
]

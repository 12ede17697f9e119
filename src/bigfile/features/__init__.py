"""Feature registry with auto-discovery of built-in features."""

from __future__ import annotations

import importlib
import logging
import pkgutil
import types
from typing import TYPE_CHECKING, Iterable, Iterator

from ..errors import UnresolvedFeatureError
from .base import CustomFeature, Feature

if TYPE_CHECKING:
    from ..rules import RuleSet

logger = logging.getLogger(__name__)

__all__ = ["CustomFeature", "Feature", "FeatureRegistry", "discover_features"]


def discover_features() -> list[Feature]:
    """Discover and instantiate all built-in features.

    Scans the features package for classes with FEATURE_ENABLED = True
    and instantiates them.
    """
    features: list[Feature] = []
    package = importlib.import_module(__package__ or "bigfile.features")

    for _finder, module_name, _is_pkg in pkgutil.iter_modules(package.__path__):
        if module_name == "base":
            continue
        try:
            mod = importlib.import_module(f"{package.__name__}.{module_name}")
        except ImportError:
            logger.warning("Failed to import feature module: %s", module_name)
            continue

        features.extend(_find_feature_classes(mod))
    return features


def _find_feature_classes(mod: types.ModuleType) -> list[Feature]:
    """Instantiate all feature classes defined in the given Python module."""
    found: list[Feature] = []

    for attr_name in dir(mod):
        attr = getattr(mod, attr_name)
        if not (
            isinstance(attr, type)
            and attr.__module__ == mod.__name__
            and getattr(attr, "FEATURE_ENABLED", False) is True
        ):
            continue

        try:
            instance = attr()
        except (TypeError, ValueError):
            logger.warning("Failed to instantiate feature: %s", attr_name, exc_info=True)
            continue

        found.append(instance)
        logger.debug("Loaded feature: %s", instance.name)

    return found


class FeatureRegistry:
    """Maps feature names to features."""

    def __init__(self, features: Iterable[Feature] = ()) -> None:
        self._features: dict[str, Feature] = {}
        for feature in features:
            self.register(feature)

    @classmethod
    def builtin(cls) -> FeatureRegistry:
        """Create a registry holding every discovered built-in feature."""
        return cls(discover_features())

    def register(self, feature: Feature, *, replace: bool = False) -> None:
        """Add a feature under its name.

        Args:
            feature: Feature to register.
            replace: Allow overriding an existing feature of the same name.

        Raises:
            ValueError: If the name is taken and replace is False.

        """
        if not replace and feature.name in self._features:
            raise ValueError(f"feature '{feature.name}' is already registered")
        self._features[feature.name] = feature

    def get(self, name: str | Feature) -> Feature:
        """Resolve a feature name, passing custom features through as-is.

        Raises:
            UnresolvedFeatureError: If no feature has that name.

        """
        if not isinstance(name, str):
            if isinstance(name, Feature):
                return name
            raise UnresolvedFeatureError(repr(name))
        try:
            return self._features[name]
        except KeyError:
            raise UnresolvedFeatureError(name) from None

    def validate(self, ruleset: RuleSet) -> None:
        """Check that every feature a ruleset names is registered.

        Raises:
            UnresolvedFeatureError: For the first unknown name found.

        """
        for rule in ruleset:
            for name in rule.feature_names:
                self.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._features

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features.values())

    def __len__(self) -> int:
        return len(self._features)

    def names(self) -> list[str]:
        return list(self._features)

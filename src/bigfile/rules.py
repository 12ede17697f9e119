"""Size/pattern rules and their match results."""

from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Sequence, Union

from .errors import ConfigError

if TYPE_CHECKING:
    from .features import Feature

FeatureRef = Union[str, "Feature"]


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternations into plain fnmatch patterns.

    Nested and repeated groups are expanded. An unbalanced brace is left
    as a literal character.
    """
    start = pattern.find("{")
    if start == -1:
        return [pattern]

    depth = 0
    for end in range(start, len(pattern)):
        if pattern[end] == "{":
            depth += 1
        elif pattern[end] == "}":
            depth -= 1
            if depth == 0:
                break
    else:
        prefix = pattern[: start + 1]
        return [prefix + rest for rest in expand_braces(pattern[start + 1 :])]

    alternatives: list[str] = []
    current: list[str] = []
    depth = 0
    for char in pattern[start + 1 : end]:
        if char == "," and depth == 0:
            alternatives.append("".join(current))
            current = []
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current.append(char)
    alternatives.append("".join(current))

    prefix, suffix = pattern[:start], pattern[end + 1 :]
    expanded: list[str] = []
    for alternative in alternatives:
        expanded.extend(expand_braces(prefix + alternative + suffix))
    return expanded


def pattern_matches(pattern: str, path: Path | None) -> bool:
    """Check a document path against an autocommand-style glob.

    A pattern without a slash matches the file name only; with a slash it
    matches the whole path. ``{a,b}`` alternations are supported. Documents
    without a path never match.
    """
    if path is None:
        return False
    for candidate in expand_braces(pattern):
        if "/" in candidate:
            if fnmatch.fnmatchcase(str(path), os.path.expanduser(candidate)):
                return True
        elif fnmatch.fnmatchcase(path.name, candidate):
            return True
    return False


@dataclass(frozen=True)
class Rule:
    """Disable ``feature_names`` on files of at least ``threshold`` units."""

    threshold: int
    patterns: tuple[str, ...] = ("*",)
    feature_names: tuple[FeatureRef, ...] = ()
    rule_id: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, int) or self.threshold < 0:
            raise ConfigError(f"rule size must be a non-negative integer, got {self.threshold!r}")
        if not self.patterns:
            raise ConfigError("rule needs at least one pattern")

    @property
    def description(self) -> str:
        return f"Performance rule for handling files over {self.threshold}MiB"

    def matches_path(self, path: Path | None) -> bool:
        return any(pattern_matches(pattern, path) for pattern in self.patterns)

    @classmethod
    def from_dict(cls, data: dict[str, Any], rule_id: int = 0) -> Rule:
        """Build a rule from its configuration mapping.

        Args:
            data: Mapping with ``size``, ``pattern`` and ``features`` keys.
            rule_id: Position of the rule in its ruleset.

        Raises:
            ConfigError: If a key is missing or has the wrong shape.

        """
        if not isinstance(data, dict):
            raise ConfigError(f"rule must be a mapping, got {type(data).__name__}")
        if "size" not in data:
            raise ConfigError("rule is missing 'size'")

        patterns = data.get("pattern", ["*"])
        if isinstance(patterns, str):
            patterns = [patterns]
        features = data.get("features", [])
        if isinstance(features, str) or not isinstance(features, (list, tuple)):
            raise ConfigError("rule 'features' must be a list")
        for name in features:
            if not isinstance(name, str):
                raise ConfigError(f"rule feature names must be strings, got {name!r}")

        return cls(
            threshold=data["size"],
            patterns=tuple(str(p) for p in patterns),
            feature_names=tuple(features),
            rule_id=rule_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "size": self.threshold,
            "pattern": list(self.patterns),
            "features": [f if isinstance(f, str) else f.name for f in self.feature_names],
        }


class RuleSet(Sequence[Rule]):
    """Ordered, immutable collection of independently evaluated rules."""

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules = tuple(replace(rule, rule_id=i) for i, rule in enumerate(rules))

    @classmethod
    def from_config(cls, data: Iterable[dict[str, Any]]) -> RuleSet:
        if isinstance(data, (str, dict)):
            raise ConfigError("'rules' must be a list of rule mappings")
        return cls(Rule.from_dict(item, i) for i, item in enumerate(data))

    def __getitem__(self, index):  # type: ignore[override]
        return self._rules[index]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet({list(self._rules)!r})"


@dataclass(frozen=True)
class MatchResult:
    """Features one rule selected for one document, split by timing."""

    fired: bool = False
    immediate: tuple[Feature, ...] = field(default_factory=tuple)
    deferred: tuple[Feature, ...] = field(default_factory=tuple)

    @property
    def features(self) -> tuple[Feature, ...]:
        return self.immediate + self.deferred

    def __bool__(self) -> bool:
        return bool(self.immediate or self.deferred)

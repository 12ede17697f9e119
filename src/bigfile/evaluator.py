"""Decide which features a rule selects for a document."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .rules import MatchResult

if TYPE_CHECKING:
    from .document import Document
    from .features import FeatureRegistry
    from .rules import Rule
    from .size import SizeProbe

logger = logging.getLogger(__name__)


class RuleEvaluator:
    """Evaluates single rules against documents."""

    def __init__(self, probe: SizeProbe, registry: FeatureRegistry) -> None:
        """Initialize the evaluator.

        Args:
            probe: Size probe used to measure documents.
            registry: Registry used to resolve feature names.

        """
        self.probe = probe
        self.registry = registry

    def evaluate(self, document: Document, rule: Rule) -> MatchResult:
        """Evaluate one rule against one document.

        The size is probed on every call. All feature names are resolved
        before the result is built, so an unknown name fails the whole rule.

        Args:
            document: Document to classify.
            rule: Rule to evaluate.

        Returns:
            Matched features split into immediate and deferred, in rule
            order. Empty and not fired when the size is unknown or below
            the rule threshold.

        Raises:
            UnresolvedFeatureError: If a feature name is not registered.

        """
        size = self.probe.probe(document)
        if size is None or size < rule.threshold:
            return MatchResult()

        features = [self.registry.get(name) for name in rule.feature_names]
        logger.debug(
            "%s is %d units (>= %d), matched %s",
            document,
            size,
            rule.threshold,
            [f.name for f in features],
        )
        return MatchResult(
            fired=True,
            immediate=tuple(f for f in features if not f.deferred),
            deferred=tuple(f for f in features if f.deferred),
        )

"""Per-document detection state machine.

A document moves UNSET -> IN_PROGRESS -> DONE. Pre-load triggers evaluate
one rule each, disable that rule's immediate features and leave a one-shot
post-load continuation that disables the deferred ones. Once a document
is DONE, further triggers are ignored, so reloads never re-disable.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

from .document import DETECTED_FLAG, Detection
from .host import EventKind

if TYPE_CHECKING:
    from .document import Document
    from .evaluator import RuleEvaluator
    from .features import Feature
    from .host import Host, Subscription
    from .rules import Rule

logger = logging.getLogger(__name__)


class DocumentProcessor:
    """Drives documents through rule evaluation and feature disabling."""

    def __init__(self, host: Host, evaluator: RuleEvaluator, group: str = "bigfile.deferred") -> None:
        """Initialize the processor.

        Args:
            host: Host used for document flags and post-load subscriptions.
            evaluator: Rule evaluator.
            group: Subscription group for post-load continuations and the
                close handler.

        """
        self.host = host
        self.evaluator = evaluator
        self.group = group
        self._continuations: dict[tuple[int, int], Subscription] = {}
        self.host.subscribe(
            EventKind.CLOSE,
            self._on_close,
            group=self.group,
            description="Drop pending bigfile work for closed documents",
        )

    def detection(self, document: Document) -> Detection:
        """Get a document's detection state. An absent flag means UNSET."""
        value = self.host.get_document_flag(document, DETECTED_FLAG)
        return value if isinstance(value, Detection) else Detection()

    def disabled_features(self, document: Document) -> list[Feature]:
        """Features disabled for a document so far, in the order disabled."""
        return list(self.detection(document).disabled)

    def on_pre_load(self, document: Document, rule: Rule) -> None:
        """Handle the pre-load trigger for one (document, rule) pair.

        Raises:
            UnresolvedFeatureError: If the rule names an unknown feature.
                Nothing has been disabled for the rule when this is raised.

        """
        detection = self.detection(document)
        if detection.done:
            logger.debug("%s already processed, skipping rule %d", document, rule.rule_id)
            return

        key = (document.handle, rule.rule_id)
        if (pending := self._continuations.get(key)) is not None and pending.active:
            # Rule already ran for this load; its continuation is still waiting
            return

        result = self.evaluator.evaluate(document, rule)
        if not result.fired:
            return

        self.host.set_document_flag(
            document, DETECTED_FLAG, detection.begin(rule.rule_id, matched=bool(result))
        )

        for feature in result.immediate:
            self._disable(document, feature)

        self._continuations[key] = self.host.subscribe(
            EventKind.POST_LOAD,
            functools.partial(self._on_post_load, rule=rule, deferred=result.deferred),
            document=document,
            once=True,
            group=self.group,
            description=f"Deferred {rule.description.lower()}",
        )

    def _on_post_load(self, document: Document, *, rule: Rule, deferred: tuple[Feature, ...]) -> None:
        self._continuations.pop((document.handle, rule.rule_id), None)

        detection = self.detection(document).finish(rule.rule_id)
        self.host.set_document_flag(document, DETECTED_FLAG, detection)

        for feature in deferred:
            self._disable(document, feature)

        if detection.done and not detection.pending:
            logger.info(
                "Big file detected: %s (disabled: %s)",
                document,
                ", ".join(f.name for f in self.detection(document).disabled) or "-",
            )

    def _disable(self, document: Document, feature: Feature) -> None:
        feature.disable(document)
        self.host.set_document_flag(document, DETECTED_FLAG, self.detection(document).record(feature))
        logger.debug("Disabled %s for %s", feature.name, document)

    def _on_close(self, document: Document) -> None:
        self.forget(document)

    def forget(self, document: Document) -> int:
        """Cancel a document's outstanding post-load continuations.

        Returns:
            Number of continuations cancelled.

        """
        keys = [key for key in self._continuations if key[0] == document.handle]
        for key in keys:
            self._continuations.pop(key).cancel()
        return len(keys)

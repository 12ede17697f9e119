"""Wire bigfile into a host."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .config import BigfileConfig
from .evaluator import RuleEvaluator
from .features import FeatureRegistry
from .processor import DocumentProcessor
from .registrar import RuleSetRegistrar
from .size import SizeProbe

if TYPE_CHECKING:
    from .document import Document
    from .host import Host, Subscription
    from .rules import RuleSet

logger = logging.getLogger(__name__)


@dataclass
class Bigfile:
    """A bigfile instance attached to a host."""

    host: Host
    config: BigfileConfig
    registry: FeatureRegistry
    processor: DocumentProcessor
    registrar: RuleSetRegistrar
    subscriptions: list[Subscription] = field(default_factory=list)

    @property
    def rules(self) -> RuleSet:
        return self.config.rules

    def forget(self, document: Document) -> int:
        """Drop pending deferred work for a document that was closed."""
        return self.processor.forget(document)

    def teardown(self) -> int:
        """Remove the subscriptions created by setup.

        Returns:
            Number of pre-load rule subscriptions removed.

        """
        self.subscriptions = []
        self.host.clear_group(self.processor.group)
        return self.registrar.unregister()


def setup(
    host: Host,
    config: BigfileConfig | None = None,
    registry: FeatureRegistry | None = None,
    *,
    group: str = "bigfile",
) -> Bigfile:
    """Attach bigfile to a host.

    Feature names are validated against the registry before anything is
    subscribed. Calling setup again with the same group replaces the
    earlier rules.

    Args:
        host: Host to subscribe to.
        config: Configuration. Defaults are used if None.
        registry: Feature registry. Built-in features if None.
        group: Subscription group name.

    Returns:
        The attached instance.

    Raises:
        UnresolvedFeatureError: If a rule names an unknown feature.

    """
    if config is None:
        config = BigfileConfig()
    if registry is None:
        registry = FeatureRegistry.builtin()
    registry.validate(config.rules)

    evaluator = RuleEvaluator(SizeProbe(config.size_unit), registry)
    processor = DocumentProcessor(host, evaluator, group=f"{group}.deferred")
    registrar = RuleSetRegistrar(host, group=group)

    instance = Bigfile(
        host=host,
        config=config,
        registry=registry,
        processor=processor,
        registrar=registrar,
    )
    instance.subscriptions = registrar.register(config.rules, processor.on_pre_load)
    logger.debug("bigfile attached with %d rules", len(config.rules))
    return instance

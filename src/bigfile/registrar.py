"""Subscribe rulesets to the host's pre-load event."""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING, Callable

from .host import EventKind

if TYPE_CHECKING:
    from .document import Document
    from .host import Host, Subscription
    from .rules import Rule, RuleSet

logger = logging.getLogger(__name__)

PreLoadCallback = Callable[["Document", "Rule"], None]


class RuleSetRegistrar:
    """Owns the host subscriptions created for a ruleset."""

    def __init__(self, host: Host, group: str = "bigfile") -> None:
        self.host = host
        self.group = group

    def register(self, ruleset: RuleSet, on_pre_load: PreLoadCallback) -> list[Subscription]:
        """Subscribe one pre-load handler per (rule, pattern) pair.

        Any subscriptions previously created in the group are cleared first,
        so registering again replaces the earlier ruleset.

        Args:
            ruleset: Rules to subscribe.
            on_pre_load: Called with the document and the rule that matched.

        Returns:
            The created subscriptions.

        """
        if cleared := self.host.clear_group(self.group):
            logger.debug("Cleared %d existing subscriptions in group %s", cleared, self.group)

        subscriptions: list[Subscription] = []
        for rule in ruleset:
            handler = functools.partial(_dispatch, on_pre_load, rule)
            for pattern in rule.patterns:
                subscriptions.append(
                    self.host.subscribe(
                        EventKind.PRE_LOAD,
                        handler,
                        pattern=pattern,
                        group=self.group,
                        description=rule.description,
                    )
                )
        logger.debug("Registered %d rules (%d subscriptions)", len(ruleset), len(subscriptions))
        return subscriptions

    def unregister(self) -> int:
        """Remove every subscription in the group."""
        return self.host.clear_group(self.group)


def _dispatch(on_pre_load: PreLoadCallback, rule: Rule, document: Document) -> None:
    on_pre_load(document, rule)

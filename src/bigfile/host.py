"""Editor host interface and an in-process implementation."""

from __future__ import annotations

import enum
import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Protocol

from .document import Document
from .rules import pattern_matches

logger = logging.getLogger(__name__)

Handler = Callable[[Document], None]


class EventKind(enum.Enum):
    """Document lifecycle events bigfile subscribes to."""

    PRE_LOAD = "pre_load"
    POST_LOAD = "post_load"
    CLOSE = "close"


@dataclass(eq=False)
class Subscription:
    """A registered event handler. Cancelling it is idempotent."""

    kind: EventKind
    handler: Handler
    pattern: str | None = None
    document: Document | None = None
    once: bool = False
    group: str | None = None
    description: str = ""
    active: bool = field(default=True, init=False)

    def cancel(self) -> None:
        self.active = False

    def accepts(self, kind: EventKind, document: Document) -> bool:
        """Check whether this subscription should fire for an event."""
        if not self.active or kind is not self.kind:
            return False
        if self.document is not None and self.document is not document:
            return False
        return self.pattern is None or pattern_matches(self.pattern, document.path)


class Host(Protocol):
    """What bigfile needs from the editor hosting it."""

    def subscribe(
        self,
        kind: EventKind,
        handler: Handler,
        *,
        pattern: str | None = None,
        document: Document | None = None,
        once: bool = False,
        group: str | None = None,
        description: str = "",
    ) -> Subscription:
        """Register a handler for an event kind.

        Pre-load subscriptions with a pattern fire on every matching open.
        Subscriptions with ``once`` are removed after they fire.
        """
        ...

    def clear_group(self, group: str) -> int:
        """Cancel every subscription in a group, returning how many."""
        ...

    def get_document_flag(self, document: Document, key: str, default: Any = None) -> Any:
        ...

    def set_document_flag(self, document: Document, key: str, value: Any) -> None:
        ...


class LocalHost:
    """Single-threaded in-process host that loads documents from disk paths.

    Events are dispatched synchronously in subscription order, and
    pre-load always precedes post-load for a document.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._documents: dict[int, Document] = {}
        self._handles = itertools.count(1)

    def subscribe(
        self,
        kind: EventKind,
        handler: Handler,
        *,
        pattern: str | None = None,
        document: Document | None = None,
        once: bool = False,
        group: str | None = None,
        description: str = "",
    ) -> Subscription:
        subscription = Subscription(
            kind=kind,
            handler=handler,
            pattern=pattern,
            document=document,
            once=once,
            group=group,
            description=description,
        )
        self._subscriptions.append(subscription)
        return subscription

    def clear_group(self, group: str) -> int:
        count = 0
        for subscription in self._subscriptions:
            if subscription.active and subscription.group == group:
                subscription.cancel()
                count += 1
        self._prune()
        return count

    def subscriptions(
        self,
        kind: EventKind | None = None,
        *,
        document: Document | None = None,
        group: str | None = None,
    ) -> list[Subscription]:
        """List active subscriptions, optionally filtered."""
        return [
            s
            for s in self._subscriptions
            if s.active
            and (kind is None or s.kind is kind)
            and (document is None or s.document is document)
            and (group is None or s.group == group)
        ]

    def get_document_flag(self, document: Document, key: str, default: Any = None) -> Any:
        return document.variables.get(key, default)

    def set_document_flag(self, document: Document, key: str, value: Any) -> None:
        document.variables[key] = value

    @property
    def documents(self) -> list[Document]:
        return list(self._documents.values())

    def find(self, path: Path) -> Document | None:
        """Find an open document by path."""
        resolved = path.expanduser().absolute()
        for document in self._documents.values():
            if document.path == resolved:
                return document
        return None

    def open(self, path: Path | None = None) -> Document:
        """Open a document and run it through pre-load and post-load.

        Opening a path that is already open reloads that document.

        Args:
            path: File to open, or None for a scratch document.

        Returns:
            The opened document.

        """
        if path is not None and (existing := self.find(path)) is not None:
            self.reload(existing)
            return existing

        document = Document(
            handle=next(self._handles),
            path=path.expanduser().absolute() if path is not None else None,
        )
        self._documents[document.handle] = document
        logger.debug("Opened %s", document)
        self._load(document)
        return document

    def reload(self, document: Document) -> None:
        """Re-read a document's content, firing the load events again."""
        logger.debug("Reloading %s", document)
        self._load(document)

    def close(self, document: Document) -> None:
        """Close a document and drop the subscriptions bound to it.

        Close handlers run before the document's subscriptions are cancelled.
        """
        self.dispatch(EventKind.CLOSE, document)
        for subscription in self._subscriptions:
            if subscription.document is document:
                subscription.cancel()
        self._prune()
        self._documents.pop(document.handle, None)
        logger.debug("Closed %s", document)

    def attach_lsp(self, document: Document, client: str) -> bool:
        """Try to attach a language server client to a document."""
        return document.attach_lsp(client)

    def _load(self, document: Document) -> None:
        self.dispatch(EventKind.PRE_LOAD, document)
        self.dispatch(EventKind.POST_LOAD, document)

    def dispatch(self, kind: EventKind, document: Document) -> int:
        """Fire every subscription accepting this event.

        One-shot subscriptions are torn down before their handler runs.
        Handler errors propagate and stop the dispatch.

        Returns:
            Number of handlers invoked.

        """
        fired = 0
        try:
            for subscription in list(self._subscriptions):
                if not subscription.accepts(kind, document):
                    continue
                if subscription.once:
                    subscription.cancel()
                fired += 1
                subscription.handler(document)
        finally:
            self._prune()
        return fired

    def _prune(self) -> None:
        self._subscriptions = [s for s in self._subscriptions if s.active]

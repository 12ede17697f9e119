"""Base protocol and types for disableable editor features."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..document import Document


@runtime_checkable
class Feature(Protocol):
    """Interface for an editor capability bigfile can switch off."""

    name: str
    deferred: bool

    def disable(self, document: Document) -> None:
        """Disable the feature for a single document.

        Args:
            document: Document to disable the feature for.

        """
        ...


@dataclass(frozen=True)
class CustomFeature:
    """A user-supplied feature built from a plain callable."""

    name: str
    disable_fn: Callable[[Document], None]
    deferred: bool = False

    def disable(self, document: Document) -> None:
        self.disable_fn(document)

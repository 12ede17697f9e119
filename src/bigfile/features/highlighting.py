"""Highlighting features: syntax, treesitter, illuminate, matchparen, indent guides.

Each feature flips document-local state that the corresponding editor
integration checks before doing any work on the buffer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..document import Document

TREESITTER_DISABLED_VAR = "bigfile_treesitter_disabled"

logger = logging.getLogger(__name__)


class SyntaxFeature:
    """Turns off regex syntax highlighting once the buffer is loaded."""

    FEATURE_ENABLED: bool = True
    name: str = "syntax"
    deferred: bool = True

    def disable(self, document: Document) -> None:
        document.variables.pop("current_syntax", None)
        document.options["syntax"] = "OFF"
        logger.debug("Syntax disabled: %s", document)


class TreesitterFeature:
    """Marks the buffer so treesitter highlighting skips it."""

    FEATURE_ENABLED: bool = True
    name: str = "treesitter"
    deferred: bool = False

    def disable(self, document: Document) -> None:
        document.variables[TREESITTER_DISABLED_VAR] = 1


class IlluminateFeature:
    """Pauses word-under-cursor highlighting for the buffer."""

    FEATURE_ENABLED: bool = True
    name: str = "illuminate"
    deferred: bool = False

    def disable(self, document: Document) -> None:
        document.variables["illuminate_paused"] = True


class MatchparenFeature:
    """Stops matching-bracket highlighting."""

    FEATURE_ENABLED: bool = True
    name: str = "matchparen"
    deferred: bool = False

    def disable(self, document: Document) -> None:
        document.variables["matchparen_disabled"] = True


class IndentBlanklineFeature:
    """Hides indentation guides."""

    FEATURE_ENABLED: bool = True
    name: str = "indent_blankline"
    deferred: bool = False

    def disable(self, document: Document) -> None:
        document.variables["indent_blankline_enabled"] = False

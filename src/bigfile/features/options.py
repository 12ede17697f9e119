"""Features that change document-local editor options."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..document import Document

# Options that make editing large buffers expensive
_CHEAP_OPTIONS = {
    "swapfile": False,
    "foldmethod": "manual",
    "undolevels": -1,
    "undoreload": 0,
    "list": False,
}


class VimoptsFeature:
    """Switches off swap files, folding, undo history and list mode."""

    FEATURE_ENABLED: bool = True
    name: str = "vimopts"
    deferred: bool = False

    def disable(self, document: Document) -> None:
        document.options.update(_CHEAP_OPTIONS)


class FiletypeFeature:
    """Clears the filetype after load so no filetype plugins run."""

    FEATURE_ENABLED: bool = True
    name: str = "filetype"
    deferred: bool = True

    def disable(self, document: Document) -> None:
        document.options["filetype"] = ""

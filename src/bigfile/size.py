"""Document size probing."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .document import Document

MIB = 1024 * 1024

logger = logging.getLogger(__name__)


class SizeProbe:
    """Reports a document's on-disk size in whole size units."""

    def __init__(self, unit: int = MIB) -> None:
        """Initialize the probe.

        Args:
            unit: Number of bytes in one size unit.

        """
        if unit <= 0:
            raise ValueError(f"size unit must be positive, got {unit}")
        self.unit = unit

    def probe(self, document: Document) -> int | None:
        """Get the document size rounded half up to whole units.

        Args:
            document: Document to measure.

        Returns:
            Size in units, or None if the document has no backing file
            or its metadata cannot be read.

        """
        if document.path is None:
            return None

        try:
            size = document.path.stat().st_size
        except OSError as exc:
            logger.debug("Cannot stat %s: %s", document.path, exc)
            return None

        return math.floor(0.5 + size / self.unit)

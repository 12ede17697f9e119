"""Language server feature."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..document import LSP_DISABLED_VAR

if TYPE_CHECKING:
    from ..document import Document

logger = logging.getLogger(__name__)


class LspFeature:
    """Detaches language servers and keeps new ones from attaching."""

    FEATURE_ENABLED: bool = True
    name: str = "lsp"
    deferred: bool = False

    def disable(self, document: Document) -> None:
        document.variables[LSP_DISABLED_VAR] = 1
        for client in sorted(document.lsp_clients):
            logger.debug("Detaching LSP client %s from %s", client, document)
        document.lsp_clients.clear()

"""Document model and the per-document detection state."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

DETECTED_FLAG = "bigfile_detected"
LSP_DISABLED_VAR = "bigfile_lsp_disabled"


class DetectionState(enum.Enum):
    """Where a document is in the detect -> disable cycle."""

    UNSET = "unset"
    IN_PROGRESS = "in_progress"
    DONE = "done"


@dataclass(frozen=True)
class Detection:
    """Tagged detection state stored in the document flag.

    ``pending`` holds the ids of rules whose post-load continuation has not
    fired yet. ``matched`` records whether any fired rule resolved at least
    one feature. ``disabled`` lists the features switched off so far, in
    order.
    """

    state: DetectionState = DetectionState.UNSET
    pending: frozenset[int] = frozenset()
    matched: bool = False
    disabled: tuple[Any, ...] = ()

    @property
    def done(self) -> bool:
        return self.state is DetectionState.DONE

    def begin(self, rule_id: int, *, matched: bool) -> Detection:
        """Mark a rule as started. Never regresses out of DONE."""
        if self.done:
            return self
        return replace(
            self,
            state=DetectionState.IN_PROGRESS,
            pending=self.pending | {rule_id},
            matched=self.matched or matched,
        )

    def finish(self, rule_id: int) -> Detection:
        """Clear a rule's pending marker, promoting to DONE if anything matched."""
        state = DetectionState.DONE if self.done or self.matched else self.state
        return replace(self, state=state, pending=self.pending - {rule_id})

    def record(self, feature: Any) -> Detection:
        """Append a disabled feature."""
        return replace(self, disabled=self.disabled + (feature,))


@dataclass(eq=False)
class Document:
    """An open buffer as seen by bigfile.

    ``variables`` is document-scoped metadata (where the detection flag
    lives), ``options`` holds document-local editor options.
    """

    handle: int
    path: Path | None = None
    variables: dict[str, Any] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)
    lsp_clients: set[str] = field(default_factory=set)

    def attach_lsp(self, client: str) -> bool:
        """Attach a language server client unless LSP is disabled here."""
        if self.variables.get(LSP_DISABLED_VAR):
            return False
        self.lsp_clients.add(client)
        return True

    @property
    def name(self) -> str:
        return str(self.path) if self.path is not None else ""

    def __str__(self) -> str:
        return f"Document({self.handle}, {self.name or '[No Name]'})"

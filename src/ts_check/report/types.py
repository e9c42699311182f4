"""Report input records."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..fragments import Frame
from ..protocol.messages import AnyDiagnostic


@dataclass
class ReportRecord:
    """Diagnostics of one file, ready to be reported.

    `code` holds one source fragment per diagnostic, in the same order.
    """

    file: str
    diagnostics: list[AnyDiagnostic]
    code: list[list[str]] = field(default_factory=list)
    frame: Frame = field(default_factory=Frame)

    @property
    def has_errors(self) -> bool:
        return any(diagnostic.is_error for diagnostic in self.diagnostics)

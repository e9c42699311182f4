"""Source code fragments around diagnostics.

Used by the console report: for every diagnostic, the lines it spans plus
`frame.before` lines above and `frame.after` lines below.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .protocol.messages import AnyDiagnostic

_LINE_BREAK_RE = re.compile(r"\r?\n")


@dataclass(frozen=True)
class Frame:
    """How many lines of context to show around a diagnostic."""

    before: int = 0
    after: int = 0


def slice_lines(lines: Sequence[str], start: int, end: int, frame: Frame) -> list[str]:
    """Lines `start`..`end` (1-based, inclusive) padded by `frame`."""
    first = max(start - 1 - frame.before, 0)
    last = min(end + frame.after, len(lines))
    return list(lines[first:last])


def read_code_fragments(
    path: str | Path,
    diagnostics: Sequence[AnyDiagnostic],
    frame: Frame,
) -> list[list[str]]:
    """Read the code fragment of every diagnostic from a file.

    Args:
        path: Path of the checked file
        diagnostics: Diagnostics reported for that file
        frame: Lines of context before and after each diagnostic

    Returns:
        One list of source lines per diagnostic, in the same order. Empty
        if there are no diagnostics (the file is not read then).

    Raises:
        OSError: If the file cannot be read
    """
    if not diagnostics:
        return []

    text = Path(path).read_text(encoding="utf-8")
    lines = _LINE_BREAK_RE.split(text)

    return [slice_lines(lines, *diagnostic.lines, frame) for diagnostic in diagnostics]

"""Console report in the style of `tsc` output.

Example:

    src/tree.ts:10:10 - error TS2345: Argument of type 'Node' is not assignable.

     9 import { Node } from './node';
    10 tree.add(new Node());
                ~~~~~~~~~~
    11 tree.clear();
"""

from __future__ import annotations

from collections.abc import Callable
from functools import partial

import click

from ..fragments import Frame
from ..protocol.messages import AnyDiagnostic
from .types import ReportRecord

Style = Callable[[str], str]


# Theme
FILE_NAME = partial(click.style, fg="bright_cyan")
FILE_LOCATION = partial(click.style, fg="bright_yellow")
ERROR_CODE = partial(click.style, fg="bright_black")
LINE_NUMBER = partial(click.style, reverse=True)

CATEGORY_STYLES: dict[str, Style] = {
    "error": partial(click.style, fg="bright_red"),
    "warning": partial(click.style, fg="bright_yellow"),
    "suggestion": partial(click.style, fg="bright_cyan"),
}
UNKNOWN_CATEGORY = partial(click.style, fg="bright_black")


def category_style(category: str) -> Style:
    """Color used for a diagnostic category."""
    return CATEGORY_STYLES.get(category, UNKNOWN_CATEGORY)


def format_header(file: str, diagnostic: AnyDiagnostic) -> str:
    """Format the first line of a diagnostic, the same way tsc does."""
    start = diagnostic.start_location
    parts = [
        FILE_NAME(file),
        FILE_LOCATION(f":{start.line}:{start.offset}"),
        " - ",
        category_style(diagnostic.category)(diagnostic.category),
        ERROR_CODE(f" TS{diagnostic.code}: "),
        diagnostic.message_text,
    ]
    return "".join(parts)


def format_code(diagnostic: AnyDiagnostic, code: list[str], frame: Frame) -> str:
    """Format a code fragment with a line-number gutter and `~` underlines.

    Args:
        diagnostic: The diagnostic the fragment was read for
        code: Source lines read around the diagnostic
        frame: Lines of context the fragment was read with

    Returns:
        The fragment, each line prefixed with its number, followed by an
        underline wherever the diagnostic spans that line
    """
    start = diagnostic.start_location
    end = diagnostic.end_location
    lines_before = min(start.line - 1, frame.before)
    width = len(str(end.line + frame.after))
    underline_style = category_style(diagnostic.category)

    def code_line(line_number: int, line: str) -> str:
        return LINE_NUMBER(str(line_number).rjust(width)) + " " + line

    def underline(first: int, last: int) -> str:
        marks = " " * first + "~" * max(last - first, 0)
        return LINE_NUMBER(" " * width) + " " + underline_style(marks)

    formatted: list[str] = []
    for index, line in enumerate(code):
        line_number = index - lines_before + start.line
        formatted.append(code_line(line_number, line))

        if start.line <= line_number < end.line:
            if index == lines_before:
                # from the start offset to the end of the line
                formatted.append(underline(start.offset - 1, len(line)))
            else:
                formatted.append(underline(0, len(line)))

        if line_number == end.line:
            if index == lines_before:
                formatted.append(underline(start.offset - 1, end.offset - 1))
            else:
                # from the start of the line to the end offset
                formatted.append(underline(0, end.offset - 1))

    return "\n".join(formatted)


def format_message(file: str, diagnostic: AnyDiagnostic, code: list[str], frame: Frame) -> str:
    """Header, blank line, code fragment, blank line."""
    return "\n".join([format_header(file, diagnostic), "", format_code(diagnostic, code, frame), ""])


def console_report(records: list[ReportRecord], color: bool | None = None) -> dict[str, int]:
    """Print every diagnostic, then a total per category.

    Args:
        records: Records to print
        color: True/False to force styling on/off, None to let click decide
            from the terminal

    Returns:
        Count of diagnostics per category
    """
    counters: dict[str, int] = {}

    for record in records:
        for index, diagnostic in enumerate(record.diagnostics):
            counters[diagnostic.category] = counters.get(diagnostic.category, 0) + 1
            code = record.code[index] if index < len(record.code) else []
            click.echo(format_message(record.file, diagnostic, code, record.frame), color=color)

    for category, count in counters.items():
        click.echo(f"Total {category}s: {count}", color=color)

    return counters

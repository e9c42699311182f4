"""ts-check CLI.

Type-checks files with the TypeScript server and prints the diagnostics
the way tsc does.

Usage:
    ts-check src/a.ts src/b.ts               # Check two files
    ts-check --files src/a.ts -b 2 -a 2      # Two lines of context around errors
    ts-check src/*.ts --gitlab-report gl.json  # Also write a Code Quality report
    ts-check src/a.ts --no-color --verbose

Exit status is 1 when any error-level diagnostic was found or checking
failed, 0 otherwise.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Iterable

import click

from .checker import check_files
from .config import ConfigurationError, ServerConfig
from .fragments import Frame
from .report import console_report, gitlab_report


def unique_files(files: Iterable[str]) -> list[str]:
    """De-duplicate file names, keeping first-seen order.

    Raises:
        click.UsageError: If a file name is empty
    """
    result: list[str] = []
    seen: set[str] = set()
    for file in files:
        if not isinstance(file, str) or not file.strip():
            raise click.UsageError(f"Invalid file name: {file!r}")
        if file not in seen:
            seen.add(file)
            result.append(file)
    return result


def _configure_logging(verbose: bool) -> None:
    """Log to stderr, stdout is reserved for the report."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("paths", nargs=-1, metavar="[FILES]...")
@click.option("--files", "listed_files", multiple=True, help="A file for type checking (repeatable)")
@click.option("--no-color", is_flag=True, help="Disable colors for output")
@click.option(
    "--code-lines-before",
    "-b",
    type=click.IntRange(min=0),
    default=0,
    help="Print <number> lines of code before error",
)
@click.option(
    "--code-lines-after",
    "-a",
    type=click.IntRange(min=0),
    default=0,
    help="Print <number> lines of code after error",
)
@click.option(
    "--gitlab-report",
    "gitlab_report_path",
    type=click.Path(dir_okay=False),
    help="Path to gitlab code quality report file",
)
@click.option("--verbose", "-v", is_flag=True, help="Run with verbose logging")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds to wait for tsserver to answer each file (default: no limit)",
)
@click.option(
    "--tsserver",
    "tsserver_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to tsserver.js (default: node_modules/typescript/lib/tsserver.js)",
)
def main(
    paths: tuple[str, ...],
    listed_files: tuple[str, ...],
    no_color: bool,
    code_lines_before: int,
    code_lines_after: int,
    gitlab_report_path: str | None,
    verbose: bool,
    timeout: float | None,
    tsserver_path: str | None,
) -> None:
    """Checking types for the passed list of files."""
    files = unique_files([*paths, *listed_files])
    _configure_logging(verbose)

    try:
        config = ServerConfig.from_environment(tsserver=tsserver_path, verbose=verbose)
    except ConfigurationError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    frame = Frame(before=code_lines_before, after=code_lines_after)

    try:
        records = asyncio.run(check_files(config, files, frame, timeout=timeout))
    except Exception as e:
        click.echo(f"{type(e).__name__}: {e}", err=True)
        sys.exit(1)

    console_report(records, color=False if no_color else None)

    if gitlab_report_path:
        gitlab_report(records, gitlab_report_path)

    sys.exit(1 if any(record.has_errors for record in records) else 0)


if __name__ == "__main__":
    main()

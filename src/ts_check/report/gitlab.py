"""GitLab Code Quality report.

Writes diagnostics as a Code Climate issue list, the format GitLab reads
from a `codequality` artifact. Paths are made relative to CI_PROJECT_DIR
(falling back to the working directory).

Fingerprinting follows eslint-formatter-gitlab: md5 over path, check name
and message, re-hashed until unique within the report.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from ..protocol.messages import AnyDiagnostic
from .types import ReportRecord

logger = logging.getLogger(__name__)

PROJECT_DIR_ENV = "CI_PROJECT_DIR"


class Position(BaseModel):
    line: int
    column: int


class Positions(BaseModel):
    begin: Position
    end: Position


class IssueLocation(BaseModel):
    path: str
    positions: Positions


class Issue(BaseModel):
    """A Code Climate issue."""

    type: Literal["issue"] = "issue"
    check_name: str
    description: str
    categories: list[str] = Field(default_factory=list)
    severity: Literal["info", "minor", "major", "critical", "blocker"]
    fingerprint: str
    location: IssueLocation


def check_name(diagnostic: AnyDiagnostic) -> str:
    return f"TS{diagnostic.code}" if diagnostic.code else ""


def issue_category(diagnostic: AnyDiagnostic) -> str:
    if diagnostic.category == "error":
        return "Bug Risk"
    return "Clarity"


def issue_severity(diagnostic: AnyDiagnostic) -> Literal["info", "minor", "major"]:
    if diagnostic.category == "error":
        return "major"
    if diagnostic.category == "warning":
        return "minor"
    return "info"


def fingerprint(file: str, diagnostic: AnyDiagnostic, hashes: set[str]) -> str:
    """Fingerprint a diagnostic, unique among `hashes` (which it extends).

    The same message reported twice in one file would hash the same, so on
    collision the previous hash is fed back in until the result is new.
    """
    md5 = hashlib.md5(usedforsecurity=False)
    md5.update(file.encode("utf-8"))
    if diagnostic.code:
        md5.update(check_name(diagnostic).encode("utf-8"))
    md5.update(diagnostic.message_text.encode("utf-8"))

    # digest() finalizes a copy only, md5 itself can still be updated
    digest = md5.copy().hexdigest()
    while digest in hashes:
        md5.update(digest.encode("utf-8"))
        digest = md5.copy().hexdigest()

    hashes.add(digest)
    return digest


def issue_location(file: str, diagnostic: AnyDiagnostic) -> IssueLocation:
    start = diagnostic.start_location
    end = diagnostic.end_location
    return IssueLocation(
        path=file,
        positions=Positions(
            begin=Position(line=start.line, column=start.offset),
            end=Position(line=end.line, column=end.offset),
        ),
    )


def convert(records: list[ReportRecord], project_dir: str | None = None) -> list[Issue]:
    """Convert report records into Code Climate issues."""
    base = project_dir or os.environ.get(PROJECT_DIR_ENV) or os.getcwd()
    hashes: set[str] = set()
    issues: list[Issue] = []

    for record in records:
        relative_path = os.path.relpath(record.file, base)

        for diagnostic in record.diagnostics:
            issues.append(
                Issue(
                    check_name=check_name(diagnostic),
                    description=diagnostic.message_text,
                    categories=[issue_category(diagnostic)],
                    severity=issue_severity(diagnostic),
                    fingerprint=fingerprint(relative_path, diagnostic, hashes),
                    location=issue_location(relative_path, diagnostic),
                )
            )

    return issues


def gitlab_report(records: list[ReportRecord], output_path: str | Path) -> None:
    """Write the Code Quality report, creating parent directories."""
    issues = convert(records)
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps([issue.model_dump() for issue in issues], indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    logger.info(f"Wrote {len(issues)} issue(s) to {path}")

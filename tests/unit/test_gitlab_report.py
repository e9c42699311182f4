"""Tests for the GitLab Code Quality report."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from ts_check.protocol.messages import parse_diagnostic
from ts_check.report import ReportRecord, gitlab_report
from ts_check.report.gitlab import convert, fingerprint, issue_severity


def make_diagnostic(category: str = "error", code: int | None = 2322, text: str = "Bad type") -> Any:
    return parse_diagnostic(
        {
            "start": {"line": 3, "offset": 19},
            "end": {"line": 3, "offset": 25},
            "text": text,
            "code": code,
            "category": category,
        }
    )


class TestConvert:
    def test_issue_fields(self, tmp_path: Path):
        record = ReportRecord(file=str(tmp_path / "src" / "a.ts"), diagnostics=[make_diagnostic()])

        [issue] = convert([record], project_dir=str(tmp_path))

        assert issue.type == "issue"
        assert issue.check_name == "TS2322"
        assert issue.description == "Bad type"
        assert issue.categories == ["Bug Risk"]
        assert issue.severity == "major"
        assert issue.location.path == str(Path("src", "a.ts"))
        assert issue.location.positions.begin.line == 3
        assert issue.location.positions.begin.column == 19
        assert issue.location.positions.end.column == 25

    def test_project_dir_from_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CI_PROJECT_DIR", str(tmp_path))
        record = ReportRecord(file=str(tmp_path / "b.ts"), diagnostics=[make_diagnostic()])

        [issue] = convert([record])

        assert issue.location.path == "b.ts"

    def test_warning_is_clarity(self, tmp_path: Path):
        record = ReportRecord(
            file=str(tmp_path / "a.ts"), diagnostics=[make_diagnostic(category="warning", code=6133)]
        )

        [issue] = convert([record], project_dir=str(tmp_path))

        assert issue.categories == ["Clarity"]
        assert issue.severity == "minor"

    def test_suggestion_is_info(self):
        assert issue_severity(make_diagnostic(category="suggestion")) == "info"

    def test_no_code_has_empty_check_name(self, tmp_path: Path):
        record = ReportRecord(file=str(tmp_path / "a.ts"), diagnostics=[make_diagnostic(code=None)])

        [issue] = convert([record], project_dir=str(tmp_path))

        assert issue.check_name == ""


class TestFingerprint:
    def test_identical_diagnostics_get_distinct_fingerprints(self, tmp_path: Path):
        """Repeated messages in one file must not collide."""
        record = ReportRecord(file=str(tmp_path / "a.ts"), diagnostics=[make_diagnostic()] * 3)

        issues = convert([record], project_dir=str(tmp_path))

        assert len({issue.fingerprint for issue in issues}) == 3

    def test_stable_across_reports(self):
        """A fingerprint depends only on path, code and message."""
        first = fingerprint("a.ts", make_diagnostic(), set())
        second = fingerprint("a.ts", make_diagnostic(), set())

        assert first == second
        assert len(first) == 32

    def test_extends_known_hashes(self):
        hashes: set[str] = set()

        digest = fingerprint("a.ts", make_diagnostic(), hashes)

        assert hashes == {digest}

    def test_differs_by_file(self):
        assert fingerprint("a.ts", make_diagnostic(), set()) != fingerprint("b.ts", make_diagnostic(), set())


class TestGitlabReport:
    def test_writes_json_creating_directories(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CI_PROJECT_DIR", str(tmp_path))
        output = tmp_path / "reports" / "nested" / "gl.json"
        record = ReportRecord(file=str(tmp_path / "a.ts"), diagnostics=[make_diagnostic()])

        gitlab_report([record], output)

        data = json.loads(output.read_text(encoding="utf-8"))
        assert len(data) == 1
        assert data[0]["location"]["path"] == "a.ts"
        assert data[0]["severity"] == "major"

    def test_empty_report(self, tmp_path: Path):
        output = tmp_path / "gl.json"

        gitlab_report([], output)

        assert json.loads(output.read_text(encoding="utf-8")) == []

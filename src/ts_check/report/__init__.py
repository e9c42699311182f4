"""Diagnostics reports: console output and GitLab Code Quality."""

from .console import console_report
from .gitlab import gitlab_report
from .types import ReportRecord

__all__ = [
    "ReportRecord",
    "console_report",
    "gitlab_report",
]

"""Remedy: verified auto-remediation for security findings."""

from remedy._version import __version__
from remedy.core.models import CodeLocation, IssueCategory, SecurityIssue, Severity
from remedy.fix.changes import ChangeManager
from remedy.fix.orchestrator import FixOrchestrator
from remedy.fix.validator import CodeValidator

__all__ = [
    "__version__",
    "ChangeManager",
    "CodeLocation",
    "CodeValidator",
    "FixOrchestrator",
    "IssueCategory",
    "SecurityIssue",
    "Severity",
]

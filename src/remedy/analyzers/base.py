"""Base class for all analyzers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from remedy.core.models import (
    CodeLocation,
    IssueCategory,
    Language,
    SecurityIssue,
    Severity,
)


class Analyzer(ABC):
    """Abstract base class for finding producers.

    ``family`` is the key the validator uses to re-run the same kind of
    analysis that originally reported an issue.
    """

    name: str = ""
    family: str = ""
    languages: tuple[Language, ...] = ()

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the underlying tool can run on this machine."""
        ...

    @abstractmethod
    def analyze(self, file_path: Path) -> list[SecurityIssue]:
        """Analyze a single file. Raises AnalyzerError on failure."""
        ...

    def version(self) -> str:
        return "unknown"

    def supports(self, file_path: Path) -> bool:
        return Language.from_path(file_path) in self.languages

    def _make_issue(
        self,
        issue_id: str,
        title: str,
        category: IssueCategory,
        file_path: Path,
        line: int,
        column: int = 0,
        snippet: str = "",
        severity: Severity = Severity.MEDIUM,
        description: str = "",
        fingerprint: str = "",
        metadata: dict | None = None,
    ) -> SecurityIssue:
        """Helper to create a SecurityIssue attributed to this analyzer."""
        return SecurityIssue(
            id=issue_id,
            title=title,
            category=category,
            location=CodeLocation(file=file_path, line=line, column=column, snippet=snippet),
            severity=severity,
            description=description or title,
            analyzer=self.name,
            fingerprint=fingerprint,
            metadata=metadata or {},
        )

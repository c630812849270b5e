"""Analyzer registry: runs every applicable analyzer over a path."""

from __future__ import annotations

import logging
from pathlib import Path

from remedy.analyzers.base import Analyzer
from remedy.analyzers.clippy import ClippyAnalyzer
from remedy.analyzers.pattern import PatternAnalyzer
from remedy.analyzers.semgrep import SemgrepAnalyzer
from remedy.core.config import RemedyConfig, ToolsConfig
from remedy.core.errors import AnalyzerError
from remedy.core.models import Language, SecurityIssue

logger = logging.getLogger(__name__)

# Re-analysis order when an issue does not name the analyzer that found it
LANGUAGE_DEFAULTS: dict[Language, tuple[str, ...]] = {
    Language.C_CPP: ("pattern", "semgrep"),
    Language.RUST: ("clippy", "pattern"),
    Language.JAVA: ("semgrep",),
}


class AnalyzerRegistry:
    """Holds the configured analyzers and picks one per issue."""

    def __init__(self, analyzers: list[Analyzer]):
        self.analyzers = list(analyzers)

    @classmethod
    def default(cls, tools: ToolsConfig | None = None) -> AnalyzerRegistry:
        return cls([PatternAnalyzer(), SemgrepAnalyzer(tools), ClippyAnalyzer(tools)])

    def get(self, family: str) -> Analyzer | None:
        key = family.lower()
        for analyzer in self.analyzers:
            if key in (analyzer.family.lower(), analyzer.name.lower()):
                return analyzer
        return None

    def for_issue(self, issue: SecurityIssue, language: Language | None = None) -> Analyzer | None:
        """Return an available analyzer able to re-check ``issue``.

        Prefers the analyzer that reported the issue, then falls back to
        the language defaults. Returns None when nothing can run.
        """
        if issue.analyzer:
            analyzer = self.get(issue.analyzer)
            if analyzer is not None and analyzer.is_available():
                return analyzer
            logger.debug("Analyzer %r unavailable for re-analysis", issue.analyzer)

        language = language or Language.from_path(issue.file)
        for family in LANGUAGE_DEFAULTS.get(language, ()):
            analyzer = self.get(family)
            if analyzer is not None and analyzer.is_available():
                return analyzer
        return None

    def scan(self, path: Path, config: RemedyConfig | None = None) -> list[SecurityIssue]:
        """Run every available analyzer over a file or directory."""
        config = config or RemedyConfig()
        files = self._collect_source_files(path, config.exclude)
        issues: list[SecurityIssue] = []
        seen: set[str] = set()

        for source_file in files:
            for analyzer in self.analyzers:
                if not analyzer.supports(source_file) or not analyzer.is_available():
                    continue
                try:
                    found = analyzer.analyze(source_file)
                except AnalyzerError as e:
                    logger.warning("%s failed on %s: %s", analyzer.name, source_file, e)
                    continue
                for issue in found:
                    if issue.fingerprint in seen:
                        continue
                    seen.add(issue.fingerprint)
                    issues.append(issue)

        issues.sort(key=lambda i: (-i.severity.level, str(i.file), i.line))
        logger.info("Scanned %d files, %d issues", len(files), len(issues))
        return issues

    def _collect_source_files(self, path: Path, exclude: list[str]) -> list[Path]:
        if path.is_file():
            return [path] if Language.from_path(path) != Language.UNKNOWN else []

        files: list[Path] = []
        for candidate in path.rglob("*"):
            if not candidate.is_file() or Language.from_path(candidate) == Language.UNKNOWN:
                continue
            rel = candidate.relative_to(path).as_posix()
            if any(excl.rstrip("/") in rel for excl in exclude):
                continue
            files.append(candidate)
        return sorted(files)

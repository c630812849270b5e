"""Built-in pattern analyzer for common memory-safety and injection bugs.

Needs no external tool, so it is always available and serves as the
fallback re-analysis when semgrep or clippy are missing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from remedy.analyzers.base import Analyzer
from remedy.core.errors import AnalyzerError
from remedy.core.models import IssueCategory, Language, SecurityIssue, Severity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecurityPattern:
    """A single regex rule."""

    rule_id: str
    regex: re.Pattern
    message: str
    severity: Severity
    category: IssueCategory
    languages: tuple[Language, ...] = (Language.C_CPP,)


C_PATTERNS = [
    SecurityPattern(
        "buffer-overflow-strcpy",
        re.compile(r"\bstrcpy\s*\("),
        "Unsafe use of strcpy() can lead to buffer overflow",
        Severity.HIGH,
        IssueCategory.BUFFER_OVERFLOW,
    ),
    SecurityPattern(
        "buffer-overflow-strcat",
        re.compile(r"\bstrcat\s*\("),
        "Unsafe use of strcat() can lead to buffer overflow",
        Severity.HIGH,
        IssueCategory.BUFFER_OVERFLOW,
    ),
    SecurityPattern(
        "buffer-overflow-sprintf",
        re.compile(r"\bsprintf\s*\("),
        "Unsafe use of sprintf() can lead to buffer overflow",
        Severity.HIGH,
        IssueCategory.BUFFER_OVERFLOW,
    ),
    SecurityPattern(
        "buffer-overflow-gets",
        re.compile(r"\bgets\s*\("),
        "gets() is inherently unsafe and should never be used",
        Severity.CRITICAL,
        IssueCategory.BUFFER_OVERFLOW,
    ),
    SecurityPattern(
        "buffer-overflow-scanf",
        re.compile(r"\bscanf\s*\(\s*\"[^\"]*%s"),
        "scanf() with unbounded %s can overflow the destination buffer",
        Severity.HIGH,
        IssueCategory.BUFFER_OVERFLOW,
    ),
    SecurityPattern(
        "format-string-printf",
        re.compile(r"\b(?:printf|syslog)\s*\(\s*[A-Za-z_][A-Za-z0-9_]*\s*\)"),
        "Non-literal format string passed to printf-family function",
        Severity.HIGH,
        IssueCategory.FORMAT_STRING,
    ),
    SecurityPattern(
        "command-injection-system",
        re.compile(r"\b(?:system|popen)\s*\(\s*[A-Za-z_]"),
        "Shell command built from a variable",
        Severity.CRITICAL,
        IssueCategory.COMMAND_INJECTION,
    ),
    SecurityPattern(
        "insecure-random-rand",
        re.compile(r"\brand\s*\(\s*\)"),
        "rand() is not suitable for security-sensitive randomness",
        Severity.LOW,
        IssueCategory.INSECURE_RANDOM,
    ),
    SecurityPattern(
        "unsafe-block",
        re.compile(r"\bunsafe\s*\{"),
        "unsafe block bypasses Rust's memory-safety guarantees",
        Severity.MEDIUM,
        IssueCategory.UNSAFE_CODE,
        (Language.RUST,),
    ),
]

COMMENT_PREFIXES = ("//", "/*", "*")


class PatternAnalyzer(Analyzer):
    """Regex-based scanner for C/C++ and Rust sources."""

    name = "pattern"
    family = "pattern"
    languages = (Language.C_CPP, Language.RUST)

    def __init__(self, patterns: list[SecurityPattern] | None = None):
        self.patterns = patterns if patterns is not None else list(C_PATTERNS)

    def is_available(self) -> bool:
        return True

    def version(self) -> str:
        return "builtin"

    def analyze(self, file_path: Path) -> list[SecurityIssue]:
        try:
            source = file_path.read_text(errors="ignore")
        except OSError as e:
            raise AnalyzerError(f"Failed to read file: {file_path}") from e

        language = Language.from_path(file_path)
        issues = []
        for lineno, text in enumerate(source.split("\n"), 1):
            stripped = text.strip()
            if stripped.startswith(COMMENT_PREFIXES):
                continue
            for pattern in self.patterns:
                if language not in pattern.languages:
                    continue
                match = pattern.regex.search(text)
                if not match:
                    continue
                issues.append(self._make_issue(
                    issue_id=f"{pattern.rule_id}-{file_path.name}-{lineno}",
                    title=pattern.message,
                    category=pattern.category,
                    file_path=file_path,
                    line=lineno,
                    column=match.start() + 1,
                    snippet=stripped,
                    severity=pattern.severity,
                    metadata={"rule_id": pattern.rule_id, "matched_code": match.group()},
                ))

        logger.debug("Pattern analyzer found %d issues in %s", len(issues), file_path)
        return issues

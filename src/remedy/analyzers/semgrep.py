"""Semgrep integration."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from remedy.analyzers.base import Analyzer
from remedy.core.config import ToolsConfig
from remedy.core.errors import AnalyzerError
from remedy.core.models import IssueCategory, Language, SecurityIssue, Severity
from remedy.core.process import run_command, tool_version

logger = logging.getLogger(__name__)

SEVERITY_MAP = {
    "ERROR": Severity.CRITICAL,
    "WARNING": Severity.HIGH,
    "INFO": Severity.MEDIUM,
}

# (needles, category) checked in order against "<check_id> <message>"
CATEGORY_RULES: list[tuple[tuple[str, ...], IssueCategory]] = [
    (("buffer-overflow", "buffer overflow", "strcpy", "strcat", "insecure-use-gets"), IssueCategory.BUFFER_OVERFLOW),
    (("use-after-free", "use after free"), IssueCategory.USE_AFTER_FREE),
    (("double-free", "double free"), IssueCategory.DOUBLE_FREE),
    (("memory-leak", "memory leak"), IssueCategory.MEMORY_LEAK),
    (("null-deref", "null pointer", "null-pointer"), IssueCategory.NULL_DEREFERENCE),
    (("sql-injection", "sql injection", "sqli"), IssueCategory.SQL_INJECTION),
    (("command-injection", "command injection"), IssueCategory.COMMAND_INJECTION),
    (("path-traversal", "path traversal"), IssueCategory.PATH_TRAVERSAL),
    (("format-string", "format string"), IssueCategory.FORMAT_STRING),
    (("weak-crypto", "weak hash", "md5", "sha1"), IssueCategory.WEAK_CRYPTO),
    (("hardcoded-secret", "hardcoded password", "hardcoded key", "hard-coded"), IssueCategory.HARDCODED_SECRET),
    (("insecure-random",), IssueCategory.INSECURE_RANDOM),
    (("race-condition", "race condition", "toctou"), IssueCategory.RACE_CONDITION),
    (("deadlock",), IssueCategory.DEADLOCK),
    (("integer-overflow", "integer overflow"), IssueCategory.INTEGER_OVERFLOW),
    (("resource-leak", "not closed"), IssueCategory.RESOURCE_LEAK),
]


def determine_category(check_id: str, message: str) -> IssueCategory:
    """Map a semgrep rule id and message to an issue category."""
    text = f"{check_id} {message}".lower()
    for needles, category in CATEGORY_RULES:
        if any(n in text for n in needles):
            return category
    return IssueCategory.UNKNOWN


class SemgrepAnalyzer(Analyzer):
    """Runs ``semgrep --json`` on a single file."""

    name = "semgrep"
    family = "semgrep"
    languages = (Language.C_CPP, Language.JAVA, Language.RUST)

    def __init__(self, tools: ToolsConfig | None = None):
        self.tools = tools or ToolsConfig()
        self._version: str | None = None
        self._checked = False

    def is_available(self) -> bool:
        if not self._checked:
            self._version = tool_version([self.tools.semgrep_path])
            self._checked = True
            if self._version is None:
                logger.debug("semgrep not available at %s", self.tools.semgrep_path)
        return self._version is not None

    def version(self) -> str:
        if not self.is_available():
            return "unavailable"
        return self._version or "unknown"

    def analyze(self, file_path: Path) -> list[SecurityIssue]:
        if not file_path.exists():
            raise AnalyzerError(f"File not found: {file_path}")
        if not self.is_available():
            raise AnalyzerError("semgrep is not available; install it with `pip install semgrep`")

        args = [
            self.tools.semgrep_path,
            "--json",
            "--quiet",
            "--disable-version-check",
            "--config",
            self.tools.semgrep_config,
            str(file_path),
        ]
        try:
            out = run_command(args, None, self.tools.timeout_seconds)
        except OSError as e:
            raise AnalyzerError(f"Failed to run semgrep: {e}") from e
        if out.timed_out:
            raise AnalyzerError(f"semgrep timed out after {self.tools.timeout_seconds}s")
        if out.stderr:
            logger.debug("semgrep stderr: %s", out.stderr.strip())

        return self.parse_output(out.stdout)

    def parse_output(self, text: str) -> list[SecurityIssue]:
        """Parse semgrep's JSON report into issues."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise AnalyzerError(f"Unparseable semgrep output: {e}") from e

        issues = []
        for result in data.get("results", []):
            try:
                issues.append(self._parse_result(result))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed semgrep result: %s", e)
        logger.info("semgrep reported %d issues", len(issues))
        return issues

    def _parse_result(self, result: dict) -> SecurityIssue:
        check_id = result["check_id"]
        extra = result.get("extra", {})
        message = extra.get("message", check_id)
        start = result["start"]
        line = int(start["line"])
        metadata = {"check_id": check_id}
        for key, value in (extra.get("metadata") or {}).items():
            metadata[f"semgrep_{key}"] = value

        return self._make_issue(
            issue_id=f"{check_id}:{line}",
            title=check_id,
            category=determine_category(check_id, message),
            file_path=Path(result["path"]),
            line=line,
            column=int(start.get("col", 0)),
            snippet=extra.get("lines", "").strip(),
            severity=SEVERITY_MAP.get(str(extra.get("severity", "")).upper(), Severity.LOW),
            description=message,
            fingerprint=_usable_fingerprint(extra.get("fingerprint")),
            metadata=metadata,
        )


def _usable_fingerprint(value) -> str:
    # semgrep OSS reports "requires login" instead of a real fingerprint
    if not isinstance(value, str) or " " in value:
        return ""
    return value

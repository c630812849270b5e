"""cargo clippy integration for Rust packages."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from remedy.analyzers.base import Analyzer
from remedy.core.config import ToolsConfig
from remedy.core.errors import AnalyzerError
from remedy.core.models import IssueCategory, Language, SecurityIssue, Severity
from remedy.core.process import find_ancestor_with, run_command, tool_version
from remedy.fix.toolchains import iter_cargo_messages

logger = logging.getLogger(__name__)

LINT_CATEGORIES: list[tuple[tuple[str, ...], IssueCategory]] = [
    (("unsafe", "transmute", "undocumented_unsafe"), IssueCategory.UNSAFE_CODE),
    (("overflow", "arithmetic", "cast_possible"), IssueCategory.INTEGER_OVERFLOW),
    (("null", "not_unsafe_ptr"), IssueCategory.NULL_DEREFERENCE),
    (("mem_forget", "leak"), IssueCategory.MEMORY_LEAK),
    (("uninit",), IssueCategory.UNDEFINED_BEHAVIOR),
    (("mutex", "await_holding_lock"), IssueCategory.RACE_CONDITION),
]


_WORKSPACE_TABLE = re.compile(r"^\s*\[workspace\]", re.MULTILINE)


def workspace_root(package_root: Path) -> Path:
    """Return the directory cargo reports span paths relative to.

    That is the nearest ancestor whose Cargo.toml declares ``[workspace]``,
    or the package itself for a standalone crate.
    """
    package_root = package_root.resolve()
    for directory in (package_root, *package_root.parents):
        manifest = directory / "Cargo.toml"
        if not manifest.is_file():
            continue
        try:
            text = manifest.read_text(encoding="utf-8", errors="ignore")
        except OSError:
            continue
        if _WORKSPACE_TABLE.search(text):
            return directory
    return package_root


def lint_category(code: str, message: str) -> IssueCategory:
    text = f"{code} {message}".lower()
    for needles, category in LINT_CATEGORIES:
        if any(n in text for n in needles):
            return category
    return IssueCategory.CODE_QUALITY


class ClippyAnalyzer(Analyzer):
    """Runs ``cargo clippy`` and keeps the diagnostics for one file."""

    name = "clippy"
    family = "clippy"
    languages = (Language.RUST,)

    def __init__(self, tools: ToolsConfig | None = None):
        self.tools = tools or ToolsConfig()
        self._version: str | None = None
        self._checked = False

    def is_available(self) -> bool:
        if not self._checked:
            self._version = tool_version([self.tools.cargo_path, "clippy"])
            self._checked = True
        return self._version is not None

    def version(self) -> str:
        return self._version or "unavailable"

    def analyze(self, file_path: Path) -> list[SecurityIssue]:
        if not self.is_available():
            raise AnalyzerError("cargo clippy is not available")
        root = find_ancestor_with(file_path, "Cargo.toml")
        if root is None:
            raise AnalyzerError(f"Cargo.toml not found for {file_path}")

        args = [self.tools.cargo_path, "clippy", "--message-format=json", "--", "-W", "clippy::all"]
        try:
            out = run_command(args, root, self.tools.timeout_seconds)
        except OSError as e:
            raise AnalyzerError(f"Failed to run cargo clippy: {e}") from e
        if out.timed_out:
            raise AnalyzerError(f"cargo clippy timed out after {self.tools.timeout_seconds}s")

        return self.parse_output(out.stdout, file_path, root)

    def parse_output(self, stdout: str, file_path: Path, root: Path) -> list[SecurityIssue]:
        """Convert clippy JSON messages for ``file_path`` into issues."""
        target = file_path.resolve()
        base = workspace_root(root)
        issues = []
        for msg in iter_cargo_messages(stdout):
            span_file = msg["span"].get("file_name", "")
            if not span_file or (base / span_file).resolve() != target:
                continue
            line = int(msg["span"].get("line_start", 0))
            code = msg["code"] or "rustc"
            issues.append(self._make_issue(
                issue_id=f"{code}:{line}",
                title=msg["message"],
                category=lint_category(code, msg["message"]),
                file_path=file_path,
                line=line,
                column=int(msg["span"].get("column_start", 0)),
                snippet=(msg["span"].get("text") or [{}])[0].get("text", "").strip(),
                severity=Severity.HIGH if msg["level"] == "error" else Severity.MEDIUM,
                metadata={"lint": code},
            ))
        logger.info("clippy reported %d issues in %s", len(issues), file_path.name)
        return issues

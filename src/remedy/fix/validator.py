"""Compile-and-reanalyze validation of candidate fixes."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable

from remedy.analyzers.registry import AnalyzerRegistry
from remedy.core.config import RemedyConfig
from remedy.core.errors import AnalyzerError, ToolchainError
from remedy.core.models import SecurityIssue
from remedy.fix.models import CompileResult, ValidationResult
from remedy.fix.toolchains import Toolchain, detect_toolchain

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".remedy.bak"

ToolchainFactory = Callable[..., "Toolchain | None"]


class CodeValidator:
    """Writes a candidate into place, compiles it, re-runs analysis and restores.

    The target file is modified in place for the duration of ``validate``.
    Callers must not validate the same file from two threads at once.
    """

    def __init__(
        self,
        project_path: Path | None = None,
        config: RemedyConfig | None = None,
        registry: AnalyzerRegistry | None = None,
        toolchain_factory: ToolchainFactory = detect_toolchain,
    ):
        self.project_path = project_path.resolve() if project_path else None
        self.config = config or RemedyConfig()
        self.registry = registry or AnalyzerRegistry.default(self.config.tools)
        self.toolchain_factory = toolchain_factory
        self._toolchains: dict[Path, Toolchain | None] = {}

    def validate(
        self,
        file_path: Path,
        candidate_content: str,
        original_issue: SecurityIssue | None = None,
    ) -> ValidationResult:
        """Validate ``candidate_content`` as the new content of ``file_path``.

        The file is restored byte-for-byte before this returns, whatever
        the outcome.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            return ValidationResult.fail(f"File not found: {file_path}")

        toolchain = self._toolchain_for(file_path)
        if toolchain is None:
            return ValidationResult.fail(f"Unsupported file type: {file_path.suffix or file_path.name}")

        try:
            resolved = toolchain.resolve(file_path)
        except ToolchainError as e:
            logger.warning("Cannot validate %s: %s", file_path.name, e)
            return ValidationResult.fail(str(e))

        backup = file_path.with_name(file_path.name + BACKUP_SUFFIX)
        shutil.copy2(file_path, backup)
        try:
            file_path.write_text(candidate_content, encoding="utf-8", newline="")

            try:
                compile_result = toolchain.check_syntax(file_path, resolved)
            except ToolchainError as e:
                return ValidationResult.fail(f"Toolchain not available: {e}")

            if not compile_result.success:
                return self._compile_failure(compile_result)

            if original_issue is None:
                return ValidationResult.ok("Compilation successful", compile_result)

            return self._reanalyze(file_path, original_issue, compile_result)
        finally:
            shutil.copy2(backup, file_path)
            backup.unlink()
            logger.debug("Restored %s from backup", file_path.name)

    def _toolchain_for(self, file_path: Path) -> Toolchain | None:
        key = file_path.resolve()
        if key not in self._toolchains:
            self._toolchains[key] = self.toolchain_factory(key, self.config.tools, self.project_path)
        return self._toolchains[key]

    def _compile_failure(self, result: CompileResult) -> ValidationResult:
        if result.timed_out:
            reason = f"Compilation timed out after {self.config.tools.timeout_seconds:g}s"
        else:
            reason = f"Compilation failed with {max(result.error_count, 1)} error(s)"
        logger.warning(reason)
        return ValidationResult.fail(reason, result.diagnostics(), result)

    def _reanalyze(
        self,
        file_path: Path,
        original: SecurityIssue,
        compile_result: CompileResult,
    ) -> ValidationResult:
        analyzer = self.registry.for_issue(original)
        if analyzer is None:
            logger.info("No analyzer available to re-verify %s", original.id)
            return ValidationResult.ok(
                "Compiled, but could not re-verify: no analyzer available", compile_result
            )

        try:
            fresh = analyzer.analyze(file_path)
        except AnalyzerError as e:
            logger.warning("Re-analysis with %s failed: %s", analyzer.name, e)
            return ValidationResult.ok(
                f"Compiled, but could not re-verify: {e}", compile_result
            )

        match = still_contains_issue(fresh, original, self.config.fix.line_tolerance)
        if match is not None:
            return ValidationResult.fail(
                "Original issue still detected",
                [f"{match.title} at line {match.line} ({analyzer.name})"],
                compile_result,
            )
        return ValidationResult.ok(
            f"Compiled and {analyzer.name} no longer reports the issue", compile_result
        )


def still_contains_issue(
    fresh: list[SecurityIssue],
    original: SecurityIssue,
    line_tolerance: int = 5,
) -> SecurityIssue | None:
    """Return the fresh finding that is the same issue as ``original``, if any.

    A finding matches on an identical fingerprint, or on the same category
    in the same file within ``line_tolerance`` lines.
    """
    for issue in fresh:
        if issue.fingerprint and issue.fingerprint == original.fingerprint:
            logger.debug("Fingerprint match for %s at line %d", original.id, issue.line)
            return issue
        if (
            issue.category == original.category
            and _same_file(issue.file, original.file)
            and abs(issue.line - original.line) <= line_tolerance
        ):
            logger.debug("Fuzzy match for %s at line %d", original.id, issue.line)
            return issue
    return None


def _same_file(a: Path, b: Path) -> bool:
    left, right = Path(a).as_posix(), Path(b).as_posix()
    if left == right:
        return True
    return left.endswith("/" + right) or right.endswith("/" + left)

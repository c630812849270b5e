"""Fix pipeline data models."""

from __future__ import annotations

import difflib
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from remedy.core.models import SecurityIssue
from remedy.fix.slicer import split_lines


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class FixPlan:
    """Ordered free-text steps describing the intended edit."""

    steps: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))

    def __len__(self) -> int:
        return len(self.steps)

    def __bool__(self) -> bool:
        return bool(self.steps)

    def format(self) -> str:
        if not self.steps:
            return "  (no plan)"
        return "\n".join(f"  {i}. {step}" for i, step in enumerate(self.steps, 1))


@dataclass(frozen=True)
class ReviewResult:
    """Verdict of the reviewer role for one attempt."""

    passed: bool
    reason: str
    issues: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "issues", tuple(self.issues))

    @classmethod
    def ok(cls, reason: str) -> ReviewResult:
        return cls(True, reason)

    @classmethod
    def fail(cls, reason: str, issues: list[str] | tuple[str, ...] = ()) -> ReviewResult:
        return cls(False, reason, tuple(issues))

    def __str__(self) -> str:
        if self.passed:
            return f"PASS: {self.reason}"
        lines = [f"FAIL: {self.reason}"]
        lines.extend(f"  - {issue}" for issue in self.issues)
        return "\n".join(lines)


@dataclass(frozen=True)
class CompileError:
    """A single diagnostic parsed from toolchain output."""

    file: str
    line: int
    column: int
    message: str
    severity: str = "error"

    def __str__(self) -> str:
        return f"[{self.severity}] {self.file}:{self.line}:{self.column} - {self.message}"


@dataclass(frozen=True)
class CompileResult:
    """Outcome of a compile-only toolchain run."""

    success: bool
    output: str
    exit_code: int
    errors: tuple[CompileError, ...] = ()
    duration_ms: int = 0
    timed_out: bool = False

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def diagnostics(self) -> list[str]:
        """Parsed diagnostics, or the raw output when nothing parsed."""
        if self.errors:
            return [str(e) for e in self.errors]
        text = self.output.strip()
        return [text] if text else [f"exit code {self.exit_code}"]


@dataclass(frozen=True)
class ValidationResult:
    """Verdict of the validator for one attempt."""

    passed: bool
    reason: str
    issues: tuple[str, ...] = ()
    compile_result: CompileResult | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "issues", tuple(self.issues))

    @classmethod
    def ok(cls, reason: str, compile_result: CompileResult | None = None) -> ValidationResult:
        return cls(True, reason, (), compile_result)

    @classmethod
    def fail(
        cls,
        reason: str,
        issues: list[str] | tuple[str, ...] = (),
        compile_result: CompileResult | None = None,
    ) -> ValidationResult:
        return cls(False, reason, tuple(issues), compile_result)

    def __str__(self) -> str:
        if self.passed:
            return f"PASS: {self.reason}"
        return f"FAIL: {self.reason} ({len(self.issues)} issues)"


@dataclass(frozen=True)
class PendingChange:
    """A verified fix held in memory until a human accepts or discards it.

    Only constructed once both the review and the validation passed.
    ``start_line``/``end_line`` are the inclusive 1-based range of the
    context window that ``new_code`` replaces.
    """

    issue: SecurityIssue
    file_path: Path
    start_line: int
    end_line: int
    old_code: str
    new_code: str
    plan: FixPlan
    review: ReviewResult
    validation: ValidationResult
    id: str = field(default_factory=lambda: new_id("fix"))
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if not (self.review.passed and self.validation.passed):
            raise ValueError("PendingChange requires a passed review and a passed validation")
        if self.start_line < 1 or self.end_line < self.start_line:
            raise ValueError(f"Invalid line range {self.start_line}-{self.end_line}")

    @property
    def lines_changed(self) -> int:
        return max(len(self.old_code.splitlines()), len(self.new_code.splitlines()))

    @property
    def summary(self) -> str:
        return f"{self.file_path.name}:{self.start_line}-{self.end_line}: {self.issue.title}"

    @property
    def diff(self) -> str:
        """Unified diff of the replaced window."""
        name = str(self.file_path)
        return "".join(
            difflib.unified_diff(
                split_lines(_with_newline(self.old_code)),
                split_lines(_with_newline(self.new_code)),
                fromfile=f"a/{name}",
                tofile=f"b/{name}",
                n=2,
            )
        )


@dataclass(frozen=True)
class AppliedChange:
    """A pending change after it was written to disk.

    ``original_content`` is the whole file before the edit, which is what
    rollback writes back.
    """

    file_path: Path
    original_content: str
    pending: PendingChange
    id: str = field(default_factory=lambda: new_id("change"))
    applied_at: datetime = field(default_factory=datetime.now)

    @property
    def summary(self) -> str:
        return f"[{self.id}] {self.pending.summary}"


def _with_newline(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"

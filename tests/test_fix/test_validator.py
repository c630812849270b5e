"""Tests for compile-and-reanalyze validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from remedy.analyzers.base import Analyzer
from remedy.analyzers.registry import AnalyzerRegistry
from remedy.core.config import RemedyConfig
from remedy.core.errors import AnalyzerError, ToolchainError
from remedy.core.models import IssueCategory, Language
from remedy.core.process import CommandOutput
from remedy.fix.models import CompileError, CompileResult
from remedy.fix.toolchains import ResolvedCommand, Toolchain
from remedy.fix.validator import BACKUP_SUFFIX, CodeValidator, still_contains_issue

FIXED_C = """\
#include <string.h>

void copy_name(char *dst, const char *src) {
    strncpy(dst, src, 15);
}
"""


class FakeToolchain(Toolchain):
    """Records what was on disk at compile time and returns a canned result."""

    language = Language.C_CPP

    def __init__(self, result: CompileResult | None = None, error: Exception | None = None):
        super().__init__()
        self.result = result or CompileResult(success=True, output="", exit_code=0)
        self.error = error
        self.seen: list[str] = []

    def resolve(self, file_path: Path) -> ResolvedCommand:
        return ResolvedCommand(args=["fake-cc", str(file_path)], cwd=file_path.parent)

    def parse_errors(self, output: CommandOutput) -> list[CompileError]:
        return []

    def check_syntax(self, file_path: Path, resolved: ResolvedCommand | None = None) -> CompileResult:
        self.seen.append(file_path.read_text())
        if self.error is not None:
            raise self.error
        return self.result


class FakeAnalyzer(Analyzer):
    name = "pattern"
    family = "pattern"
    languages = (Language.C_CPP,)

    def __init__(self, findings=None, error: Exception | None = None, available: bool = True):
        self.findings = findings or []
        self.error = error
        self.available = available
        self.calls = 0

    def is_available(self) -> bool:
        return self.available

    def analyze(self, file_path: Path):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.findings)


def _validator(toolchain: Toolchain, analyzer: Analyzer | None = None, config=None) -> CodeValidator:
    registry = AnalyzerRegistry([analyzer or FakeAnalyzer()])
    return CodeValidator(
        config=config,
        registry=registry,
        toolchain_factory=lambda path, tools, root: toolchain,
    )


class TestRestore:
    def test_candidate_is_on_disk_during_compile(self, c_file: Path):
        toolchain = FakeToolchain()
        _validator(toolchain).validate(c_file, FIXED_C)

        assert toolchain.seen == [FIXED_C]

    def test_restores_after_success(self, c_file: Path):
        original = c_file.read_bytes()

        result = _validator(FakeToolchain()).validate(c_file, FIXED_C)

        assert result.passed
        assert c_file.read_bytes() == original
        assert not (c_file.parent / (c_file.name + BACKUP_SUFFIX)).exists()

    def test_restores_after_compile_failure(self, c_file: Path):
        original = c_file.read_bytes()
        failing = FakeToolchain(CompileResult(
            success=False,
            output="foo.c:4:5: error: implicit declaration of function 'strlcpy'",
            exit_code=1,
            errors=(CompileError("foo.c", 4, 5, "implicit declaration of function 'strlcpy'"),),
        ))

        result = _validator(failing).validate(c_file, "garbage {{{")

        assert not result.passed
        assert "Compilation failed" in result.reason
        assert any("strlcpy" in issue for issue in result.issues)
        assert c_file.read_bytes() == original

    def test_restores_when_toolchain_raises(self, c_file: Path):
        """Even an unexpected exception leaves the original file in place."""
        original = c_file.read_bytes()

        with pytest.raises(RuntimeError):
            _validator(FakeToolchain(error=RuntimeError("boom"))).validate(c_file, FIXED_C)

        assert c_file.read_bytes() == original
        assert not (c_file.parent / (c_file.name + BACKUP_SUFFIX)).exists()

    def test_missing_executable_fails(self, c_file: Path):
        original = c_file.read_bytes()
        toolchain = FakeToolchain(error=ToolchainError("gcc is not available"))

        result = _validator(toolchain).validate(c_file, FIXED_C)

        assert not result.passed
        assert "not available" in result.reason
        assert c_file.read_bytes() == original

    def test_timeout_fails_with_reason(self, c_file: Path):
        original = c_file.read_bytes()
        toolchain = FakeToolchain(CompileResult(
            success=False, output="", exit_code=-1, timed_out=True,
        ))

        result = _validator(toolchain).validate(c_file, FIXED_C)

        assert not result.passed
        assert "timed out" in result.reason
        assert c_file.read_bytes() == original


class TestToolchainResolution:
    def test_missing_compile_command_fails_before_writing(self, c_file: Path, tmp_path: Path):
        """Without compile_commands.json nothing is written or compiled."""
        original = c_file.read_bytes()
        validator = CodeValidator(project_path=tmp_path, registry=AnalyzerRegistry([FakeAnalyzer()]))

        result = validator.validate(c_file, FIXED_C)

        assert not result.passed
        assert "No compile command found" in result.reason
        assert c_file.read_bytes() == original
        assert sorted(p.name for p in tmp_path.iterdir()) == ["foo.c"]

    def test_unsupported_extension(self, tmp_path: Path):
        path = tmp_path / "notes.txt"
        path.write_text("hello\n")

        result = CodeValidator(registry=AnalyzerRegistry([])).validate(path, "bye\n")

        assert not result.passed
        assert "Unsupported" in result.reason
        assert path.read_text() == "hello\n"

    def test_toolchain_is_detected_once_per_file(self, c_file: Path):
        calls = []
        toolchain = FakeToolchain()

        def factory(path, tools, root):
            calls.append(path)
            return toolchain

        validator = CodeValidator(registry=AnalyzerRegistry([FakeAnalyzer()]), toolchain_factory=factory)
        validator.validate(c_file, FIXED_C)
        validator.validate(c_file, FIXED_C)

        assert len(calls) == 1


class TestReanalysis:
    def test_no_issue_means_compile_only(self, c_file: Path):
        analyzer = FakeAnalyzer()

        result = _validator(FakeToolchain(), analyzer).validate(c_file, FIXED_C)

        assert result.passed
        assert result.reason == "Compilation successful"
        assert analyzer.calls == 0

    def test_issue_gone_passes(self, c_file: Path, make_issue):
        issue = make_issue(file=c_file, line=4)
        analyzer = FakeAnalyzer(findings=[])

        result = _validator(FakeToolchain(), analyzer).validate(c_file, FIXED_C, issue)

        assert result.passed
        assert analyzer.calls == 1
        assert result.compile_result is not None and result.compile_result.success

    def test_issue_still_present_fails(self, c_file: Path, make_issue):
        issue = make_issue(file=c_file, line=4)
        shifted = make_issue(file=c_file, line=6)
        analyzer = FakeAnalyzer(findings=[shifted])

        result = _validator(FakeToolchain(), analyzer).validate(c_file, FIXED_C, issue)

        assert not result.passed
        assert result.reason == "Original issue still detected"

    def test_analyzer_error_is_soft_pass(self, c_file: Path, make_issue):
        analyzer = FakeAnalyzer(error=AnalyzerError("semgrep crashed"))

        result = _validator(FakeToolchain(), analyzer).validate(c_file, FIXED_C, make_issue(file=c_file, line=4))

        assert result.passed
        assert "could not re-verify" in result.reason

    def test_unavailable_analyzer_is_soft_pass(self, c_file: Path, make_issue):
        analyzer = FakeAnalyzer(available=False)

        result = _validator(FakeToolchain(), analyzer).validate(c_file, FIXED_C, make_issue(file=c_file, line=4))

        assert result.passed
        assert "could not re-verify" in result.reason
        assert analyzer.calls == 0

    def test_reanalysis_skipped_when_compile_fails(self, c_file: Path, make_issue):
        analyzer = FakeAnalyzer()
        failing = FakeToolchain(CompileResult(success=False, output="error", exit_code=1))

        _validator(failing, analyzer).validate(c_file, FIXED_C, make_issue(file=c_file, line=4))

        assert analyzer.calls == 0

    def test_configured_tolerance_is_used(self, c_file: Path, make_issue):
        config = RemedyConfig()
        config.fix.line_tolerance = 1
        analyzer = FakeAnalyzer(findings=[make_issue(file=c_file, line=7)])

        result = _validator(FakeToolchain(), analyzer, config).validate(
            c_file, FIXED_C, make_issue(file=c_file, line=4)
        )

        assert result.passed


class TestStillContainsIssue:
    def test_within_five_lines_matches(self, make_issue):
        original = make_issue(file="src/foo.c", line=100)

        assert still_contains_issue([make_issue(file="src/foo.c", line=105)], original) is not None
        assert still_contains_issue([make_issue(file="src/foo.c", line=95)], original) is not None

    def test_six_lines_away_does_not_match(self, make_issue):
        original = make_issue(file="src/foo.c", line=100)

        assert still_contains_issue([make_issue(file="src/foo.c", line=106)], original) is None
        assert still_contains_issue([make_issue(file="src/foo.c", line=94)], original) is None

    def test_fingerprint_match_wins_regardless_of_location(self, make_issue):
        original = make_issue(file="src/foo.c", line=100, fingerprint="deadbeef")
        moved = make_issue(
            file="other.c",
            line=900,
            category=IssueCategory.FORMAT_STRING,
            fingerprint="deadbeef",
        )

        assert still_contains_issue([moved], original) is moved

    def test_different_category_does_not_match(self, make_issue):
        original = make_issue(file="src/foo.c", line=100)
        other = make_issue(file="src/foo.c", line=100, category=IssueCategory.FORMAT_STRING)

        assert still_contains_issue([other], original) is None

    def test_absolute_and_relative_paths_match(self, make_issue):
        original = make_issue(file="src/foo.c", line=100)
        fresh = make_issue(file="/home/dev/project/src/foo.c", line=101)

        assert still_contains_issue([fresh], original) is fresh

    def test_different_file_with_same_suffix_does_not_match(self, make_issue):
        original = make_issue(file="src/foo.c", line=100)

        assert still_contains_issue([make_issue(file="src/barfoo.c", line=100)], original) is None

    def test_custom_tolerance(self, make_issue):
        original = make_issue(line=100)

        assert still_contains_issue([make_issue(line=102)], original, line_tolerance=1) is None
        assert still_contains_issue([make_issue(line=102)], original, line_tolerance=2) is not None

    def test_empty_fresh_findings(self, make_issue):
        assert still_contains_issue([], make_issue()) is None

"""Tests for the shared data models."""

from __future__ import annotations

from pathlib import Path

import pytest

from remedy.core.models import (
    CodeLocation,
    IssueCategory,
    Language,
    SecurityIssue,
    Severity,
    compute_fingerprint,
)


class TestSeverity:
    def test_parse_is_case_insensitive(self):
        assert Severity.parse("HIGH") is Severity.HIGH
        assert Severity.parse("critical") is Severity.CRITICAL

    def test_parse_falls_back_to_info(self):
        assert Severity.parse("bogus") is Severity.INFO
        assert Severity.parse(None) is Severity.INFO

    def test_levels_are_ordered(self):
        assert Severity.CRITICAL.level > Severity.HIGH.level > Severity.MEDIUM.level
        assert Severity.LOW.level > Severity.INFO.level


class TestIssueCategory:
    def test_parse_accepts_value_name_and_display_name(self):
        assert IssueCategory.parse("buffer_overflow") is IssueCategory.BUFFER_OVERFLOW
        assert IssueCategory.parse("BUFFER_OVERFLOW") is IssueCategory.BUFFER_OVERFLOW
        assert IssueCategory.parse("buffer-overflow") is IssueCategory.BUFFER_OVERFLOW
        assert IssueCategory.parse("Null Pointer Dereference") is IssueCategory.NULL_DEREFERENCE

    def test_parse_unknown(self):
        assert IssueCategory.parse("something else") is IssueCategory.UNKNOWN
        assert IssueCategory.parse("") is IssueCategory.UNKNOWN

    def test_display_name_default_is_title_case(self):
        assert IssueCategory.MEMORY_LEAK.display_name == "Memory Leak"


class TestLanguage:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("a.c", Language.C_CPP),
            ("a.cpp", Language.C_CPP),
            ("a.hpp", Language.C_CPP),
            ("A.java", Language.JAVA),
            ("lib.rs", Language.RUST),
            ("script.py", Language.UNKNOWN),
        ],
    )
    def test_from_path(self, name: str, expected: Language):
        assert Language.from_path(Path(name)) is expected


class TestSecurityIssue:
    def test_fingerprint_is_derived_when_missing(self, make_issue):
        """Issues without an analyzer fingerprint get one from category and location."""
        issue = make_issue()
        expected = compute_fingerprint(issue.category, issue.location)

        assert issue.fingerprint == expected
        assert len(issue.fingerprint) == 16

    def test_fingerprint_is_stable(self, make_issue):
        assert make_issue().fingerprint == make_issue().fingerprint

    def test_fingerprint_depends_on_line(self, make_issue):
        assert make_issue(line=10).fingerprint != make_issue(line=11).fingerprint

    def test_explicit_fingerprint_is_kept(self, make_issue):
        assert make_issue(fingerprint="abc123").fingerprint == "abc123"

    def test_title_is_required(self):
        with pytest.raises(ValueError):
            SecurityIssue(
                id="x",
                title="",
                category=IssueCategory.UNKNOWN,
                location=CodeLocation(Path("a.c"), 1),
            )

    def test_summary_mentions_location_and_category(self, make_issue):
        summary = make_issue(file="src/foo.c", line=42).summary

        assert "Buffer Overflow" in summary
        assert "foo.c:42" in summary
        assert "HIGH" in summary

    def test_is_immutable(self, make_issue):
        issue = make_issue()
        with pytest.raises(AttributeError):
            issue.title = "changed"  # type: ignore[misc]

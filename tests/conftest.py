"""Shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from remedy.core.models import CodeLocation, IssueCategory, SecurityIssue, Severity

VULNERABLE_C = """\
#include <string.h>

void copy_name(char *dst, const char *src) {
    strcpy(dst, src);
}

int main(void) {
    char buf[16];
    copy_name(buf, "hello");
    return 0;
}
"""


@pytest.fixture
def make_issue():
    """Factory for SecurityIssue with sensible defaults."""

    def _make(
        file: Path | str = "foo.c",
        line: int = 42,
        category: IssueCategory = IssueCategory.BUFFER_OVERFLOW,
        title: str = "Unsafe use of strcpy()",
        analyzer: str = "pattern",
        fingerprint: str = "",
        column: int = 0,
        severity: Severity = Severity.HIGH,
    ) -> SecurityIssue:
        return SecurityIssue(
            id=f"{category.value}-{line}",
            title=title,
            category=category,
            location=CodeLocation(file=Path(file), line=line, column=column),
            severity=severity,
            analyzer=analyzer,
            fingerprint=fingerprint,
        )

    return _make


@pytest.fixture
def c_file(tmp_path: Path) -> Path:
    """A small C file with an unbounded strcpy on line 4."""
    path = tmp_path / "foo.c"
    path.write_text(VULNERABLE_C)
    return path

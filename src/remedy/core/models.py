"""Shared data models used across Remedy modules."""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class Severity(enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def level(self) -> int:
        return {
            Severity.CRITICAL: 4,
            Severity.HIGH: 3,
            Severity.MEDIUM: 2,
            Severity.LOW: 1,
            Severity.INFO: 0,
        }[self]

    @classmethod
    def parse(cls, value: str | None) -> Severity:
        """Parse a severity name case-insensitively, defaulting to INFO."""
        if not value:
            return cls.INFO
        text = value.strip().lower()
        for member in cls:
            if member.value == text or member.name.lower() == text:
                return member
        return cls.INFO


class IssueCategory(enum.Enum):
    # Memory safety
    BUFFER_OVERFLOW = "buffer_overflow"
    USE_AFTER_FREE = "use_after_free"
    MEMORY_LEAK = "memory_leak"
    NULL_DEREFERENCE = "null_dereference"
    DOUBLE_FREE = "double_free"
    # Concurrency
    RACE_CONDITION = "race_condition"
    DEADLOCK = "deadlock"
    # Injection
    SQL_INJECTION = "sql_injection"
    COMMAND_INJECTION = "command_injection"
    PATH_TRAVERSAL = "path_traversal"
    FORMAT_STRING = "format_string"
    # Crypto
    WEAK_CRYPTO = "weak_crypto"
    HARDCODED_SECRET = "hardcoded_secret"
    INSECURE_RANDOM = "insecure_random"
    # Resources and quality
    RESOURCE_LEAK = "resource_leak"
    INTEGER_OVERFLOW = "integer_overflow"
    UNSAFE_CODE = "unsafe_code"
    CODE_QUALITY = "code_quality"
    UNDEFINED_BEHAVIOR = "undefined_behavior"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return _CATEGORY_NAMES.get(self, self.value.replace("_", " ").title())

    @classmethod
    def parse(cls, value: str | None) -> IssueCategory:
        """Parse a category from its value, name or display name."""
        if not value:
            return cls.UNKNOWN
        text = value.strip().lower().replace("-", "_")
        for member in cls:
            if text in (member.value, member.name.lower()):
                return member
            if member.display_name.lower() == value.strip().lower():
                return member
        return cls.UNKNOWN


_CATEGORY_NAMES = {
    IssueCategory.BUFFER_OVERFLOW: "Buffer Overflow",
    IssueCategory.USE_AFTER_FREE: "Use After Free",
    IssueCategory.NULL_DEREFERENCE: "Null Pointer Dereference",
    IssueCategory.SQL_INJECTION: "SQL Injection",
    IssueCategory.FORMAT_STRING: "Format String Vulnerability",
    IssueCategory.WEAK_CRYPTO: "Weak Cryptography",
    IssueCategory.UNSAFE_CODE: "Unsafe Code Usage",
    IssueCategory.UNKNOWN: "Unknown Issue",
}


class Language(enum.Enum):
    C_CPP = "c_cpp"
    JAVA = "java"
    RUST = "rust"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return {"c_cpp": "C/C++", "java": "Java", "rust": "Rust"}.get(self.value, "Unknown")

    @classmethod
    def from_path(cls, path: Path) -> Language:
        suffix = path.suffix.lower()
        if suffix in (".c", ".cc", ".cpp", ".cxx", ".h", ".hh", ".hpp"):
            return cls.C_CPP
        if suffix == ".java":
            return cls.JAVA
        if suffix == ".rs":
            return cls.RUST
        return cls.UNKNOWN


@dataclass(frozen=True)
class CodeLocation:
    """A position in a source file."""

    file: Path
    line: int
    column: int = 0
    snippet: str = ""

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class SecurityIssue:
    """A single finding reported by an analyzer.

    Issues are produced by analyzers and consumed read-only by the fix
    pipeline. ``fingerprint`` identifies the finding across analysis runs;
    analyzers may supply their own, otherwise one is derived from the
    category and location.
    """

    id: str
    title: str
    category: IssueCategory
    location: CodeLocation
    severity: Severity = Severity.MEDIUM
    description: str = ""
    analyzer: str = ""
    fingerprint: str = ""
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not self.title:
            raise ValueError("SecurityIssue must have a title")
        if not self.fingerprint:
            object.__setattr__(self, "fingerprint", compute_fingerprint(self.category, self.location))

    @property
    def file(self) -> Path:
        return self.location.file

    @property
    def line(self) -> int:
        return self.location.line

    @property
    def summary(self) -> str:
        """One-paragraph description handed to the fix collaborators."""
        parts = [
            f"Title: {self.title}",
            f"Category: {self.category.display_name}",
            f"Severity: {self.severity.name}",
            f"Location: {self.location}",
        ]
        if self.description:
            parts.append(f"Description: {self.description}")
        return "\n".join(parts)

    def __str__(self) -> str:
        return f"[{self.severity.name}] {self.title} at {self.location}"


def compute_fingerprint(category: IssueCategory, location: CodeLocation) -> str:
    """Derive a stable fingerprint from a finding's category and location."""
    raw = f"{category.value}:{location.file}:{location.line}:{location.column}"
    return hashlib.sha256(raw.encode()).hexdigest()[:16]

"""Code context extraction around an issue line."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# C-like function signature: return type, name, parameter list, optional brace
FUNCTION_PATTERN = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_*\s:<>,&]*\s+[*&]*[A-Za-z_][A-Za-z0-9_:]*\s*\([^;]*\)\s*(const\s*)?\{?$"
)
CONTROL_KEYWORDS = ("if", "for", "while", "switch", "else", "do", "return")

MAX_FUNCTION_SEARCH_LINES = 50


@dataclass(frozen=True)
class CodeSlice:
    """A contiguous, inclusive 1-based line window of a source file."""

    file: Path
    start_line: int
    end_line: int
    code: str

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1


class CodeSlicer:
    """Extracts the enclosing function (or a fixed window) around a line."""

    def __init__(self, context_before: int = 10, context_after: int = 20):
        self.context_before = context_before
        self.context_after = context_after

    def slice(self, file_path: Path, line: int) -> CodeSlice:
        """Return the code window that contains ``line``."""
        lines = [_strip_eol(text) for text in split_lines(read_source(file_path))]
        if not lines:
            raise ValueError(f"File is empty: {file_path}")
        if line < 1 or line > len(lines):
            raise ValueError(f"Invalid line number {line} ({file_path} has {len(lines)} lines)")

        index = line - 1
        start = self._find_function_start(lines, index)
        end = self._find_function_end(lines, start, index)
        if end < index:
            # Brace matching closed before the issue line; the issue is not
            # inside that function.
            start = max(0, index - self.context_before)
            end = min(len(lines) - 1, index + self.context_after)

        logger.debug("Sliced %s lines %d-%d for issue at line %d", file_path, start + 1, end + 1, line)
        return CodeSlice(
            file=file_path,
            start_line=start + 1,
            end_line=end + 1,
            code="\n".join(lines[start:end + 1]),
        )

    def _find_function_start(self, lines: list[str], index: int) -> int:
        lower = max(0, index - MAX_FUNCTION_SEARCH_LINES)
        for i in range(index, lower - 1, -1):
            text = lines[i].strip()
            if not text or text.startswith(("//", "/*", "*")):
                continue
            if text.split("(")[0].strip() in CONTROL_KEYWORDS:
                continue
            if FUNCTION_PATTERN.match(text) and not text.startswith(CONTROL_KEYWORDS):
                return i
            if text == "{" and i > 0 and FUNCTION_PATTERN.match(lines[i - 1].strip()):
                return i - 1
        fallback = max(0, index - self.context_before)
        logger.debug("No function start found, falling back to line %d", fallback + 1)
        return fallback

    def _find_function_end(self, lines: list[str], start: int, index: int) -> int:
        depth = 0
        seen_open = False
        for i in range(start, len(lines)):
            for ch in lines[i]:
                if ch == "{":
                    depth += 1
                    seen_open = True
                elif ch == "}":
                    depth -= 1
            if seen_open and depth <= 0:
                return i
        fallback = min(len(lines) - 1, index + self.context_after)
        logger.debug("No function end found, falling back to line %d", fallback + 1)
        return fallback


def read_source(file_path: Path) -> str:
    """Read a source file without translating its line endings."""
    with open(file_path, encoding="utf-8", errors="ignore", newline="") as f:
        return f.read()


def split_lines(content: str) -> list[str]:
    """Split on ``\\n`` only, keeping each line's own terminator.

    Compilers and analyzers count lines the same way, so form feeds and
    other characters ``str.splitlines`` treats as breaks stay in their line.
    """
    parts = content.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def _strip_eol(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


def _line_ending(line: str) -> str:
    return "\r\n" if line.endswith("\r\n") else "\n"


def splice_lines(content: str, start_line: int, end_line: int, new_code: str) -> str:
    """Replace the inclusive 1-based line range of ``content`` with ``new_code``.

    Lines outside the range are kept byte for byte. The replacement uses the
    line ending of the first replaced line, and a missing final newline stays
    missing.
    """
    lines = split_lines(content)
    if start_line < 1 or start_line > len(lines) + 1:
        raise ValueError(f"Start line {start_line} outside file of {len(lines)} lines")

    head = lines[:start_line - 1]
    replaced = lines[start_line - 1:end_line]
    tail = lines[end_line:]
    eol = _line_ending(replaced[0] if replaced else (lines[-1] if lines else "\n"))

    parts = new_code.split("\n")
    if not new_code or new_code.endswith("\n"):
        parts.pop()
    replacement = [_strip_eol(part) + eol for part in parts]

    if replacement and not tail and replaced and not replaced[-1].endswith("\n"):
        replacement[-1] = _strip_eol(replacement[-1])
    if replacement and head and not head[-1].endswith("\n"):
        head[-1] += eol
    return "".join(head + replacement + tail)


def extract_lines(content: str, start_line: int, end_line: int) -> str:
    """Return the inclusive 1-based line range of ``content``, joined with ``\\n``."""
    return "\n".join(_strip_eol(line) for line in split_lines(content)[start_line - 1:end_line])

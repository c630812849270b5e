"""Compile-only toolchain checks, one implementation per language."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from remedy.core.config import ToolsConfig
from remedy.core.errors import ToolchainError
from remedy.core.models import Language
from remedy.core.process import CommandOutput, find_ancestor_with, run_command
from remedy.fix.compile_db import CompileCommandsDatabase
from remedy.fix.models import CompileError, CompileResult

logger = logging.getLogger(__name__)


@dataclass
class ResolvedCommand:
    """A fully resolved toolchain invocation."""

    args: list[str]
    cwd: Path


class Toolchain(ABC):
    """Compile-only syntax/type check for one language."""

    language: Language = Language.UNKNOWN

    def __init__(self, tools: ToolsConfig | None = None):
        self.tools = tools or ToolsConfig()

    @abstractmethod
    def resolve(self, file_path: Path) -> ResolvedCommand:
        """Build the check command for ``file_path``.

        Raises ToolchainError when flags or a project manifest are missing.
        No process is started here.
        """
        ...

    @abstractmethod
    def parse_errors(self, output: CommandOutput) -> list[CompileError]:
        ...

    def check_syntax(self, file_path: Path, resolved: ResolvedCommand | None = None) -> CompileResult:
        """Run the compile-only check and return the parsed result."""
        resolved = resolved or self.resolve(file_path)
        try:
            out = run_command(resolved.args, resolved.cwd, self.tools.timeout_seconds)
        except OSError as e:
            raise ToolchainError(f"{resolved.args[0]} is not available: {e}") from e

        errors = [] if out.timed_out else self.parse_errors(out)
        success = out.exit_code == 0 and not out.timed_out
        logger.info(
            "%s check of %s: %s",
            self.language.display_name,
            file_path.name,
            "SUCCESS" if success else "TIMEOUT" if out.timed_out else "FAILED",
        )
        return CompileResult(
            success=success,
            output=out.combined,
            exit_code=out.exit_code,
            errors=tuple(errors),
            duration_ms=out.duration_ms,
            timed_out=out.timed_out,
        )


GCC_DIAGNOSTIC = re.compile(
    r"^(?P<file>[^:\n]+):(?P<line>\d+):(?P<col>\d+):\s*(?P<sev>fatal error|error):\s*(?P<msg>.*)$",
    re.MULTILINE,
)


class CppToolchain(Toolchain):
    """gcc/clang ``-fsyntax-only`` using flags from compile_commands.json."""

    language = Language.C_CPP

    def __init__(self, tools: ToolsConfig | None = None, project_root: Path | None = None):
        super().__init__(tools)
        self.project_root = project_root.resolve() if project_root else None
        self._databases: dict[Path, CompileCommandsDatabase | None] = {}

    def resolve(self, file_path: Path) -> ResolvedCommand:
        database = self._database_for(file_path)
        command = database.command_for(file_path) if database else None
        if command is None:
            raise ToolchainError("No compile command found in compile_commands.json")
        args = [command.compiler, *command.flags, str(file_path.resolve()), "-fsyntax-only"]
        return ResolvedCommand(args=args, cwd=command.directory)

    def parse_errors(self, output: CommandOutput) -> list[CompileError]:
        return [
            CompileError(
                file=m.group("file"),
                line=int(m.group("line")),
                column=int(m.group("col")),
                message=m.group("msg").strip(),
            )
            for m in GCC_DIAGNOSTIC.finditer(output.combined)
        ]

    def _database_for(self, file_path: Path) -> CompileCommandsDatabase | None:
        parent = file_path.resolve().parent
        if parent not in self._databases:
            self._databases[parent] = CompileCommandsDatabase.find(file_path.resolve(), self.project_root)
        return self._databases[parent]


MAVEN_ERROR = re.compile(r"\[ERROR\]\s+(?P<file>\S+?\.java):\[(?P<line>\d+),(?P<col>\d+)\]\s*(?P<msg>.*)")


class JavaToolchain(Toolchain):
    """``mvn compile`` in the nearest Maven project."""

    language = Language.JAVA

    def resolve(self, file_path: Path) -> ResolvedCommand:
        root = find_ancestor_with(file_path, "pom.xml")
        if root is None:
            raise ToolchainError(f"pom.xml not found for {file_path}")
        return ResolvedCommand(args=[self.tools.mvn_path, "-q", "compile"], cwd=root)

    def parse_errors(self, output: CommandOutput) -> list[CompileError]:
        return [
            CompileError(
                file=m.group("file"),
                line=int(m.group("line")),
                column=int(m.group("col")),
                message=m.group("msg").strip(),
            )
            for m in MAVEN_ERROR.finditer(output.combined)
        ]


class RustToolchain(Toolchain):
    """``cargo check`` in the nearest Cargo package."""

    language = Language.RUST

    def resolve(self, file_path: Path) -> ResolvedCommand:
        root = find_ancestor_with(file_path, "Cargo.toml")
        if root is None:
            raise ToolchainError(f"Cargo.toml not found for {file_path}")
        return ResolvedCommand(
            args=[self.tools.cargo_path, "check", "--message-format=json"],
            cwd=root,
        )

    def parse_errors(self, output: CommandOutput) -> list[CompileError]:
        return [
            CompileError(
                file=m["span"].get("file_name", ""),
                line=int(m["span"].get("line_start", 0)),
                column=int(m["span"].get("column_start", 0)),
                message=m["message"],
                severity=m["level"],
            )
            for m in iter_cargo_messages(output.stdout)
            if m["level"] == "error"
        ]


def iter_cargo_messages(stdout: str):
    """Yield compiler messages from cargo's JSON-lines output.

    Each item has ``level``, ``message``, ``code`` and the primary ``span``.
    """
    for line in stdout.splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON cargo line: %s", line[:80])
            continue
        if record.get("reason") != "compiler-message":
            continue
        message = record.get("message") or {}
        spans = message.get("spans") or [{}]
        span = next((s for s in spans if s.get("is_primary")), spans[0])
        code = message.get("code") or {}
        yield {
            "level": message.get("level", "error"),
            "message": message.get("message", ""),
            "code": code.get("code", "") if isinstance(code, dict) else "",
            "span": span,
        }


def detect_toolchain(
    file_path: Path,
    tools: ToolsConfig | None = None,
    project_root: Path | None = None,
) -> Toolchain | None:
    """Pick the toolchain for a file from its extension."""
    language = Language.from_path(file_path)
    if language == Language.C_CPP:
        return CppToolchain(tools, project_root)
    if language == Language.JAVA:
        return JavaToolchain(tools)
    if language == Language.RUST:
        return RustToolchain(tools)
    return None

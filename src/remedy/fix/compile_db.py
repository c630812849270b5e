"""Reader for compile_commands.json compilation databases."""

from __future__ import annotations

import json
import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

COMPILE_DB_FILENAME = "compile_commands.json"


@dataclass
class CompileCommand:
    """One entry of a compilation database."""

    directory: Path
    file: Path
    arguments: list[str] = field(default_factory=list)

    @property
    def compiler(self) -> str:
        return self.arguments[0] if self.arguments else "cc"

    @property
    def flags(self) -> list[str]:
        """Compiler arguments minus the output and the source file itself."""
        flags: list[str] = []
        skip_next = False
        for arg in self.arguments[1:]:
            if skip_next:
                skip_next = False
                continue
            if arg == "-o":
                skip_next = True
                continue
            if arg.startswith("-o") and len(arg) > 2:
                continue
            if arg == "-c":
                continue
            if self._is_source(arg):
                continue
            flags.append(arg)
        return flags

    def _is_source(self, arg: str) -> bool:
        if arg.startswith("-"):
            return False
        candidate = Path(arg)
        if not candidate.is_absolute():
            candidate = self.directory / candidate
        return candidate.resolve() == self.file or Path(arg).name == self.file.name


class CompileCommandsDatabase:
    """Per-file lookup over a compile_commands.json file."""

    def __init__(self, path: Path):
        self.path = path
        self.commands: list[CompileCommand] = []
        self._loaded = False

    @classmethod
    def find(cls, start: Path, root: Path | None = None) -> CompileCommandsDatabase | None:
        """Locate the nearest compile_commands.json above ``start``."""
        candidates = [start] + list(start.parents) if start.is_dir() else list(start.parents)
        for directory in candidates:
            db_file = directory / COMPILE_DB_FILENAME
            if db_file.exists():
                return cls(db_file)
            build_db = directory / "build" / COMPILE_DB_FILENAME
            if build_db.exists():
                return cls(build_db)
            if root is not None and directory == root:
                break
        return None

    def load(self) -> bool:
        """Parse the database. Returns False when it is missing or malformed."""
        if self._loaded:
            return True
        if not self.path.exists():
            logger.warning("%s not found at %s", COMPILE_DB_FILENAME, self.path)
            return False
        try:
            entries = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to read %s: %s", self.path, e)
            return False

        commands = []
        for entry in entries:
            try:
                commands.append(self._parse_entry(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed compile command %r: %s", entry, e)
        self.commands = commands
        self._loaded = True
        logger.info("Loaded %d compile commands from %s", len(commands), self.path)
        return True

    def command_for(self, file_path: Path) -> CompileCommand | None:
        """Return the entry for ``file_path``, matched by absolute path then by name."""
        if not self.load():
            return None
        target = file_path.resolve()
        for cmd in self.commands:
            if cmd.file == target:
                return cmd
        for cmd in self.commands:
            if cmd.file.name == target.name:
                return cmd
        return None

    def _parse_entry(self, entry: dict) -> CompileCommand:
        directory = Path(entry["directory"])
        file = Path(entry["file"])
        if not file.is_absolute():
            file = directory / file
        if "arguments" in entry and entry["arguments"]:
            arguments = list(entry["arguments"])
        else:
            arguments = shlex.split(entry["command"])
        return CompileCommand(directory=directory, file=file.resolve(), arguments=arguments)

"""External process execution with a hard timeout."""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class CommandOutput:
    """Captured result of an external process."""

    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int
    timed_out: bool = False

    @property
    def combined(self) -> str:
        if self.stdout and self.stderr:
            return f"{self.stdout.rstrip()}\n{self.stderr}"
        return self.stdout or self.stderr


def run_command(args: list[str], cwd: Path | None, timeout: float) -> CommandOutput:
    """Run a process and capture its output.

    The process is killed when ``timeout`` expires and the result is marked
    ``timed_out``. A missing executable raises ``FileNotFoundError``.
    """
    logger.debug("Running %s in %s (timeout %ss)", " ".join(args), cwd, timeout)
    start = time.monotonic()
    try:
        proc = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        logger.warning("%s timed out after %ss", args[0], timeout)
        return CommandOutput(
            exit_code=-1,
            stdout=_decode(e.stdout),
            stderr=_decode(e.stderr) or f"Timed out after {timeout} seconds",
            duration_ms=int((time.monotonic() - start) * 1000),
            timed_out=True,
        )

    return CommandOutput(
        exit_code=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
        duration_ms=int((time.monotonic() - start) * 1000),
    )


def tool_version(executable: list[str], timeout: float = 15.0) -> str | None:
    """Return the first line of ``<tool> --version``, or None if it cannot run."""
    try:
        out = run_command([*executable, "--version"], None, timeout)
    except OSError:
        return None
    if out.exit_code != 0:
        return None
    lines = out.stdout.strip().splitlines()
    return lines[0] if lines else ""


def find_ancestor_with(file_path: Path, marker: str) -> Path | None:
    """Walk up from ``file_path`` to the nearest directory containing ``marker``."""
    for directory in file_path.resolve().parents:
        if (directory / marker).exists():
            return directory
    return None


def _decode(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode(errors="replace")
    return data

"""Staged change lifecycle: stage, accept, discard and rollback."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from collections import deque
from pathlib import Path

from remedy.core.errors import ChangeError, StaleChangeError
from remedy.fix.models import AppliedChange, PendingChange
from remedy.fix.slicer import extract_lines, splice_lines

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 10


class ChangeManager:
    """Holds at most one pending change and a bounded undo history.

    History is most-recent-first. Every mutating call runs under one lock,
    so a manager can be shared between threads.
    """

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE):
        if history_size < 1:
            raise ValueError("history_size must be at least 1")
        self.history_size = history_size
        self._pending: PendingChange | None = None
        self._history: deque[AppliedChange] = deque()
        self._lock = threading.RLock()

    @property
    def pending(self) -> PendingChange | None:
        return self._pending

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    @property
    def can_rollback(self) -> bool:
        return bool(self._history)

    def history(self) -> list[AppliedChange]:
        """Applied changes, most recent first."""
        with self._lock:
            return list(self._history)

    def stage(self, change: PendingChange) -> None:
        """Make ``change`` the pending change, replacing any previous one."""
        with self._lock:
            if self._pending is not None:
                logger.warning(
                    "Replacing pending change %s with %s", self._pending.id, change.id
                )
            self._pending = change
            logger.info("Staged %s", change.summary)

    def accept(self) -> AppliedChange:
        """Write the pending change to disk and record it in history.

        On any failure the file, the pending slot and the history are left
        as they were.
        """
        with self._lock:
            change = self._pending
            if change is None:
                raise ChangeError("No pending change to accept")

            original = _read(change.file_path)
            current = extract_lines(original, change.start_line, change.end_line)
            if current.rstrip("\n") != change.old_code.rstrip("\n"):
                raise StaleChangeError(
                    f"{change.file_path} changed since the fix was generated; "
                    f"lines {change.start_line}-{change.end_line} no longer match"
                )

            updated = splice_lines(original, change.start_line, change.end_line, change.new_code)
            _atomic_write(change.file_path, updated)

            applied = AppliedChange(
                file_path=change.file_path,
                original_content=original,
                pending=change,
            )
            self._history.appendleft(applied)
            while len(self._history) > self.history_size:
                dropped = self._history.pop()
                logger.debug("History full, dropped %s", dropped.id)
            self._pending = None
            logger.info("Applied %s", applied.summary)
            return applied

    def discard(self) -> PendingChange | None:
        """Drop the pending change without touching disk."""
        with self._lock:
            change, self._pending = self._pending, None
            if change is not None:
                logger.info("Discarded %s", change.id)
            return change

    def rollback(self) -> AppliedChange:
        """Restore the file touched by the most recent applied change."""
        with self._lock:
            if not self._history:
                raise ChangeError("Nothing to roll back")
            latest = self._history[0]
            _atomic_write(latest.file_path, latest.original_content)
            self._history.popleft()
            logger.info("Rolled back %s", latest.summary)
            return latest

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()


def _read(path: Path) -> str:
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def _atomic_write(path: Path, content: str) -> None:
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        if path.exists():
            os.chmod(tmp, path.stat().st_mode)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise

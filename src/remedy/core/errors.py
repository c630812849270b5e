"""Exception hierarchy for Remedy."""

from __future__ import annotations


class RemedyError(Exception):
    """Base class for all Remedy errors."""


class RoleError(RemedyError):
    """A planner, coder or reviewer produced empty or unparseable output."""


class AnalyzerError(RemedyError):
    """An analyzer could not run or its output could not be read."""


class ToolchainError(RemedyError):
    """A toolchain could not be resolved for a file (missing flags or manifest)."""


class FixGenerationError(RemedyError):
    """Every fix attempt for an issue failed.

    ``feedback`` carries the last failure description verbatim so callers
    can show which step kept failing.
    """

    def __init__(self, message: str, feedback: str = "", attempts: int = 0):
        super().__init__(message)
        self.feedback = feedback
        self.attempts = attempts


class ChangeError(RemedyError):
    """A staged-change operation was requested in an invalid state."""


class StaleChangeError(ChangeError):
    """The target file no longer contains the code a pending change replaces."""

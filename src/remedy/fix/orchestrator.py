"""Plan, code, review and validate loop with bounded retries."""

from __future__ import annotations

import logging

from remedy.core.config import RemedyConfig
from remedy.core.errors import FixGenerationError, RoleError
from remedy.core.models import SecurityIssue
from remedy.fix.models import PendingChange
from remedy.fix.roles import Coder, Planner, Reviewer
from remedy.fix.slicer import CodeSlice, CodeSlicer, read_source, splice_lines
from remedy.fix.validator import CodeValidator

logger = logging.getLogger(__name__)

NEARBY_RADIUS = 10


class FixOrchestrator:
    """Generates a verified PendingChange for one issue.

    Each attempt plans, implements and reviews a fix, then validates it
    against the real toolchain. A failed attempt feeds its failure reason
    and plan into the next planning call; only the latest feedback is kept.
    Nothing is written to disk permanently.
    """

    def __init__(
        self,
        planner: Planner,
        coder: Coder,
        reviewer: Reviewer,
        validator: CodeValidator,
        slicer: CodeSlicer | None = None,
        config: RemedyConfig | None = None,
    ):
        self.planner = planner
        self.coder = coder
        self.reviewer = reviewer
        self.validator = validator
        self.config = config or RemedyConfig()
        self.slicer = slicer or CodeSlicer(
            context_before=self.config.fix.context_before,
            context_after=self.config.fix.context_after,
        )

    def generate_fix(self, issue: SecurityIssue, max_retries: int | None = None) -> PendingChange:
        """Return a reviewed and validated change for ``issue``.

        Raises FixGenerationError when every attempt failed; its
        ``feedback`` holds the last failure description.
        """
        return self._run(issue, max_retries, constraints=None)

    def generate_fix_with_context(
        self,
        issue: SecurityIssue,
        nearby: list[SecurityIssue],
        max_retries: int | None = None,
    ) -> PendingChange:
        """Like ``generate_fix``, but tells the planner about issues close by.

        Issues within 10 lines in the same file are listed so the plan does
        not leave a neighbouring bug half-fixed.
        """
        related = [
            other
            for other in nearby
            if other.fingerprint != issue.fingerprint
            and other.file == issue.file
            and abs(other.line - issue.line) <= NEARBY_RADIUS
        ]
        constraints = None
        if related:
            logger.info("Found %d nearby issues to consider during fix", len(related))
            lines = "\n".join(f"- line {o.line}: {o.title} ({o.category.display_name})" for o in related)
            constraints = f"Other issues near this code (keep them in mind, do not make them worse):\n{lines}"
        return self._run(issue, max_retries, constraints)

    def _run(self, issue: SecurityIssue, max_retries: int | None, constraints: str | None) -> PendingChange:
        retries = self.config.fix.max_retries if max_retries is None else max_retries
        if retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {retries}")

        file_path = issue.file
        if not file_path.exists():
            raise FixGenerationError(f"File not found: {file_path}")

        logger.info("Starting auto-fix for %s (max retries: %d)", issue.id, retries)
        try:
            content = read_source(file_path)
            code_slice = self.slicer.slice(file_path, issue.line)
        except (OSError, ValueError) as e:
            raise FixGenerationError(f"Cannot extract code for {issue.location}: {e}") from e
        logger.info("Extracted code slice: lines %d-%d", code_slice.start_line, code_slice.end_line)

        feedback: str | None = None
        for attempt in range(1, retries + 1):
            logger.info("=== Attempt %d/%d ===", attempt, retries)
            try:
                change, feedback = self._attempt(
                    issue, content, code_slice, attempt, retries, _join(constraints, feedback)
                )
            except Exception as e:
                if attempt == retries:
                    raise FixGenerationError(
                        f"Auto-fix failed on final attempt: {e}",
                        feedback=feedback or "",
                        attempts=attempt,
                    ) from e
                logger.warning("Attempt %d/%d failed with exception: %s", attempt, retries, e)
                feedback = (
                    f"Attempt {attempt}/{retries} failed with error: {e}\n"
                    "Create a simpler, more robust plan."
                )
                continue
            if change is not None:
                logger.info("Auto-fix successful on attempt %d/%d", attempt, retries)
                return change

        raise FixGenerationError(
            f"Auto-fix failed after {retries} attempts. Last failure: {feedback or 'Unknown error'}",
            feedback=feedback or "",
            attempts=retries,
        )

    def _attempt(
        self,
        issue: SecurityIssue,
        content: str,
        code_slice: CodeSlice,
        attempt: int,
        retries: int,
        feedback: str | None,
    ) -> tuple[PendingChange | None, str | None]:
        """Run one attempt. Returns the change, or None and the new feedback."""
        plan = self.planner.plan(issue, code_slice.code, feedback)
        if not plan:
            raise RoleError("Planner returned no steps")
        logger.info("Fix plan has %d steps", len(plan))

        new_code = self.coder.implement(code_slice.code, plan, issue)
        if not new_code.strip():
            raise RoleError("Coder returned empty code")
        logger.info("Fixed code generated: %d lines", len(new_code.splitlines()))

        review = self.reviewer.review(code_slice.code, plan, new_code, issue)
        logger.info("Code review completed: %s", "PASS" if review.passed else "FAIL")
        if not review.passed:
            logger.warning("Review failed: %s", review.reason)
            return None, (
                f"Review FAILED (attempt {attempt}/{retries}): {review.reason}\n"
                f"Issues found:\n{_format_issues(review.issues)}\n"
                f"Previous plan was:\n{plan.format()}\n"
                "Create a NEW plan that addresses these review issues."
            )

        candidate = splice_lines(content, code_slice.start_line, code_slice.end_line, new_code)
        validation = self.validator.validate(issue.file, candidate, issue)
        logger.info("Validation completed: %s", "PASS" if validation.passed else "FAIL")
        if not validation.passed:
            logger.warning("Validation failed: %s", validation.reason)
            return None, (
                f"Validation FAILED (attempt {attempt}/{retries}): {validation.reason}\n"
                f"Compilation/Analysis errors:\n{_format_issues(validation.issues)}\n"
                f"Previous plan was:\n{plan.format()}\n"
                "Create a NEW plan that produces compilable, correct code."
            )

        change = PendingChange(
            issue=issue,
            file_path=issue.file,
            start_line=code_slice.start_line,
            end_line=code_slice.end_line,
            old_code=code_slice.code,
            new_code=new_code,
            plan=plan,
            review=review,
            validation=validation,
        )
        logger.info("Pending change created: %s", change.summary)
        return change, None


def _format_issues(issues) -> str:
    if not issues:
        return "  (none)"
    return "\n".join(f"  - {issue}" for issue in issues)


def _join(*parts: str | None) -> str | None:
    text = "\n\n".join(p for p in parts if p)
    return text or None

"""Planner, coder and reviewer roles used by the fix orchestrator.

Each role is a small interface so tests can drive the orchestrator with
scripted fakes. The ``LLM*`` implementations talk to Claude through
``LLMClient``.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod

from remedy.core.config import AIConfig
from remedy.core.errors import RoleError
from remedy.core.models import Language, SecurityIssue
from remedy.fix.models import FixPlan, ReviewResult

logger = logging.getLogger(__name__)


class Planner(ABC):
    @abstractmethod
    def plan(self, issue: SecurityIssue, code: str, feedback: str | None = None) -> FixPlan:
        """Return the steps for fixing ``issue`` in ``code``."""


class Coder(ABC):
    @abstractmethod
    def implement(self, code: str, plan: FixPlan, issue: SecurityIssue) -> str:
        """Return a complete replacement for ``code``."""


class Reviewer(ABC):
    @abstractmethod
    def review(
        self,
        original: str,
        plan: FixPlan,
        new_code: str,
        issue: SecurityIssue,
    ) -> ReviewResult:
        ...


SYSTEM_PROMPTS = {
    "planner": (
        "You are a security engineer planning the smallest safe fix for a "
        "reported vulnerability. Answer with a JSON array of short, concrete "
        "steps and nothing else."
    ),
    "coder": (
        "You are a careful systems programmer. Rewrite the given code so it "
        "follows the plan exactly. Keep everything the plan does not mention "
        "unchanged. Answer with the complete replacement code in one fenced "
        "code block."
    ),
    "reviewer": (
        "You are a strict security code reviewer. Decide whether the new code "
        "fixes the issue without introducing new bugs or changing behaviour. "
        'Answer with a JSON object {"passed": bool, "reason": str, "issues": [str]}.'
    ),
}


class LLMClient:
    """Thin wrapper around the Anthropic messages API."""

    def __init__(self, api_key: str | None = None, config: AIConfig | None = None):
        self.api_key = api_key
        self.config = config or AIConfig()
        self._client = None

    def _get_client(self):
        """Lazy-initialize the Anthropic client."""
        if self._client is None:
            try:
                import anthropic
            except ImportError:
                raise ImportError(
                    "AI fixes require the anthropic package. "
                    "Install with: pip install remedy[ai]"
                )
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def complete(self, role: str, prompt: str) -> str:
        client = self._get_client()
        logger.debug("Sending %s prompt (%d chars)", role, len(prompt))
        response = client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            system=SYSTEM_PROMPTS[role],
            messages=[{"role": "user", "content": prompt}],
        )
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )
        if not text.strip():
            raise RoleError(f"Empty {role} response")
        return text


def _fence_language(issue: SecurityIssue) -> str:
    return {Language.C_CPP: "c", Language.JAVA: "java", Language.RUST: "rust"}.get(
        Language.from_path(issue.file), ""
    )


class LLMPlanner(Planner):
    def __init__(self, client: LLMClient):
        self.client = client

    def plan(self, issue: SecurityIssue, code: str, feedback: str | None = None) -> FixPlan:
        prompt = f"""ISSUE:
{issue.summary}

CODE:
```{_fence_language(issue)}
{code}
```
"""
        if feedback:
            prompt += f"\nPREVIOUS ATTEMPT:\n{feedback}\n"
            prompt += (
                "\nThe previous plan failed. Make a materially different plan: take a "
                "different approach, do not reword the previous steps, and do not "
                "repeat the mistake described above.\n"
            )
        prompt += "\nRespond with a JSON array of steps, for example:\n" \
                  '["Replace strcpy with strncpy", "Null-terminate the destination"]\n'

        steps = [str(s).strip() for s in extract_json_array(self.client.complete("planner", prompt))]
        steps = [s for s in steps if s]
        if not steps:
            raise RoleError("Planner returned no steps")
        return FixPlan(tuple(steps))


class LLMCoder(Coder):
    def __init__(self, client: LLMClient):
        self.client = client

    def implement(self, code: str, plan: FixPlan, issue: SecurityIssue) -> str:
        lang = _fence_language(issue)
        prompt = f"""ISSUE:
{issue.summary}

PLAN:
{plan.format()}

ORIGINAL CODE:
```{lang}
{code}
```

CONSTRAINTS:
- Return the COMPLETE replacement for the original code, not a diff.
- Keep the same function signatures and surrounding structure.
- Do not add line numbers.
"""
        new_code = extract_code_block(self.client.complete("coder", prompt))
        if not new_code.strip():
            raise RoleError("Coder returned empty code")
        return new_code


class LLMReviewer(Reviewer):
    def __init__(self, client: LLMClient):
        self.client = client

    def review(
        self,
        original: str,
        plan: FixPlan,
        new_code: str,
        issue: SecurityIssue,
    ) -> ReviewResult:
        lang = _fence_language(issue)
        prompt = f"""ISSUE:
{issue.summary}

PLAN:
{plan.format()}

ORIGINAL CODE:
```{lang}
{original}
```

NEW CODE:
```{lang}
{new_code}
```

Respond with a JSON object: {{"passed": true|false, "reason": "...", "issues": ["..."]}}
"""
        data = extract_json_object(self.client.complete("reviewer", prompt))
        if "passed" not in data:
            raise RoleError("Reviewer response is missing 'passed'")
        passed = data["passed"]
        if isinstance(passed, str):
            passed = passed.strip().lower() in ("true", "yes", "pass", "passed")
        issues = data.get("issues") or []
        if isinstance(issues, str):
            issues = [issues]
        reason = str(data.get("reason") or ("Looks correct" if passed else "Rejected"))
        return ReviewResult(bool(passed), reason, tuple(str(i) for i in issues))


_JSON_FENCE = re.compile(r"```(?:json)?\s*\n(.*?)```", re.DOTALL)
_CODE_FENCE = re.compile(r"```[\w+-]*\n(.*?)```", re.DOTALL)


def _json_candidates(text: str, opener: str):
    for match in _JSON_FENCE.finditer(text):
        yield match.group(1).strip()
    decoder = json.JSONDecoder()
    for i, ch in enumerate(text):
        if ch != opener:
            continue
        try:
            value, _ = decoder.raw_decode(text, i)
        except json.JSONDecodeError:
            continue
        yield value


def extract_json_array(text: str) -> list:
    """Return the first JSON array found in ``text``."""
    for candidate in _json_candidates(text, "["):
        if isinstance(candidate, str):
            try:
                candidate = json.loads(candidate)
            except json.JSONDecodeError:
                continue
        if isinstance(candidate, list):
            return candidate
    raise RoleError("No JSON array found in response")


def extract_json_object(text: str) -> dict:
    """Return the first JSON object found in ``text``."""
    for candidate in _json_candidates(text, "{"):
        if isinstance(candidate, str):
            try:
                candidate = json.loads(candidate)
            except json.JSONDecodeError:
                continue
        if isinstance(candidate, dict):
            return candidate
    raise RoleError("No JSON object found in response")


def extract_code_block(text: str) -> str:
    """Return the first fenced code block, or the whole text when unfenced."""
    match = _CODE_FENCE.search(text)
    if match:
        return match.group(1).rstrip("\n")
    return text.strip()

"""Tests for the Claude-backed roles and response parsing."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from remedy.core.config import AIConfig
from remedy.core.errors import RoleError
from remedy.fix.models import FixPlan
from remedy.fix.roles import (
    LLMClient,
    LLMCoder,
    LLMPlanner,
    LLMReviewer,
    extract_code_block,
    extract_json_array,
    extract_json_object,
)


class CannedClient:
    """Returns a fixed response and records the prompts it was sent."""

    def __init__(self, response: str):
        self.response = response
        self.prompts: list[tuple[str, str]] = []

    def complete(self, role: str, prompt: str) -> str:
        self.prompts.append((role, prompt))
        return self.response


class TestParsing:
    def test_json_array_in_prose(self):
        text = 'Here is the plan:\n["use strncpy", "terminate the buffer"]\nGood luck.'

        assert extract_json_array(text) == ["use strncpy", "terminate the buffer"]

    def test_json_array_in_fence(self):
        text = '```json\n[\n  "step one",\n  "step two"\n]\n```'

        assert extract_json_array(text) == ["step one", "step two"]

    def test_json_array_skips_non_json_brackets(self):
        text = 'The buffer [16 bytes] overflows.\n["bound the copy"]'

        assert extract_json_array(text) == ["bound the copy"]

    def test_no_json_array(self):
        with pytest.raises(RoleError):
            extract_json_array("just prose, no plan")

    def test_json_object(self):
        text = 'Verdict: {"passed": false, "reason": "off by one", "issues": ["dst[16]"]}'

        assert extract_json_object(text) == {"passed": False, "reason": "off by one", "issues": ["dst[16]"]}

    def test_no_json_object(self):
        with pytest.raises(RoleError):
            extract_json_object("looks fine to me")

    def test_code_block(self):
        text = "Sure:\n```c\nint x = 1;\nint y = 2;\n```\nDone."

        assert extract_code_block(text) == "int x = 1;\nint y = 2;"

    def test_unfenced_code_is_returned_whole(self):
        assert extract_code_block("  int x = 1;\n") == "int x = 1;"


class TestLLMPlanner:
    def test_parses_steps(self, make_issue):
        client = CannedClient('["replace strcpy with strncpy", "null-terminate dst"]')

        plan = LLMPlanner(client).plan(make_issue(), "strcpy(dst, src);")

        assert plan.steps == ("replace strcpy with strncpy", "null-terminate dst")
        role, prompt = client.prompts[0]
        assert role == "planner"
        assert "strcpy(dst, src);" in prompt
        assert "PREVIOUS ATTEMPT" not in prompt

    def test_feedback_is_included(self, make_issue):
        client = CannedClient('["try again"]')

        LLMPlanner(client).plan(make_issue(), "code", feedback="Review FAILED (attempt 1/3): nope")

        prompt = client.prompts[0][1]
        assert "Review FAILED (attempt 1/3): nope" in prompt
        assert "materially different plan" in prompt
        assert "do not reword the previous steps" in prompt
        assert "do not repeat the mistake" in prompt

    def test_first_attempt_does_not_ask_for_a_different_plan(self, make_issue):
        client = CannedClient('["step"]')

        LLMPlanner(client).plan(make_issue(), "code")

        assert "materially different" not in client.prompts[0][1]

    def test_empty_plan_is_an_error(self, make_issue):
        with pytest.raises(RoleError):
            LLMPlanner(CannedClient('["", "  "]')).plan(make_issue(), "code")


class TestLLMCoder:
    def test_returns_code_block(self, make_issue):
        client = CannedClient("```c\nstrncpy(dst, src, 15);\n```")

        code = LLMCoder(client).implement("strcpy(dst, src);", FixPlan(("use strncpy",)), make_issue())

        assert code == "strncpy(dst, src, 15);"
        assert "1. use strncpy" in client.prompts[0][1]

    def test_empty_code_is_an_error(self, make_issue):
        with pytest.raises(RoleError):
            LLMCoder(CannedClient("```c\n\n```")).implement("x", FixPlan(("a",)), make_issue())


class TestLLMReviewer:
    def test_pass(self, make_issue):
        client = CannedClient('{"passed": true, "reason": "bounded copy", "issues": []}')

        result = LLMReviewer(client).review("old", FixPlan(("a",)), "new", make_issue())

        assert result.passed
        assert result.reason == "bounded copy"
        assert result.issues == ()

    def test_fail_with_issues(self, make_issue):
        client = CannedClient('{"passed": "false", "reason": "missing terminator", "issues": "dst not terminated"}')

        result = LLMReviewer(client).review("old", FixPlan(("a",)), "new", make_issue())

        assert not result.passed
        assert result.issues == ("dst not terminated",)

    def test_missing_verdict_is_an_error(self, make_issue):
        with pytest.raises(RoleError):
            LLMReviewer(CannedClient('{"reason": "?"}')).review("o", FixPlan(("a",)), "n", make_issue())


class TestLLMClient:
    def test_complete_uses_role_prompt_and_config(self):
        sent = {}

        def create(**kwargs):
            sent.update(kwargs)
            return SimpleNamespace(content=[SimpleNamespace(type="text", text='["ok"]')])

        client = LLMClient(config=AIConfig(model="claude-test", max_tokens=123))
        client._client = SimpleNamespace(messages=SimpleNamespace(create=create))

        assert client.complete("planner", "hello") == '["ok"]'
        assert sent["model"] == "claude-test"
        assert sent["max_tokens"] == 123
        assert "JSON array" in sent["system"]
        assert sent["messages"] == [{"role": "user", "content": "hello"}]

    def test_empty_response_is_an_error(self):
        client = LLMClient()
        client._client = SimpleNamespace(messages=SimpleNamespace(
            create=lambda **kwargs: SimpleNamespace(content=[SimpleNamespace(type="text", text="  ")])
        ))

        with pytest.raises(RoleError):
            client.complete("coder", "x")

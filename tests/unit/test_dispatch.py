"""Tests for request planning: family detection, fix selection and body rewrite."""

import pytest

from nexos_compat.dispatch import parse_body, plan_request, select_fix
from nexos_compat.llms.classifier import ProviderFamily
from nexos_compat.streaming import StreamFix


@pytest.mark.unit
class TestSelectFix:
    @pytest.mark.parametrize(
        ("families", "had_thinking", "expected"),
        [
            ({ProviderFamily.CODEX, ProviderFamily.CHATGPT}, False, StreamFix.CODEX),
            ({ProviderFamily.GEMINI}, False, StreamFix.GEMINI),
            ({ProviderFamily.CLAUDE}, True, StreamFix.CLAUDE),
            ({ProviderFamily.GEMINI, ProviderFamily.CLAUDE}, False, StreamFix.COMPOSITE),
            (set(), True, StreamFix.COMPOSITE),
            (set(), False, StreamFix.NONE),
            ({ProviderFamily.CODESTRAL}, False, StreamFix.NONE),
            ({ProviderFamily.CHATGPT}, True, StreamFix.COMPOSITE),
        ],
    )
    def test_fix_table(
        self, families: set[ProviderFamily], had_thinking: bool, expected: StreamFix
    ) -> None:
        assert select_fix(frozenset(families), had_thinking) is expected


@pytest.mark.unit
class TestPlanRequest:
    def test_codex_request_is_converted(self) -> None:
        body = {
            "model": "openai/gpt-5-codex",
            "stream": True,
            "messages": [{"role": "user", "content": "hi"}],
        }

        plan = plan_request(body)

        assert plan.is_codex
        assert plan.fix is StreamFix.CODEX
        assert plan.stream is True
        assert plan.rewrite_body is True
        assert plan.body["input"] == [{"type": "message", "role": "user", "content": "hi"}]
        assert "messages" not in plan.body
        assert plan.model == "openai/gpt-5-codex"

    def test_codex_bypasses_other_normalizers(self) -> None:
        body = {
            "model": "gpt-5-codex",
            "messages": [],
            "reasoning_effort": "none",
        }

        plan = plan_request(body)

        assert "reasoning" not in plan.body
        assert "reasoning_effort" not in plan.body

    def test_gemini_request_is_normalized(self) -> None:
        body = {
            "model": "Gemini-2.5-Flash",
            "tools": [
                {
                    "type": "function",
                    "function": {
                        "name": "f",
                        "parameters": {
                            "properties": {"a": {"$ref": "#/$defs/A"}},
                            "$defs": {"A": {"type": "string"}},
                        },
                    },
                }
            ],
        }

        plan = plan_request(body)

        assert plan.fix is StreamFix.GEMINI
        assert plan.stream is False
        assert plan.body["tools"][0]["function"]["parameters"] == {
            "properties": {"a": {"type": "string"}}
        }

    def test_unknown_model_is_left_alone(self) -> None:
        body = {"model": "llama-3", "messages": [{"role": "user", "content": "x"}]}

        plan = plan_request(body)

        assert plan.families == frozenset()
        assert plan.fix is StreamFix.NONE
        assert plan.rewrite_body is False
        assert plan.body is body

    def test_unknown_model_with_thinking_gets_composite_fix(self) -> None:
        body = {"model": "mystery", "thinking": {"type": "enabled", "budget_tokens": 10}}

        plan = plan_request(body)

        assert plan.fix is StreamFix.COMPOSITE
        assert plan.body is body

    def test_missing_model(self) -> None:
        plan = plan_request({})

        assert plan.fix is StreamFix.NONE
        assert plan.model is None


@pytest.mark.unit
@pytest.mark.parametrize(
    ("content", "expected"),
    [
        (b'{"model": "x"}', {"model": "x"}),
        ('{"model": "x"}', {"model": "x"}),
        (b"", {}),
        (None, {}),
        (b"{broken", {}),
        (b"[1, 2]", {}),
        (b"\xff\xfe", {}),
    ],
)
def test_parse_body(content: bytes | str | None, expected: dict) -> None:
    assert parse_body(content) == expected

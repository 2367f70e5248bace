"""Tests for SSE record patching of Gemini and Claude streams."""

import json
from typing import Any

import pytest

from conftest import parse_sse, sse
from nexos_compat.streaming import StreamFix, StreamRewriter
from nexos_compat.streaming.rewriter import (
    PATCHES_BY_FIX,
    hoist_thinking_blocks,
    include_cached_prompt_tokens,
    patch_record,
)


def _chunk(delta: dict[str, Any] | None = None, finish_reason: Any = None, **extra: Any) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta or {}, "finish_reason": finish_reason}],
        **extra,
    }


def _rewrite(fix: StreamFix, *pushes: str) -> str:
    rewriter = StreamRewriter(fix)
    out = "".join(rewriter.push(text) for text in pushes)
    return out + rewriter.flush()


TOOL_CALL_DELTA = {
    "tool_calls": [
        {
            "index": 0,
            "id": "call_1",
            "type": "function",
            "function": {"name": "get_weather", "arguments": "{}"},
        }
    ]
}


@pytest.mark.unit
class TestGeminiFix:
    def test_stop_with_tool_calls_becomes_tool_calls(self) -> None:
        text = sse(_chunk(TOOL_CALL_DELTA, "stop"))

        records = parse_sse(_rewrite(StreamFix.GEMINI, text))

        assert records[0]["choices"][0]["finish_reason"] == "tool_calls"
        assert records[0]["choices"][0]["delta"] == TOOL_CALL_DELTA
        assert records[-1] == "[DONE]"

    def test_upper_case_stop_is_lowered(self) -> None:
        records = parse_sse(_rewrite(StreamFix.GEMINI, sse(_chunk({}, "STOP"))))

        assert records[0]["choices"][0]["finish_reason"] == "stop"

    def test_upper_case_stop_with_tool_calls_ends_as_tool_calls(self) -> None:
        records = parse_sse(_rewrite(StreamFix.GEMINI, sse(_chunk(TOOL_CALL_DELTA, "STOP"))))

        assert records[0]["choices"][0]["finish_reason"] == "tool_calls"

    def test_stop_with_empty_tool_calls_is_kept(self) -> None:
        records = parse_sse(
            _rewrite(StreamFix.GEMINI, sse(_chunk({"tool_calls": []}, "stop")))
        )

        assert records[0]["choices"][0]["finish_reason"] == "stop"

    def test_thinking_blocks_are_hoisted(self) -> None:
        delta = {
            "content_blocks": [
                {"type": "thinking", "thinking": "Let me "},
                {"type": "text", "text": "ignored"},
                {"type": "thinking", "text": "think."},
            ]
        }

        records = parse_sse(_rewrite(StreamFix.GEMINI, sse(_chunk(delta))))

        assert records[0]["choices"][0]["delta"] == {"reasoning_content": "Let me think."}

    def test_untouched_records_are_byte_identical(self) -> None:
        text = sse(_chunk({"content": "hi"}), _chunk({}, "stop"))

        assert _rewrite(StreamFix.GEMINI, text) == text


@pytest.mark.unit
class TestClaudeFix:
    def test_end_turn_and_cached_tokens(self) -> None:
        usage = {
            "prompt_tokens": 10,
            "completion_tokens": 3,
            "total_tokens": 13,
            "prompt_tokens_details": {"cached_tokens": 90},
        }
        text = sse(_chunk({}, "end_turn", usage=usage))

        records = parse_sse(_rewrite(StreamFix.CLAUDE, text))

        assert records[0]["choices"][0]["finish_reason"] == "stop"
        assert records[0]["usage"]["prompt_tokens"] == 100
        assert records[0]["usage"]["prompt_tokens_details"] == {"cached_tokens": 90}

    def test_zero_cached_tokens_change_nothing(self) -> None:
        chunk = _chunk({}, None, usage={"prompt_tokens": 5, "prompt_tokens_details": {"cached_tokens": 0}})

        assert include_cached_prompt_tokens(chunk) is False
        assert chunk["usage"]["prompt_tokens"] == 5

    def test_gemini_patches_not_applied(self) -> None:
        text = sse(_chunk(TOOL_CALL_DELTA, "stop"))

        assert _rewrite(StreamFix.CLAUDE, text) == text


@pytest.mark.unit
class TestCompositeFix:
    def test_applies_both_patch_sets(self) -> None:
        text = sse(
            _chunk(TOOL_CALL_DELTA, "STOP"),
            _chunk({}, "end_turn", usage={"prompt_tokens": 1, "prompt_tokens_details": {"cached_tokens": 2}}),
        )

        records = parse_sse(_rewrite(StreamFix.COMPOSITE, text))

        assert records[0]["choices"][0]["finish_reason"] == "tool_calls"
        assert records[1]["choices"][0]["finish_reason"] == "stop"
        assert records[1]["usage"]["prompt_tokens"] == 3

    def test_patch_table(self) -> None:
        assert PATCHES_BY_FIX[StreamFix.COMPOSITE] == (
            PATCHES_BY_FIX[StreamFix.GEMINI] + PATCHES_BY_FIX[StreamFix.CLAUDE]
        )
        assert PATCHES_BY_FIX[StreamFix.NONE] == ()
        assert PATCHES_BY_FIX[StreamFix.CODEX] == ()


@pytest.mark.unit
class TestStreamRewriter:
    def test_record_split_across_pushes_is_patched_whole(self) -> None:
        text = sse(_chunk(TOOL_CALL_DELTA, "stop"))
        pieces = [text[i : i + 5] for i in range(0, len(text), 5)]

        records = parse_sse(_rewrite(StreamFix.GEMINI, *pieces))

        assert records[0]["choices"][0]["finish_reason"] == "tool_calls"
        assert records.count("[DONE]") == 1

    def test_done_is_appended_when_missing(self) -> None:
        text = sse(_chunk({"content": "x"}), done=False)

        out = _rewrite(StreamFix.CLAUDE, text)

        assert out == text + "data: [DONE]\n\n"

    def test_done_is_not_duplicated(self) -> None:
        text = sse(_chunk({"content": "x"}))

        out = _rewrite(StreamFix.CLAUDE, text)

        assert out.count("[DONE]") == 1

    def test_unterminated_tail_is_processed_on_flush(self) -> None:
        rewriter = StreamRewriter(StreamFix.GEMINI)

        assert rewriter.push("data: " + json.dumps(_chunk({}, "STOP"))) == ""
        tail = rewriter.flush()

        records = parse_sse(tail)
        assert records[0]["choices"][0]["finish_reason"] == "stop"
        assert records[1] == "[DONE]"
        assert rewriter.patched_records == 1

    def test_non_data_lines_pass_through(self) -> None:
        text = ": keep-alive\n\nevent: message\ndata: not-json\n\n"

        out = _rewrite(StreamFix.COMPOSITE, text)

        assert out.startswith(text)


@pytest.mark.unit
def test_patch_record_preserves_carriage_return() -> None:
    line = "data: " + json.dumps(_chunk({}, "STOP")) + "\r"

    patched = patch_record(line, PATCHES_BY_FIX[StreamFix.GEMINI])

    assert patched.endswith("}\r")
    assert json.loads(patched[6:])["choices"][0]["finish_reason"] == "stop"


@pytest.mark.unit
def test_hoist_ignores_blocks_without_thinking() -> None:
    chunk = _chunk({"content_blocks": [{"type": "text", "text": "plain"}]})

    assert hoist_thinking_blocks(chunk) is False
    assert "content_blocks" in chunk["choices"][0]["delta"]

"""Record-level patching of Chat Completions SSE streams.

Gemini and Claude deployments behind the gateway emit chat chunks with
provider vocabulary (``STOP``, ``end_turn``), hide tool-call finishes behind
``stop``, nest thinking text and under-report prompt tokens when the prompt
cache was hit. ``StreamRewriter`` fixes those chunks on the way back to the
caller. Input is buffered per line, so a record split across transport chunks
is patched as a whole.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from enum import Enum
from typing import Any

import structlog

from nexos_compat.config.constants import SSE_DATA_PREFIX, SSE_DONE, SSE_DONE_RECORD


logger = structlog.get_logger(__name__)


class StreamFix(str, Enum):
    """Response post-processing selected once per request."""

    NONE = "none"
    GEMINI = "gemini"
    CLAUDE = "claude"
    CODEX = "codex"
    COMPOSITE = "composite"


ChunkPatch = Callable[[dict[str, Any]], bool]


def _choices(chunk: dict[str, Any]) -> list[dict[str, Any]]:
    return [c for c in chunk.get("choices") or [] if isinstance(c, dict)]


def _delta(choice: dict[str, Any]) -> dict[str, Any] | None:
    delta = choice.get("delta")
    return delta if isinstance(delta, dict) else None


def normalize_gemini_finish_reason(chunk: dict[str, Any]) -> bool:
    changed = False
    for choice in _choices(chunk):
        if choice.get("finish_reason") == "STOP":
            choice["finish_reason"] = "stop"
            changed = True
    return changed


def reclassify_tool_call_finish(chunk: dict[str, Any]) -> bool:
    """``stop`` on a delta that carries tool calls really means ``tool_calls``."""
    changed = False
    for choice in _choices(chunk):
        delta = _delta(choice)
        if (
            choice.get("finish_reason") == "stop"
            and delta is not None
            and isinstance(delta.get("tool_calls"), list)
            and delta["tool_calls"]
        ):
            choice["finish_reason"] = "tool_calls"
            changed = True
    return changed


def hoist_thinking_blocks(chunk: dict[str, Any]) -> bool:
    """Move thinking text out of ``delta.content_blocks`` into ``reasoning_content``."""
    changed = False
    for choice in _choices(chunk):
        delta = _delta(choice)
        if delta is None or not isinstance(delta.get("content_blocks"), list):
            continue
        thinking = "".join(
            block.get("thinking") or block.get("text") or ""
            for block in delta["content_blocks"]
            if isinstance(block, dict) and block.get("type") == "thinking"
        )
        if not thinking:
            continue
        delta["reasoning_content"] = thinking
        del delta["content_blocks"]
        changed = True
    return changed


def normalize_claude_finish_reason(chunk: dict[str, Any]) -> bool:
    changed = False
    for choice in _choices(chunk):
        if choice.get("finish_reason") == "end_turn":
            choice["finish_reason"] = "stop"
            changed = True
    return changed


def include_cached_prompt_tokens(chunk: dict[str, Any]) -> bool:
    """Count cache hits in ``prompt_tokens``; the detail field is kept as is."""
    usage = chunk.get("usage")
    if not isinstance(usage, dict):
        return False
    details = usage.get("prompt_tokens_details")
    if not isinstance(details, dict):
        return False
    cached = details.get("cached_tokens")
    if not isinstance(cached, int) or cached <= 0:
        return False
    prompt_tokens = usage.get("prompt_tokens")
    usage["prompt_tokens"] = (
        prompt_tokens if isinstance(prompt_tokens, int) else 0
    ) + cached
    return True


GEMINI_PATCHES: tuple[ChunkPatch, ...] = (
    normalize_gemini_finish_reason,
    reclassify_tool_call_finish,
    hoist_thinking_blocks,
)
CLAUDE_PATCHES: tuple[ChunkPatch, ...] = (
    normalize_claude_finish_reason,
    include_cached_prompt_tokens,
)

PATCHES_BY_FIX: dict[StreamFix, tuple[ChunkPatch, ...]] = {
    StreamFix.NONE: (),
    StreamFix.CODEX: (),
    StreamFix.GEMINI: GEMINI_PATCHES,
    StreamFix.CLAUDE: CLAUDE_PATCHES,
    StreamFix.COMPOSITE: GEMINI_PATCHES + CLAUDE_PATCHES,
}


def patch_record(line: str, patches: tuple[ChunkPatch, ...]) -> str:
    """Patch one ``data: {json}`` line; anything else is returned unchanged."""
    if not patches or not line.startswith(SSE_DATA_PREFIX):
        return line

    payload = line[len(SSE_DATA_PREFIX) :]
    line_end = "\r" if payload.endswith("\r") else ""
    try:
        chunk = json.loads(payload)
    except json.JSONDecodeError:
        return line
    if not isinstance(chunk, dict) or not isinstance(chunk.get("choices"), list):
        return line

    changed = False
    for patch in patches:
        changed = patch(chunk) or changed
    if not changed:
        return line
    return SSE_DATA_PREFIX + json.dumps(chunk) + line_end


class StreamRewriter:
    """Patch an outbound SSE stream record by record.

    One instance per stream. ``push`` returns the text of every complete line
    received so far; ``flush`` returns the remaining tail and, if the upstream
    never sent one, the terminal ``[DONE]`` record.
    """

    def __init__(self, fix: StreamFix) -> None:
        self.fix = fix
        self.patches = PATCHES_BY_FIX[fix]
        self.buffer = ""
        self.saw_done = False
        self.patched_records = 0

    def push(self, text: str) -> str:
        self.buffer += text
        lines = self.buffer.split("\n")
        self.buffer = lines.pop()
        return "".join(self._process_line(line) + "\n" for line in lines)

    def flush(self) -> str:
        tail = self.buffer
        self.buffer = ""
        if tail:
            tail = self._process_line(tail)
        if not self.saw_done:
            if tail and not tail.endswith("\n"):
                tail += "\n\n"
            tail += SSE_DONE_RECORD
            self.saw_done = True

        logger.debug(
            "stream_rewrite_completed",
            fix=self.fix.value,
            patched_records=self.patched_records,
        )
        return tail

    def _process_line(self, line: str) -> str:
        if line.startswith(SSE_DATA_PREFIX) and (
            line[len(SSE_DATA_PREFIX) :].strip() == SSE_DONE
        ):
            self.saw_done = True
            return line
        patched = patch_record(line, self.patches)
        if patched is not line:
            self.patched_records += 1
        return patched

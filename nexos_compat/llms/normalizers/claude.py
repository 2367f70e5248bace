"""Claude request normalization: prompt-cache annotations and thinking config."""

from __future__ import annotations

from typing import Any

import structlog

from nexos_compat.config.constants import CACHE_CONTROL_EPHEMERAL

from .thinking import normalize_thinking


logger = structlog.get_logger(__name__)


def _cache_marker() -> dict[str, str]:
    return dict(CACHE_CONTROL_EPHEMERAL)


def _is_empty_block(block: dict[str, Any]) -> bool:
    """Empty text blocks and tool results without text cannot be cached."""
    block_type = block.get("type")
    if block_type == "text":
        return not block.get("text")
    if block_type == "tool_result":
        content = block.get("content")
        if not content:
            return True
        if isinstance(content, list):
            return all(
                isinstance(part, dict) and not part.get("text") for part in content
            )
    return False


def _mark_message(
    message: dict[str, Any], skip_empty: bool
) -> dict[str, Any] | None:
    """Return ``message`` with its final content block marked cacheable.

    Returns None when nothing was marked (already marked, empty, no content).
    """
    content = message.get("content")

    if isinstance(content, str):
        if skip_empty and not content:
            return None
        return {
            **message,
            "content": [
                {"type": "text", "text": content, "cache_control": _cache_marker()}
            ],
        }

    if not isinstance(content, list) or not content:
        return None

    last = content[-1]
    if not isinstance(last, dict) or "cache_control" in last:
        return None
    if skip_empty and _is_empty_block(last):
        return None

    return {
        **message,
        "content": [*content[:-1], {**last, "cache_control": _cache_marker()}],
    }


def apply_claude_cache_control(body: dict[str, Any]) -> dict[str, Any]:
    """Mark the prompt prefix as cacheable.

    At most one system message (the last one) and at most one
    non-system, non-assistant message (the last one) get a cache marker on
    their final content block, plus the function of the last tool. Blocks
    that already carry a marker are left alone.
    """
    result = body
    messages = body.get("messages")

    if isinstance(messages, list) and messages:
        new_messages = list(messages)
        system_indices = [
            i
            for i, m in enumerate(messages)
            if isinstance(m, dict) and m.get("role") == "system"
        ]
        other_indices = [
            i
            for i, m in enumerate(messages)
            if isinstance(m, dict) and m.get("role") not in ("system", "assistant")
        ]

        changed = False
        if system_indices:
            idx = system_indices[-1]
            marked = _mark_message(messages[idx], skip_empty=False)
            if marked is not None:
                new_messages[idx] = marked
                changed = True
        if other_indices:
            idx = other_indices[-1]
            marked = _mark_message(messages[idx], skip_empty=True)
            if marked is not None:
                new_messages[idx] = marked
                changed = True

        if changed:
            result = {**result, "messages": new_messages}

    tools = body.get("tools")
    if isinstance(tools, list) and tools:
        last_tool = tools[-1]
        function = last_tool.get("function") if isinstance(last_tool, dict) else None
        if isinstance(function, dict) and "cache_control" not in function:
            result = {
                **result,
                "tools": [
                    *tools[:-1],
                    {
                        **last_tool,
                        "function": {**function, "cache_control": _cache_marker()},
                    },
                ],
            }

    if result is not body:
        logger.debug("claude_cache_control_applied")
    return result


def normalize_claude_thinking(body: dict[str, Any]) -> dict[str, Any]:
    return normalize_thinking(body)

"""Chat Completions request -> Responses API request conversion."""

from __future__ import annotations

import json
from typing import Any

import structlog

from nexos_compat.config.constants import (
    CHAT_COMPLETIONS_PATH,
    REASONING_EFFORT_NONE,
    RESPONSES_PATH,
)


logger = structlog.get_logger(__name__)


# Sampling fields copied verbatim when present
PASSTHROUGH_FIELDS = ("temperature", "top_p", "parallel_tool_calls")
# Output ceiling candidates, first one present wins
MAX_OUTPUT_FIELDS = ("max_completion_tokens", "max_tokens")


def _flatten_content(content: Any, separator: str) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return separator.join(
            (part.get("text") or "") if isinstance(part, dict) else ""
            for part in content
        )
    return ""


def _convert_tool(tool: Any) -> Any:
    function = tool.get("function") if isinstance(tool, dict) else None
    if not isinstance(function, dict) or tool.get("type") != "function":
        return tool
    converted = {
        "type": "function",
        "name": function.get("name"),
        "description": function.get("description") or "",
        "parameters": function.get("parameters") or {},
    }
    if function.get("strict") is not None:
        converted["strict"] = function["strict"]
    return converted


def _convert_tool_choice(tool_choice: Any) -> Any:
    """Named function choices are flat in the Responses API."""
    if isinstance(tool_choice, dict) and tool_choice.get("type") == "function":
        function = tool_choice.get("function")
        if isinstance(function, dict) and function.get("name"):
            return {"type": "function", "name": function["name"]}
    return tool_choice


def _convert_messages(
    messages: list[Any],
) -> tuple[str | None, list[dict[str, Any]]]:
    instructions: str | None = None
    input_items: list[dict[str, Any]] = []

    for msg in messages:
        if not isinstance(msg, dict):
            continue
        role = msg.get("role")
        content = msg.get("content")

        if role in ("system", "developer"):
            text = _flatten_content(content, "\n")
            instructions = text if instructions is None else instructions + "\n" + text
        elif role == "user":
            input_items.append(
                {
                    "type": "message",
                    "role": "user",
                    "content": _flatten_content(content, "\n"),
                }
            )
        elif role == "assistant":
            for tool_call in msg.get("tool_calls") or []:
                if not isinstance(tool_call, dict):
                    continue
                function = tool_call.get("function") or {}
                input_items.append(
                    {
                        "type": "function_call",
                        "call_id": tool_call.get("id"),
                        "name": function.get("name"),
                        "arguments": function.get("arguments"),
                    }
                )
            text = _flatten_content(content, "")
            if text:
                input_items.append(
                    {"type": "message", "role": "assistant", "content": text}
                )
        elif role == "tool":
            input_items.append(
                {
                    "type": "function_call_output",
                    "call_id": msg.get("tool_call_id"),
                    "output": content
                    if isinstance(content, str)
                    else json.dumps(content),
                }
            )
        else:
            logger.debug("responses_request_message_skipped", role=role)

    return instructions, input_items


def chat_to_responses_request(body: dict[str, Any]) -> dict[str, Any]:
    """Convert a Chat Completions request body to the Responses API shape.

    System and developer messages become ``instructions``; user, assistant and
    tool messages become ordered ``input`` items.
    """
    result: dict[str, Any] = {
        "model": body.get("model"),
        "stream": bool(body.get("stream")),
    }

    tools = body.get("tools")
    if isinstance(tools, list) and tools:
        result["tools"] = [_convert_tool(tool) for tool in tools]

    if body.get("tool_choice"):
        result["tool_choice"] = _convert_tool_choice(body["tool_choice"])

    for field in MAX_OUTPUT_FIELDS:
        if body.get(field):
            result["max_output_tokens"] = body[field]
            break

    for field in PASSTHROUGH_FIELDS:
        if body.get(field) is not None:
            result[field] = body[field]

    effort = body.get("reasoning_effort")
    if effort and effort != REASONING_EFFORT_NONE:
        result["reasoning"] = {"effort": effort}

    messages = body.get("messages")
    instructions, input_items = _convert_messages(
        messages if isinstance(messages, list) else []
    )
    if instructions:
        result["instructions"] = instructions
    result["input"] = input_items

    logger.debug(
        "responses_request_converted",
        model=result.get("model"),
        stream=result["stream"],
        input_items=len(input_items),
        has_instructions=bool(instructions),
        tool_count=len(result.get("tools", [])),
    )
    return result


def rewrite_responses_path(path: str) -> str:
    """Point a ``.../chat/completions`` path at ``.../responses``."""
    if path.endswith(CHAT_COMPLETIONS_PATH):
        return path[: -len(CHAT_COMPLETIONS_PATH)] + RESPONSES_PATH
    return path

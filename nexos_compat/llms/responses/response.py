"""Responses API response -> Chat Completions response conversion."""

from __future__ import annotations

import time
import uuid
from typing import Any

import structlog

from nexos_compat.llms.models import (
    ChatCompletionResponse,
    Choice,
    CompletionTokensDetails,
    CompletionUsage,
    FunctionCall,
    PromptTokensDetails,
    ResponseMessage,
    ResponseObject,
    ResponseUsage,
    ToolCall,
)


logger = structlog.get_logger(__name__)


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex[:29]}"


def finish_reason_for(response: ResponseObject | None) -> str:
    if response is not None and response.has_function_calls():
        return "tool_calls"
    return "stop"


def convert_responses_usage(
    usage: ResponseUsage | dict[str, Any] | None,
) -> CompletionUsage | None:
    """Map Responses usage to Chat Completions usage, keeping cached and
    reasoning token counts under the renamed detail objects."""
    if usage is None:
        return None
    if isinstance(usage, dict):
        usage = ResponseUsage.model_validate(usage)

    cached = (
        usage.input_tokens_details.cached_tokens
        if usage.input_tokens_details is not None
        else None
    )
    reasoning = (
        usage.output_tokens_details.reasoning_tokens
        if usage.output_tokens_details is not None
        else None
    )
    return CompletionUsage(
        prompt_tokens=usage.input_tokens or 0,
        completion_tokens=usage.output_tokens or 0,
        total_tokens=usage.total_tokens or 0,
        prompt_tokens_details=PromptTokensDetails(cached_tokens=cached or 0),
        completion_tokens_details=CompletionTokensDetails(
            reasoning_tokens=reasoning or 0
        ),
    )


def responses_to_chat_response(
    data: dict[str, Any], model: str | None = None
) -> dict[str, Any]:
    """Convert a non-streaming Responses API body to a chat completion body.

    Raises:
        pydantic.ValidationError: If ``data`` is not a Responses object
    """
    response = ResponseObject.model_validate(data)

    text_parts: list[str] = []
    tool_calls: list[ToolCall] = []
    for item in response.output:
        if item.type == "message":
            text_parts.append(item.text())
        elif item.type == "function_call":
            tool_calls.append(
                ToolCall(
                    id=item.call_id or item.id or "",
                    function=FunctionCall(
                        name=item.name or "", arguments=item.arguments or ""
                    ),
                )
            )

    text = "".join(text_parts)
    message = ResponseMessage(
        content=text if text or not tool_calls else None,
        tool_calls=tool_calls or None,
    )
    completion = ChatCompletionResponse(
        id=new_completion_id(),
        created=response.created_at or int(time.time()),
        model=response.model or model,
        choices=[
            Choice(index=0, message=message, finish_reason=finish_reason_for(response))
        ],
        usage=convert_responses_usage(response.usage),
    )

    logger.debug(
        "responses_response_converted",
        response_id=response.id,
        output_items=len(response.output),
        tool_calls=len(tool_calls),
        finish_reason=completion.choices[0].finish_reason,
    )
    return completion.to_wire()

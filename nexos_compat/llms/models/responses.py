"""Responses API ("codex") wire models read from the gateway.

All models allow extra fields; only the attributes the converter relies on
are declared.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _ResponsesModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class InputTokensDetails(_ResponsesModel):
    cached_tokens: int | None = None


class OutputTokensDetails(_ResponsesModel):
    reasoning_tokens: int | None = None


class ResponseUsage(_ResponsesModel):
    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None
    input_tokens_details: InputTokensDetails | None = None
    output_tokens_details: OutputTokensDetails | None = None


class ResponseOutputItem(_ResponsesModel):
    """One item of ``response.output`` (message, function_call, reasoning, ...)."""

    type: str | None = None
    id: str | None = None
    role: str | None = None
    content: list[dict[str, Any]] | None = None
    call_id: str | None = None
    name: str | None = None
    arguments: str | None = None

    def text(self) -> str:
        """Joined text of the item's content parts."""
        return "".join(
            part.get("text") or ""
            for part in self.content or []
            if isinstance(part, dict)
        )


class ResponseObject(_ResponsesModel):
    id: str | None = None
    model: str | None = None
    created_at: int | None = None
    output: list[ResponseOutputItem] = Field(default_factory=list)
    usage: ResponseUsage | None = None

    def has_function_calls(self) -> bool:
        return any(item.type == "function_call" for item in self.output)


class ResponseStreamEvent(_ResponsesModel):
    """A single decoded ``data:`` payload of a Responses event stream."""

    type: str | None = None
    item: ResponseOutputItem | None = None
    item_id: str | None = None
    output_index: int | None = None
    delta: str | None = None
    response: ResponseObject | None = None

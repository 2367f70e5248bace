"""Chat Completions wire models emitted towards the caller.

Models are dumped with ``exclude_unset=True`` so only fields that were
explicitly set reach the wire; ``finish_reason=None`` must therefore be
passed explicitly to serialize as ``null``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class PromptTokensDetails(BaseModel):
    cached_tokens: int = 0


class CompletionTokensDetails(BaseModel):
    reasoning_tokens: int = 0


class CompletionUsage(BaseModel):
    """Token usage in Chat Completions shape."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    prompt_tokens_details: PromptTokensDetails | None = None
    completion_tokens_details: CompletionTokensDetails | None = None


class DeltaFunction(BaseModel):
    name: str | None = None
    arguments: str | None = None


class DeltaToolCall(BaseModel):
    """Tool call fragment inside a streaming delta."""

    index: int
    id: str | None = None
    type: Literal["function"] | None = None
    function: DeltaFunction | None = None


class ChoiceDelta(BaseModel):
    role: Literal["assistant"] | None = None
    content: str | None = None
    tool_calls: list[DeltaToolCall] | None = None


class ChunkChoice(BaseModel):
    index: int = 0
    delta: ChoiceDelta = Field(default_factory=ChoiceDelta)
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """Streaming chat completion chunk."""

    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int
    model: str | None = None
    choices: list[ChunkChoice]
    usage: CompletionUsage | None = None

    def to_wire(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        data.setdefault("object", self.object)
        return data


class FunctionCall(BaseModel):
    name: str
    arguments: str


class ToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class ResponseMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str | None = None
    tool_calls: list[ToolCall] | None = None


class Choice(BaseModel):
    index: int = 0
    message: ResponseMessage
    finish_reason: str | None = None


class ChatCompletionResponse(BaseModel):
    """Non-streaming chat completion response."""

    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str | None = None
    choices: list[Choice]
    usage: CompletionUsage | None = None

    def to_wire(self) -> dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        # content is always present, null when the model only called tools
        for choice, model_choice in zip(data["choices"], self.choices, strict=True):
            choice["message"]["content"] = model_choice.message.content
            choice["finish_reason"] = model_choice.finish_reason
        return data

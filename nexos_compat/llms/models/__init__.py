from .openai import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    Choice,
    ChoiceDelta,
    ChunkChoice,
    CompletionTokensDetails,
    CompletionUsage,
    DeltaFunction,
    DeltaToolCall,
    FunctionCall,
    PromptTokensDetails,
    ResponseMessage,
    ToolCall,
)
from .responses import (
    InputTokensDetails,
    OutputTokensDetails,
    ResponseObject,
    ResponseOutputItem,
    ResponseStreamEvent,
    ResponseUsage,
)


__all__ = [
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "Choice",
    "ChoiceDelta",
    "ChunkChoice",
    "CompletionTokensDetails",
    "CompletionUsage",
    "DeltaFunction",
    "DeltaToolCall",
    "FunctionCall",
    "InputTokensDetails",
    "OutputTokensDetails",
    "PromptTokensDetails",
    "ResponseMessage",
    "ResponseObject",
    "ResponseOutputItem",
    "ResponseStreamEvent",
    "ResponseUsage",
    "ToolCall",
]

"""Bidirectional conversion between Chat Completions and the Responses API."""

from .request import chat_to_responses_request, rewrite_responses_path
from .response import convert_responses_usage, responses_to_chat_response
from .stream import ResponsesStreamConverter, parse_event_segment


__all__ = [
    "ResponsesStreamConverter",
    "chat_to_responses_request",
    "convert_responses_usage",
    "parse_event_segment",
    "responses_to_chat_response",
    "rewrite_responses_path",
]

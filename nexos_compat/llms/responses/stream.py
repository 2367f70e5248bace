"""Streaming Responses API -> Chat Completions chunk conversion."""

from __future__ import annotations

import json
import time
from typing import Any

import structlog
from pydantic import ValidationError

from nexos_compat.config.constants import (
    SSE_DATA_PREFIX,
    SSE_DONE,
    SSE_DONE_RECORD,
    SSE_RECORD_SEPARATOR,
)
from nexos_compat.llms.models import (
    ChatCompletionChunk,
    ChoiceDelta,
    ChunkChoice,
    DeltaFunction,
    DeltaToolCall,
    ResponseOutputItem,
    ResponseStreamEvent,
)

from .response import convert_responses_usage, finish_reason_for, new_completion_id


logger = structlog.get_logger(__name__)


def _decode_payload(payload: str) -> ResponseStreamEvent | None:
    payload = payload.strip()
    if not payload or payload == SSE_DONE:
        return None
    try:
        data = json.loads(payload)
        if not isinstance(data, dict):
            return None
        return ResponseStreamEvent.model_validate(data)
    except (json.JSONDecodeError, ValidationError):
        return None


def parse_event_segment(segment: str) -> ResponseStreamEvent | None:
    """Decode one SSE record; unparsable records and ``[DONE]`` give None."""
    data_lines = [
        line[len(SSE_DATA_PREFIX) :]
        for line in segment.split("\n")
        if line.startswith(SSE_DATA_PREFIX)
    ]
    if not data_lines:
        return None
    return _decode_payload("".join(data_lines))


class ResponsesStreamConverter:
    """Reassemble a Responses event stream into Chat Completions chunks.

    One instance per stream. ``push`` accepts arbitrary text fragments and
    returns the complete SSE records ready to send; ``flush`` is called once
    at end of stream. Tool call indices are assigned in first-seen order and
    never change for the lifetime of the instance.
    """

    def __init__(
        self,
        request_id: str | None = None,
        model: str | None = None,
        created: int | None = None,
    ) -> None:
        self.request_id = request_id or new_completion_id()
        self.model = model
        self.created = created if created is not None else int(time.time())
        self.role_sent = False
        self.tool_call_indices: dict[str, int] = {}
        self.next_tool_call_index = 0
        self.buffer = ""
        self.done_sent = False
        self.event_count = 0

    def push(self, text: str) -> list[str]:
        """Consume a text fragment and return the records it completes."""
        self.buffer += text.replace("\r\n", "\n")
        segments = self.buffer.split(SSE_RECORD_SEPARATOR)
        self.buffer = segments.pop()

        records: list[str] = []
        for segment in segments:
            event = parse_event_segment(segment)
            if event is not None:
                records.extend(self._handle_event(event))
        return records

    def flush(self) -> list[str]:
        """Finish the stream.

        A trailing ``response.completed`` left without its record separator is
        still honoured; anything else in the tail is dropped. The terminal
        sentinel is emitted if it has not been yet.
        """
        records: list[str] = []
        if self.buffer.strip():
            for line in self.buffer.split("\n"):
                if not line.startswith(SSE_DATA_PREFIX):
                    continue
                event = _decode_payload(line[len(SSE_DATA_PREFIX) :])
                if event is not None and event.type == "response.completed":
                    records.extend(self._handle_event(event))
        self.buffer = ""

        if not self.done_sent:
            records.append(SSE_DONE_RECORD)
            self.done_sent = True

        logger.debug(
            "responses_stream_conversion_completed",
            request_id=self.request_id,
            total_events=self.event_count,
            tool_calls=self.next_tool_call_index,
        )
        return records

    def _chunk(
        self,
        delta: ChoiceDelta,
        finish_reason: str | None = None,
        usage: Any = None,
    ) -> str:
        fields: dict[str, Any] = {
            "id": self.request_id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [
                ChunkChoice(index=0, delta=delta, finish_reason=finish_reason)
            ],
        }
        if usage is not None:
            fields["usage"] = usage
        chunk = ChatCompletionChunk(**fields)
        return SSE_DATA_PREFIX + json.dumps(chunk.to_wire()) + SSE_RECORD_SEPARATOR

    def _announce_role(self) -> list[str]:
        if self.role_sent:
            return []
        self.role_sent = True
        return [self._chunk(ChoiceDelta(role="assistant", content=""))]

    def _handle_event(self, event: ResponseStreamEvent) -> list[str]:
        if self.done_sent:
            return []
        self.event_count += 1
        event_type = event.type
        item = event.item

        if event_type == "response.output_item.added" and item is not None:
            if item.type == "message":
                return self._announce_role()
            if item.type == "function_call":
                return self._start_tool_call(item)
            return []

        if event_type == "response.output_text.delta":
            records = self._announce_role()
            records.append(self._chunk(ChoiceDelta(content=event.delta or "")))
            return records

        if event_type == "response.function_call_arguments.delta":
            index = self.tool_call_indices.get(event.item_id or "", 0)
            return [
                self._chunk(
                    ChoiceDelta(
                        tool_calls=[
                            DeltaToolCall(
                                index=index,
                                function=DeltaFunction(arguments=event.delta or ""),
                            )
                        ]
                    )
                )
            ]

        if event_type == "response.completed":
            return self._complete(event)

        logger.debug("responses_stream_event_ignored", event_type=event_type)
        return []

    def _start_tool_call(self, item: ResponseOutputItem) -> list[str]:
        key = item.id or item.call_id or ""
        if key in self.tool_call_indices:
            # already announced; its index is fixed for the rest of the stream
            logger.debug("responses_stream_tool_call_repeated", item_id=key)
            return []
        index = self.next_tool_call_index
        self.next_tool_call_index += 1
        self.tool_call_indices[key] = index

        logger.debug(
            "responses_stream_tool_call_started",
            index=index,
            call_id=item.call_id,
            name=item.name,
        )
        return [
            self._chunk(
                ChoiceDelta(
                    tool_calls=[
                        DeltaToolCall(
                            index=index,
                            id=item.call_id,
                            type="function",
                            function=DeltaFunction(name=item.name, arguments=""),
                        )
                    ]
                )
            )
        ]

    def _complete(self, event: ResponseStreamEvent) -> list[str]:
        response = event.response
        finish_reason = finish_reason_for(response)
        usage = convert_responses_usage(
            response.usage if response is not None else None
        )
        self.done_sent = True
        return [
            self._chunk(ChoiceDelta(), finish_reason=finish_reason, usage=usage),
            SSE_DONE_RECORD,
        ]

"""HTTPX transport that makes the gateway's providers look like one OpenAI API."""

from __future__ import annotations

import codecs
import json
from collections.abc import AsyncIterator, Callable
from types import TracebackType
from typing import cast

import httpx
import structlog
from pydantic import ValidationError

from nexos_compat.dispatch import RequestPlan, parse_body, plan_request
from nexos_compat.llms.responses import (
    ResponsesStreamConverter,
    responses_to_chat_response,
    rewrite_responses_path,
)
from nexos_compat.streaming import StreamFix, StreamRewriter


logger = structlog.get_logger(__name__)


# Headers that no longer describe a body once it has been rewritten
STALE_BODY_HEADERS = frozenset({"content-length", "content-encoding", "transfer-encoding"})


class RewrittenResponseStream(httpx.AsyncByteStream):
    """Feeds a response stream through a text processor chunk by chunk."""

    def __init__(
        self,
        stream: httpx.AsyncByteStream,
        on_text: Callable[[str], str],
        on_end: Callable[[], str],
    ) -> None:
        self.stream = stream
        self.on_text = on_text
        self.on_end = on_end
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self.stream:
            text = self._decoder.decode(chunk)
            if not text:
                continue
            out = self.on_text(text)
            if out:
                yield out.encode("utf-8")

        out = self.on_text(self._decoder.decode(b"", final=True)) + self.on_end()
        if out:
            yield out.encode("utf-8")

    async def aclose(self) -> None:
        """Close the underlying stream."""
        await self.stream.aclose()


def _fresh_headers(headers: httpx.Headers) -> list[tuple[str, str]]:
    return [
        (key, value)
        for key, value in headers.multi_items()
        if key.lower() not in STALE_BODY_HEADERS
    ]


class NexosTransport(httpx.AsyncBaseTransport):
    """Wraps an HTTPX transport and normalizes provider differences.

    Requests are classified by model, rewritten for the detected provider
    family (or converted to the Responses API for codex models) and the
    responses are post-processed so the caller always sees Chat Completions
    bodies and chunks. Errors raised by the wrapped transport and non-2xx
    responses are passed through untouched.
    """

    def __init__(self, wrapped_transport: httpx.AsyncBaseTransport | None = None):
        self.wrapped = wrapped_transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        content = await request.aread()
        plan = plan_request(parse_body(content))

        outbound = self._build_outbound_request(request, plan)
        response = await self.wrapped.handle_async_request(outbound)

        if not response.is_success:
            logger.debug(
                "upstream_error_passed_through",
                status_code=response.status_code,
                fix=plan.fix.value,
            )
            return response

        return await self._process_response(response, plan)

    def _build_outbound_request(
        self, request: httpx.Request, plan: RequestPlan
    ) -> httpx.Request:
        if not plan.rewrite_body:
            return request

        url = request.url
        if plan.is_codex:
            url = url.copy_with(path=rewrite_responses_path(url.path))

        headers = httpx.Headers(
            [(k, v) for k, v in request.headers.multi_items() if k.lower() != "content-length"]
        )
        if plan.is_codex or (plan.stream and plan.fix is not StreamFix.NONE):
            # the body is rewritten as text, keep it uncompressed
            headers["accept-encoding"] = "identity"

        logger.debug(
            "outbound_request_rewritten",
            url=str(url),
            fix=plan.fix.value,
            stream=plan.stream,
        )
        return httpx.Request(
            request.method,
            url,
            headers=headers,
            content=json.dumps(plan.body).encode("utf-8"),
            extensions=request.extensions,
        )

    async def _process_response(
        self, response: httpx.Response, plan: RequestPlan
    ) -> httpx.Response:
        if plan.is_codex:
            if plan.stream:
                converter = ResponsesStreamConverter(model=plan.model)
                return self._wrap_stream(
                    response,
                    lambda text: "".join(converter.push(text)),
                    lambda: "".join(converter.flush()),
                )
            return await self._convert_codex_body(response, plan)

        if plan.stream and plan.fix is not StreamFix.NONE:
            rewriter = StreamRewriter(plan.fix)
            return self._wrap_stream(response, rewriter.push, rewriter.flush)

        return response

    def _wrap_stream(
        self,
        response: httpx.Response,
        on_text: Callable[[str], str],
        on_end: Callable[[], str],
    ) -> httpx.Response:
        stream = cast(httpx.AsyncByteStream, response.stream)
        return httpx.Response(
            status_code=response.status_code,
            headers=_fresh_headers(response.headers),
            stream=RewrittenResponseStream(stream, on_text, on_end),
            extensions=response.extensions,
        )

    async def _convert_codex_body(
        self, response: httpx.Response, plan: RequestPlan
    ) -> httpx.Response:
        raw = await response.aread()
        try:
            converted = responses_to_chat_response(json.loads(raw), model=plan.model)
            body = json.dumps(converted).encode("utf-8")
        except (ValueError, ValidationError, TypeError) as e:
            logger.warning(
                "codex_response_conversion_failed",
                error=str(e),
                status_code=response.status_code,
            )
            body = raw

        return httpx.Response(
            status_code=response.status_code,
            headers=_fresh_headers(response.headers),
            content=body,
            extensions=response.extensions,
        )

    async def aclose(self) -> None:
        """Close the wrapped transport."""
        await self.wrapped.aclose()

    async def __aenter__(self) -> NexosTransport:
        """Enter async context."""
        await self.wrapped.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        """Exit async context."""
        await self.wrapped.__aexit__(exc_type, exc_value, traceback)

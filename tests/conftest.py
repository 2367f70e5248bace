"""Shared test fixtures for nexos_compat tests.

Upstream providers are simulated with ``httpx.MockTransport``; everything
else runs on the real components.
"""

import json
from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any

import httpx
import pytest

from nexos_compat.config.settings import Settings, get_settings
from nexos_compat.core.logging import setup_logging


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom settings."""
    config.option.asyncio_mode = "auto"
    setup_logging(json_logs=False, log_level_name="DEBUG")


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate tests from the developer's NEXOS_* environment."""
    for key in ("NEXOS_API_KEY", "NEXOS_BASE_URL", "NEXOS_LOGGING__LEVEL"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(base_url="https://gateway.test/v1", api_key="test-key")


def sse(*payloads: Any, done: bool = True) -> str:
    """Build an SSE body from JSON payloads."""
    records = [f"data: {json.dumps(p)}\n\n" for p in payloads]
    if done:
        records.append("data: [DONE]\n\n")
    return "".join(records)


def parse_sse(text: str) -> list[Any]:
    """Decode every ``data:`` record; ``[DONE]`` is kept as the string."""
    out: list[Any] = []
    for record in text.split("\n\n"):
        record = record.strip()
        if not record.startswith("data: "):
            continue
        payload = record[6:]
        out.append(payload if payload == "[DONE]" else json.loads(payload))
    return out


class ChunkedStream(httpx.AsyncByteStream):
    """Async byte stream that yields pre-split chunks, like a slow network."""

    def __init__(self, chunks: list[bytes]) -> None:
        self.chunks = chunks
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class RecordingHandler:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def last_json(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def recording_handler() -> Callable[..., RecordingHandler]:
    def factory(respond: Callable[[httpx.Request], httpx.Response]) -> RecordingHandler:
        return RecordingHandler(respond)

    return factory

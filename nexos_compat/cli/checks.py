"""Model listing and smoke checks run against the gateway."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from nexos_compat.config.constants import CHAT_COMPLETIONS_PATH, MODELS_PATH
from nexos_compat.core.errors import ModelListError


logger = structlog.get_logger(__name__)


SIMPLE_PROMPT = "Say just the word hello"
TOOL_PROMPT = "What is the weather in Paris right now? Use the get_weather tool."
EXCLUDED_MODEL_MARKERS = ("no pii", "embedding")

# A 2xx body that is not a chat completion surfaces as one of these
MALFORMED_RESPONSE_ERRORS = (KeyError, IndexError, TypeError, AttributeError, ValueError)

WEATHER_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "get_weather",
        "description": "Get the current weather for a city",
        "parameters": {
            "type": "object",
            "properties": {"city": {"$ref": "#/$defs/City"}},
            "required": ["city"],
            "$defs": {
                "City": {"type": "string", "description": "City name"},
            },
        },
    },
}


@dataclass
class CheckOutcome:
    ok: bool
    error: str | None = None
    output: str | None = None


@dataclass
class ModelCheckResult:
    model: str
    simple: CheckOutcome
    tools: CheckOutcome

    @property
    def note(self) -> str:
        failed = self.simple if not self.simple.ok else self.tools
        if failed.ok or not failed.error:
            return ""
        return failed.error.replace("|", "\\|")[:60]


@dataclass
class CompletionResult:
    content: str = ""
    finish_reason: str | None = None
    tool_calls: list[dict[str, Any]] = field(default_factory=list)


async def fetch_models(client: httpx.AsyncClient) -> list[str]:
    """Return the sorted ids of every model the gateway lists.

    Raises:
        ModelListError: If the gateway answers with a non-2xx status
    """
    response = await client.get(MODELS_PATH)
    if not response.is_success:
        raise ModelListError(response.status_code, response.reason_phrase, response.text)

    data = response.json()
    entries = data.get("data") or data.get("models") or []
    ids = [entry.get("id") or entry.get("name") or "" for entry in entries]
    return sorted(ids)


def filter_checkable_models(models: list[str]) -> list[str]:
    return [
        m
        for m in models
        if not any(marker in m.lower() for marker in EXCLUDED_MODEL_MARKERS)
    ]


def _merge_tool_call_delta(calls: list[dict[str, Any]], delta: dict[str, Any]) -> None:
    index = delta.get("index", 0)
    while len(calls) <= index:
        calls.append({"id": None, "function": {"name": "", "arguments": ""}})
    call = calls[index]
    if delta.get("id"):
        call["id"] = delta["id"]
    function = delta.get("function") or {}
    if function.get("name"):
        call["function"]["name"] += function["name"]
    if function.get("arguments"):
        call["function"]["arguments"] += function["arguments"]


async def complete(
    client: httpx.AsyncClient, body: dict[str, Any], stream: bool = False
) -> CompletionResult:
    """Send one chat completion and collect the assistant turn."""
    if not stream:
        response = await client.post(CHAT_COMPLETIONS_PATH, json=body)
        response.raise_for_status()
        choice = response.json()["choices"][0]
        message = choice.get("message") or {}
        return CompletionResult(
            content=message.get("content") or "",
            finish_reason=choice.get("finish_reason"),
            tool_calls=message.get("tool_calls") or [],
        )

    result = CompletionResult()
    async with client.stream(
        "POST", CHAT_COMPLETIONS_PATH, json={**body, "stream": True}
    ) as response:
        response.raise_for_status()
        async for line in response.aiter_lines():
            if not line.startswith("data: ") or line == "data: [DONE]":
                continue
            try:
                chunk = json.loads(line[6:])
            except json.JSONDecodeError:
                continue
            if not isinstance(chunk, dict):
                continue
            for choice in chunk.get("choices") or []:
                delta = choice.get("delta") or {}
                result.content += delta.get("content") or ""
                for tool_delta in delta.get("tool_calls") or []:
                    _merge_tool_call_delta(result.tool_calls, tool_delta)
                if choice.get("finish_reason"):
                    result.finish_reason = choice["finish_reason"]
    return result


def _malformed(model: str, error: Exception) -> CheckOutcome:
    logger.warning(
        "model_check_malformed_response",
        model=model,
        error_type=type(error).__name__,
        error=str(error),
    )
    return CheckOutcome(ok=False, error=f"malformed response: {error!r}"[:80])


async def check_simple(
    client: httpx.AsyncClient, model: str, stream: bool = False
) -> CheckOutcome:
    body = {"model": model, "messages": [{"role": "user", "content": SIMPLE_PROMPT}]}
    try:
        result = await complete(client, body, stream=stream)
    except httpx.HTTPError as e:
        return CheckOutcome(ok=False, error=str(e)[:80])
    except MALFORMED_RESPONSE_ERRORS as e:
        return _malformed(model, e)

    if "hello" in result.content.lower():
        return CheckOutcome(ok=True, output=result.content)
    return CheckOutcome(ok=False, error="unexpected answer", output=result.content)


async def check_tool_call(
    client: httpx.AsyncClient, model: str, stream: bool = False
) -> CheckOutcome:
    body = {
        "model": model,
        "messages": [{"role": "user", "content": TOOL_PROMPT}],
        "tools": [WEATHER_TOOL],
    }
    try:
        result = await complete(client, body, stream=stream)
    except httpx.HTTPError as e:
        return CheckOutcome(ok=False, error=str(e)[:80])
    except MALFORMED_RESPONSE_ERRORS as e:
        return _malformed(model, e)

    output = json.dumps(result.tool_calls) if result.tool_calls else result.content
    names = [call.get("function", {}).get("name") for call in result.tool_calls]
    if result.finish_reason != "tool_calls":
        return CheckOutcome(
            ok=False,
            error=f"finish_reason was {result.finish_reason!r}",
            output=output,
        )
    if "get_weather" not in names:
        return CheckOutcome(ok=False, error="tool not used correctly", output=output)
    return CheckOutcome(ok=True, output=output)


async def check_model(
    client: httpx.AsyncClient, model: str, stream: bool = False
) -> ModelCheckResult:
    simple = await check_simple(client, model, stream=stream)
    tools = await check_tool_call(client, model, stream=stream)
    logger.info(
        "model_checked",
        model=model,
        simple_ok=simple.ok,
        tools_ok=tools.ok,
    )
    return ModelCheckResult(model=model, simple=simple, tools=tools)


def render_markdown(results: list[ModelCheckResult], now: datetime | None = None) -> str:
    """Render check results as a Markdown report."""
    now = now or datetime.now(UTC)
    total = len(results)
    simple_ok = sum(1 for r in results if r.simple.ok)
    tools_ok = sum(1 for r in results if r.tools.ok)

    lines = [
        "# Model Compatibility Check",
        "",
        f"Generated: {now.strftime('%Y-%m-%d %H:%M')} UTC",
        "",
        "## Summary",
        "",
        "| Test | Working | Broken | Total |",
        "|------|---------|--------|-------|",
        f"| Simple prompts | {simple_ok} | {total - simple_ok} | {total} |",
        f"| Tool calling | {tools_ok} | {total - tools_ok} | {total} |",
        "",
        "## Results",
        "",
        "| Model | Simple | Tools | Notes |",
        "|-------|--------|-------|-------|",
    ]
    details: list[str] = []
    for r in results:
        simple_icon = "✅" if r.simple.ok else "❌"
        tools_icon = "✅" if r.tools.ok else "❌"
        lines.append(f"| {r.model} | {simple_icon} | {tools_icon} | {r.note} |")
        if not r.tools.ok and r.tools.output:
            details.extend(
                [
                    "",
                    f"<details><summary>{r.model} tools output</summary>",
                    "",
                    "```",
                    r.tools.output,
                    "```",
                    "</details>",
                ]
            )

    return "\n".join(lines + details) + "\n"

from __future__ import annotations

from typing import Any

from nexos_compat.llms.schema_refs import inline_tool_schemas

from .thinking import normalize_thinking


def normalize_gemini_request(body: dict[str, Any]) -> dict[str, Any]:
    """Inline tool schema references and normalize the thinking block."""
    if body.get("tools"):
        body = inline_tool_schemas(body)
    return normalize_thinking(body)

from __future__ import annotations

from typing import Any


def normalize_codestral_request(body: dict[str, Any]) -> dict[str, Any]:
    """Default an unset ``strict`` flag on function tools to ``False``.

    Codestral rejects ``strict: null``; explicit booleans are kept.
    """
    tools = body.get("tools")
    if not isinstance(tools, list) or not tools:
        return body

    new_tools = []
    for tool in tools:
        function = tool.get("function") if isinstance(tool, dict) else None
        if not isinstance(function, dict) or tool.get("type") != "function":
            new_tools.append(tool)
            continue
        if function.get("strict") is None:
            function = {**function, "strict": False}
        new_tools.append({**tool, "function": function})

    return {**body, "tools": new_tools}

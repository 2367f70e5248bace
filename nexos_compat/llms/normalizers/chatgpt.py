from __future__ import annotations

from typing import Any

from nexos_compat.config.constants import REASONING_EFFORT_NONE


def normalize_chatgpt_request(body: dict[str, Any]) -> dict[str, Any]:
    """Drop ``reasoning_effort: "none"``, which the ChatGPT backend rejects."""
    if body.get("reasoning_effort") == REASONING_EFFORT_NONE:
        return {k: v for k, v in body.items() if k != "reasoning_effort"}
    return body

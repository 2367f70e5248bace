"""Reasoning ("thinking") configuration normalization shared by Gemini and Claude."""

from __future__ import annotations

from typing import Any

import structlog

from nexos_compat.config.constants import THINKING_OUTPUT_HEADROOM


logger = structlog.get_logger(__name__)


MAX_TOKEN_FIELDS = ("max_tokens", "max_completion_tokens")


def has_thinking(body: dict[str, Any]) -> bool:
    return bool(body.get("thinking"))


def normalize_thinking(body: dict[str, Any]) -> dict[str, Any]:
    """Normalize the ``thinking`` block of a request body.

    - absent: body returned as is
    - ``{"type": "disabled"}``: the block is removed
    - otherwise ``budgetTokens`` becomes ``budget_tokens`` and any output
      ceiling at or below the budget is raised to budget plus
      ``THINKING_OUTPUT_HEADROOM``
    """
    thinking = body.get("thinking")
    if not thinking or not isinstance(thinking, dict):
        return body

    if thinking.get("type") == "disabled":
        result = {k: v for k, v in body.items() if k != "thinking"}
        logger.debug("thinking_disabled_block_removed")
        return result

    thinking = dict(thinking)
    if "budgetTokens" in thinking:
        budget_camel = thinking.pop("budgetTokens")
        thinking.setdefault("budget_tokens", budget_camel)

    result = {**body, "thinking": thinking}

    budget = thinking.get("budget_tokens")
    if isinstance(budget, int) and budget:
        for field in MAX_TOKEN_FIELDS:
            ceiling = result.get(field)
            if isinstance(ceiling, int) and ceiling and ceiling <= budget:
                result[field] = budget + THINKING_OUTPUT_HEADROOM
                logger.debug(
                    "thinking_output_ceiling_raised",
                    field=field,
                    budget_tokens=budget,
                    previous=ceiling,
                    raised_to=result[field],
                )

    return result

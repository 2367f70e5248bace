"""Per-request planning: family detection, body rewriting and fix selection."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from nexos_compat.llms.classifier import ProviderFamily, matching_families
from nexos_compat.llms.normalizers import has_thinking, normalize_request
from nexos_compat.llms.responses import chat_to_responses_request
from nexos_compat.streaming import StreamFix


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RequestPlan:
    """Everything decided about one request before it is sent."""

    families: frozenset[ProviderFamily]
    fix: StreamFix
    stream: bool
    body: dict[str, Any] = field(default_factory=dict)
    rewrite_body: bool = False

    @property
    def is_codex(self) -> bool:
        return self.fix is StreamFix.CODEX

    @property
    def model(self) -> Any:
        return self.body.get("model")


def parse_body(content: bytes | str | None) -> dict[str, Any]:
    """Decode a JSON request body; anything malformed becomes ``{}``."""
    if not content:
        return {}
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.debug("request_body_not_json")
        return {}
    return data if isinstance(data, dict) else {}


def select_fix(families: frozenset[ProviderFamily], had_thinking: bool) -> StreamFix:
    if ProviderFamily.CODEX in families:
        return StreamFix.CODEX
    gemini = ProviderFamily.GEMINI in families
    claude = ProviderFamily.CLAUDE in families
    if gemini and claude:
        return StreamFix.COMPOSITE
    if gemini:
        return StreamFix.GEMINI
    if claude:
        return StreamFix.CLAUDE
    if had_thinking:
        return StreamFix.COMPOSITE
    return StreamFix.NONE


def plan_request(body: dict[str, Any]) -> RequestPlan:
    """Classify the model and build the outbound body.

    Codex models get a full Responses API conversion that bypasses every
    other normalizer; all other families are normalized in fixed order.
    """
    families = matching_families(body.get("model"))
    fix = select_fix(families, has_thinking(body))
    stream = bool(body.get("stream"))

    if fix is StreamFix.CODEX:
        new_body = chat_to_responses_request(body)
    else:
        new_body = normalize_request(body, families)

    plan = RequestPlan(
        families=families,
        fix=fix,
        stream=stream,
        body=new_body,
        rewrite_body=bool(families),
    )
    logger.debug(
        "request_planned",
        model=body.get("model"),
        families=sorted(f.value for f in families),
        fix=fix.value,
        stream=stream,
    )
    return plan

"""Per-family request body normalizers.

Each normalizer takes a chat-completion request body and returns a new one;
inputs are never mutated. ``normalize_request`` composes the ones selected by
the model's families in a fixed order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from nexos_compat.llms.classifier import ProviderFamily

from .chatgpt import normalize_chatgpt_request
from .claude import apply_claude_cache_control, normalize_claude_thinking
from .codestral import normalize_codestral_request
from .gemini import normalize_gemini_request
from .thinking import has_thinking, normalize_thinking


Normalizer = Callable[[dict[str, Any]], dict[str, Any]]

NORMALIZER_ORDER: tuple[tuple[ProviderFamily, Normalizer], ...] = (
    (ProviderFamily.GEMINI, normalize_gemini_request),
    (ProviderFamily.CODESTRAL, normalize_codestral_request),
    (ProviderFamily.CLAUDE, apply_claude_cache_control),
    (ProviderFamily.CLAUDE, normalize_claude_thinking),
    (ProviderFamily.CHATGPT, normalize_chatgpt_request),
)


def normalize_request(
    body: dict[str, Any], families: Iterable[ProviderFamily]
) -> dict[str, Any]:
    """Apply the normalizers of ``families`` in Gemini, Codestral,
    Claude-cache, Claude-thinking, ChatGPT order."""
    selected = frozenset(families)
    for family, normalizer in NORMALIZER_ORDER:
        if family in selected:
            body = normalizer(body)
    return body


__all__ = [
    "NORMALIZER_ORDER",
    "apply_claude_cache_control",
    "has_thinking",
    "normalize_chatgpt_request",
    "normalize_claude_thinking",
    "normalize_codestral_request",
    "normalize_gemini_request",
    "normalize_request",
    "normalize_thinking",
]

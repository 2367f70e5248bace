"""Provider family detection from model identifiers."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ProviderFamily(str, Enum):
    """Provider-specific behavior profiles reachable through the gateway."""

    CODEX = "codex"
    GEMINI = "gemini"
    CODESTRAL = "codestral"
    CLAUDE = "claude"
    CHATGPT = "chatgpt"
    NONE = "none"


# Precedence order; codex must come first since codex models also contain "gpt"
FAMILY_MARKERS: tuple[tuple[ProviderFamily, str], ...] = (
    (ProviderFamily.CODEX, "codex"),
    (ProviderFamily.GEMINI, "gemini"),
    (ProviderFamily.CODESTRAL, "codestral"),
    (ProviderFamily.CLAUDE, "claude"),
    (ProviderFamily.CHATGPT, "gpt"),
)


def matching_families(model: Any) -> frozenset[ProviderFamily]:
    """Return every family whose marker occurs in ``model`` (case-insensitive)."""
    if not isinstance(model, str):
        return frozenset()
    lowered = model.lower()
    return frozenset(
        family for family, marker in FAMILY_MARKERS if marker in lowered
    )


def classify_model(model: Any) -> ProviderFamily:
    """Return the highest-precedence family for ``model``, or ``NONE``."""
    families = matching_families(model)
    for family, _marker in FAMILY_MARKERS:
        if family in families:
            return family
    return ProviderFamily.NONE


def is_codex_model(model: Any) -> bool:
    return ProviderFamily.CODEX in matching_families(model)

"""Inline local JSON-Schema references in tool parameter schemas.

Some providers reject ``$ref`` pointers into ``$defs``/``definitions``. The
helpers here expand those pointers in place so every tool schema is
self-contained.
"""

from __future__ import annotations

from typing import Any

import structlog


logger = structlog.get_logger(__name__)


REF_PREFIXES = ("#/$defs/", "#/definitions/")
STRIPPED_KEYS = frozenset({"$defs", "definitions", "$ref"})


def _reference_of(node: dict[str, Any]) -> str | None:
    ref = node.get("$ref") or node.get("ref")
    return ref if isinstance(ref, str) and ref else None


def _definition_name(ref: str) -> str:
    for prefix in REF_PREFIXES:
        if ref.startswith(prefix):
            return ref[len(prefix) :]
    return ref


def resolve_refs(
    schema: Any,
    defs: dict[str, Any] | None,
    _expanding: frozenset[str] = frozenset(),
) -> Any:
    """Return a copy of ``schema`` with local references expanded.

    A description or default on the referencing node overrides the one of the
    resolved definition. References to missing definitions, and references
    that would re-enter a definition currently being expanded, are returned
    untouched.

    Args:
        schema: Schema node (any JSON value)
        defs: Definitions map the references point into

    Returns:
        New schema value without ``$defs``/``definitions``/``$ref`` keys
        except on unresolved reference nodes
    """
    if isinstance(schema, list):
        return [resolve_refs(item, defs, _expanding) for item in schema]
    if not isinstance(schema, dict):
        return schema

    ref = _reference_of(schema)
    if ref is not None:
        name = _definition_name(ref)
        definition = (defs or {}).get(name)
        if name in _expanding:
            logger.debug("schema_ref_cycle_detected", ref=ref)
            return dict(schema)
        if definition is None:
            logger.debug("schema_ref_definition_missing", ref=ref)
            return dict(schema)

        resolved = resolve_refs(definition, defs, _expanding | {name})
        merged = dict(resolved) if isinstance(resolved, dict) else resolved
        if isinstance(merged, dict):
            if schema.get("description"):
                merged["description"] = schema["description"]
            if "default" in schema:
                merged["default"] = schema["default"]
        return merged

    result: dict[str, Any] = {}
    for key, value in schema.items():
        if key in STRIPPED_KEYS:
            continue
        # "ref" is only a pointer when it holds a string; a property may be named ref
        if key == "ref" and isinstance(value, str):
            continue
        result[key] = resolve_refs(value, defs, _expanding)
    return result


def inline_tool_schemas(body: dict[str, Any]) -> dict[str, Any]:
    """Expand references in the parameters of every function tool of ``body``."""
    tools = body.get("tools")
    if not isinstance(tools, list) or not tools:
        return body

    new_tools = []
    for tool in tools:
        function = tool.get("function") if isinstance(tool, dict) else None
        if (
            not isinstance(function, dict)
            or tool.get("type") != "function"
            or not isinstance(function.get("parameters"), dict)
        ):
            new_tools.append(tool)
            continue

        params = function["parameters"]
        defs = params.get("$defs") or params.get("definitions") or {}
        new_tools.append(
            {
                **tool,
                "function": {**function, "parameters": resolve_refs(params, defs)},
            }
        )

    return {**body, "tools": new_tools}

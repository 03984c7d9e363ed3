"""JSON-Schema sanitizer for tool parameter definitions.

The strictest validators behind OCI Generative AI (Gemini in particular)
reject schema metadata and several structural constraints.  ``sanitize``
removes them while leaving property *names* alone: a tool may well take
arguments called ``title``, ``default`` or ``format``.
"""

from typing import Any

UNSUPPORTED_KEYWORDS: frozenset[str] = frozenset(
    {
        "$schema",
        "$ref",
        "ref",
        "$defs",
        "definitions",
        "$id",
        "$comment",
        "additionalProperties",
        "propertyNames",
        "title",
        "examples",
        "default",
        "const",
        "minLength",
        "maxLength",
        "minItems",
        "maxItems",
        "exclusiveMinimum",
        "exclusiveMaximum",
    }
)

# Constraint keywords on string nodes that are also common property names.
STRING_CONSTRAINT_KEYWORDS: frozenset[str] = frozenset({"pattern", "format"})


def _is_string_constraint(node: dict[str, Any], key: str, value: Any) -> bool:
    return key in STRING_CONSTRAINT_KEYWORDS and node.get("type") == "string" and isinstance(value, str)


def sanitize(node: Any) -> Any:
    """Return a copy of *node* without keywords the backend rejects.

    Non-container values are returned unchanged and lists are mapped
    element-wise.  The transform is idempotent.

    Example::

        >>> sanitize({"type": "string", "pattern": "^[a-z]+$", "title": "Name"})
        {'type': 'string'}
        >>> sanitize({"type": "object", "properties": {"pattern": {"type": "string"}}})
        {'type': 'object', 'properties': {'pattern': {'type': 'string'}}}
        >>> sanitize({"type": "object", "properties": {"title": {"type": "string", "title": "T"}}})
        {'type': 'object', 'properties': {'title': {'type': 'string'}}}
    """
    if isinstance(node, list):
        return [sanitize(item) for item in node]
    if not isinstance(node, dict):
        return node

    cleaned: dict[str, Any] = {}
    for key, value in node.items():
        if key in UNSUPPORTED_KEYWORDS or _is_string_constraint(node, key, value):
            continue
        if key == "properties" and isinstance(value, dict):
            # Keys here are argument names, not keywords.
            cleaned[key] = {name: sanitize(prop) for name, prop in value.items()}
        else:
            cleaned[key] = sanitize(value)
    return cleaned

"""Response normalizer: OCI ``chatResponse`` dicts to canonical content.

The three wire families answer in different shapes, and individual vendors
add their own irregularities (string content, ``text`` instead of
``content``, tool calls at message level or inside content, empty text
blocks beside tool calls).  Everything here is tolerant: a missing field
yields an empty value, never an exception.
"""

import json
import logging
from typing import Any

from ocigen.core.interface.models import (
    ContentBlock,
    FinishReason,
    GenerateResult,
    ReasoningBlock,
    TextBlock,
    ToolCallBlock,
    Usage,
    generate_id,
)
from ocigen.core.polyfills.capabilities import CapabilityProfile, ModelFamily

logger = logging.getLogger(__name__)

FINISH_REASONS: dict[str, FinishReason] = {
    "MAX_TOKENS": "length",
    "length": "length",
    "COMPLETE": "stop",
    "stop": "stop",
    "STOP": "stop",
    "TOOL_CALL": "tool-calls",
    "tool_calls": "tool-calls",
    "TOOL_USE": "tool-calls",
    "CONTENT_FILTER": "content-filter",
    "content_filter": "content-filter",
    "ERROR_TOXIC": "content-filter",
    "ERROR": "error",
    "ERROR_LIMIT": "error",
    "USER_CANCEL": "other",
}


def map_finish_reason(raw: Any) -> FinishReason:
    """Map a vendor finish code to the canonical value; unknown codes are ``stop``."""
    if not isinstance(raw, str):
        return "stop"
    return FINISH_REASONS.get(raw, "stop")


def unwrap_chat_response(payload: dict[str, Any]) -> dict[str, Any]:
    """Return the ``chatResponse`` object from a full response or ``chatResult``."""
    if "chatResult" in payload and isinstance(payload["chatResult"], dict):
        payload = payload["chatResult"]
    inner = payload.get("chatResponse")
    return inner if isinstance(inner, dict) else payload


def stringify_arguments(arguments: Any) -> str:
    """Tool-call arguments as a JSON string; structured values are serialized."""
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments or {}, separators=(",", ":"))


def parse_usage(usage: Any) -> Usage:
    """Usage from either ``promptTokens``/``completionTokens`` or ``inputTokens``/``outputTokens``."""
    if not isinstance(usage, dict):
        return Usage()
    prompt = usage.get("promptTokens", usage.get("inputTokens"))
    completion = usage.get("completionTokens", usage.get("outputTokens"))
    return Usage.of(prompt, completion, usage.get("totalTokens"))


def tool_call_from(raw: dict[str, Any]) -> ToolCallBlock | None:
    """Build a ``ToolCallBlock`` from any of the tool-call shapes vendors use.

    Accepts flat ``{id, name, arguments}``, OpenAI-style
    ``{id, function: {name, arguments}}`` and Cohere ``{name, parameters}``.
    Entries without a name are skipped.
    """
    function = raw.get("function") if isinstance(raw.get("function"), dict) else {}
    name = raw.get("name") or function.get("name")
    if not name:
        logger.debug("Skipping tool call without a name: %r", raw)
        return None
    if "arguments" in raw:
        arguments = raw["arguments"]
    elif "arguments" in function:
        arguments = function["arguments"]
    else:
        arguments = raw.get("parameters")
    return ToolCallBlock(
        tool_call_id=raw.get("id") or generate_id(),
        tool_name=name,
        input=stringify_arguments(arguments),
    )


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------


def _message_of(response: dict[str, Any], family: ModelFamily) -> dict[str, Any]:
    choices = response.get("choices")
    if family == "generic" and isinstance(choices, list) and choices:
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
    else:
        message = response.get("message")
    return message if isinstance(message, dict) else {}


def _finish_code(response: dict[str, Any]) -> Any:
    choices = response.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        code = choices[0].get("finishReason")
        if code:
            return code
    return response.get("finishReason")


def _is_type(part: dict[str, Any], name: str) -> bool:
    return str(part.get("type", "")).upper() == name


def extract_texts(message: dict[str, Any]) -> list[str]:
    """Non-empty text fragments of *message*, trying each representation in turn.

    Order: content array ``TEXT`` parts, then string ``content``, then
    ``text``.
    """
    content = message.get("content")
    if isinstance(content, list):
        texts = [
            part.get("text")
            for part in content
            if isinstance(part, dict) and _is_type(part, "TEXT")
        ]
        texts = [t for t in texts if isinstance(t, str) and t]
        if texts:
            return texts
    elif isinstance(content, str) and content:
        return [content]
    text = message.get("text")
    return [text] if isinstance(text, str) and text else []


def extract_tool_calls(message: dict[str, Any]) -> list[ToolCallBlock]:
    """Tool calls from content parts, message-level arrays, or a single call object."""
    raw_calls: list[dict[str, Any]] = []

    content = message.get("content")
    if isinstance(content, list):
        raw_calls.extend(p for p in content if isinstance(p, dict) and _is_type(p, "TOOL_CALL"))

    for key in ("toolCalls", "tool_calls", "functionCall", "function_call"):
        value = message.get(key)
        if isinstance(value, list):
            raw_calls.extend(v for v in value if isinstance(v, dict))
        elif isinstance(value, dict):
            raw_calls.append(value)

    calls = [tool_call_from(raw) for raw in raw_calls]
    return [call for call in calls if call is not None]


def extract_reasoning(message: dict[str, Any], family: ModelFamily) -> str:
    """Reasoning text: ``reasoningContent`` (generic), ``THINKING`` parts and ``toolPlan`` (Cohere V2)."""
    pieces: list[str] = []
    reasoning = message.get("reasoningContent")
    if isinstance(reasoning, str) and reasoning:
        pieces.append(reasoning)

    if family == "cohere-v2":
        content = message.get("content")
        if isinstance(content, list):
            for part in content:
                if isinstance(part, dict) and _is_type(part, "THINKING"):
                    text = part.get("thinking") or part.get("text")
                    if isinstance(text, str) and text:
                        pieces.append(text)
        plan = message.get("toolPlan")
        if isinstance(plan, str) and plan:
            pieces.append(plan)
    return "\n".join(pieces)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def normalize(
    chat_response: dict[str, Any],
    family: ModelFamily,
    capabilities: CapabilityProfile,
) -> GenerateResult:
    """Convert a wire response into canonical content, finish reason and usage.

    *chat_response* may be the bare ``chatResponse`` or any envelope around
    it.  If any tool call is present the finish reason is ``tool-calls``
    whatever the backend reported.
    """
    response = unwrap_chat_response(chat_response)
    content: list[ContentBlock] = []

    if family == "cohere":
        text = response.get("text")
        if isinstance(text, str) and text:
            content.append(TextBlock(text=text))
        raw_calls = response.get("toolCalls")
        tool_calls = [
            call
            for call in (tool_call_from(raw) for raw in (raw_calls if isinstance(raw_calls, list) else []))
            if call is not None
        ]
    else:
        message = _message_of(response, family)
        if capabilities.supports_reasoning:
            reasoning = extract_reasoning(message, family)
            if reasoning:
                content.append(ReasoningBlock(text=reasoning))
        content.extend(TextBlock(text=text) for text in extract_texts(message))
        tool_calls = extract_tool_calls(message)

    content.extend(tool_calls)
    finish_reason = "tool-calls" if tool_calls else map_finish_reason(_finish_code(response))

    return GenerateResult(
        content=content,
        finish_reason=finish_reason,
        usage=parse_usage(response.get("usage")),
    )

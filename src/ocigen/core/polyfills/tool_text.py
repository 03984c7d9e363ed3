"""Textual tool-call encoding for models that reject native tool messages.

xAI Grok and Meta Llama on OCI validate message roles and content types:
a ``TOOL`` role or a tool-call object fails the request.  For those models
(and for parallel calls on vendors that only accept one native call per
turn) assistant tool calls are written into the assistant text and tool
results become ordinary user turns, so the transcript still alternates
user / assistant.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ocigen.core.interface.models import CanonicalMessage, ToolCallPart, ToolResultPart

_CALL_TEMPLATE = '[Called tool "{name}" with: {arguments}]'
_RESULT_TEMPLATE = '[Tool result from "{name}": {output}]'


def tool_call_directive(call: ToolCallPart) -> str:
    """Render one tool call as ``[Called tool "<name>" with: <json-args>]``."""
    return _CALL_TEMPLATE.format(name=call.tool_name, arguments=call.arguments_json)


def tool_result_directive(result: ToolResultPart, tool_name: str | None = None) -> str:
    """Render one tool result as ``[Tool result from "<name>": <text>]``.

    *tool_name* wins over the name recorded on the result itself, which
    callers often leave unset.
    """
    name = tool_name or result.tool_name or "unknown"
    return _RESULT_TEMPLATE.format(name=name, output=result.output_text)


def assistant_text_with_calls(text: str, calls: Iterable[ToolCallPart]) -> str:
    """Join the assistant text and the directives of *calls*, one per line."""
    lines = [text] if text else []
    lines.extend(tool_call_directive(call) for call in calls)
    return "\n".join(lines)


def tool_names_by_id(messages: Iterable[CanonicalMessage]) -> dict[str, str]:
    """Map every tool-call id in *messages* to the name of the tool it called."""
    names: dict[str, str] = {}
    for message in messages:
        for call in message.tool_calls:
            names[call.tool_call_id] = call.tool_name
    return names

"""Cohere transpiler: CMS to the legacy OCI ``COHERE`` chat format.

The legacy protocol is a single ``message`` plus ``chatHistory``.  Tool
results are not messages at all but a top-level ``toolResults`` list whose
entries repeat the originating call, and the request must then set
``isForceSingleStep``.  Call ids do not survive the trip, so a result is
paired with the first still-open call of the most recent tool-calling
turn, in order.
"""

import json
import logging
from collections.abc import Sequence
from typing import Any

from ocigen.core.interface.config import GenerationOptions
from ocigen.core.interface.models import (
    CanonicalMessage,
    Prompt,
    ToolDeclaration,
    ToolResultPart,
    as_messages,
)
from ocigen.core.interface.transpilers._common import (
    compact,
    function_tools,
    sampling_fields,
    stop_sequences,
    thinking,
)
from ocigen.core.polyfills.capabilities import CapabilityProfile
from ocigen.core.polyfills.schema import sanitize
from ocigen.core.polyfills.tool_text import tool_names_by_id, tool_result_directive

logger = logging.getLogger(__name__)


def _parameter_definitions(schema: dict[str, Any]) -> dict[str, Any]:
    """Flatten an object schema into Cohere ``parameterDefinitions``."""
    properties = schema.get("properties")
    if schema.get("type") != "object" or not isinstance(properties, dict):
        return {}
    required = set(schema.get("required") or [])
    definitions: dict[str, Any] = {}
    for name, prop in properties.items():
        if not isinstance(prop, dict):
            continue
        prop_type = prop.get("type")
        definitions[name] = {
            "type": prop_type if isinstance(prop_type, str) else "string",
            "description": prop.get("description", ""),
            "isRequired": name in required,
        }
    return definitions


def _call_parameters(arguments: Any) -> dict[str, Any]:
    if isinstance(arguments, dict):
        return arguments
    return {"value": arguments}


def _result_outputs(part: ToolResultPart) -> list[dict[str, Any]]:
    value = part.output_value
    if isinstance(value, dict):
        return [value]
    if isinstance(value, str):
        return [{"result": value}]
    return [{"result": json.dumps(value, separators=(",", ":"))}]


class CohereTranspiler:
    """Builds legacy ``COHERE`` chat requests."""

    family = "cohere"
    api_format = "COHERE"

    def build(
        self,
        prompt: Prompt,
        tools: Sequence[ToolDeclaration] | None,
        options: GenerationOptions,
        capabilities: CapabilityProfile,
        stream: bool = False,
    ) -> dict[str, Any]:
        message, chat_history, tool_results = self.convert_messages(as_messages(prompt))

        request: dict[str, Any] = {
            "apiFormat": self.api_format,
            "message": message,
            "chatHistory": chat_history,
        }
        request.update(sampling_fields(options, capabilities))
        request.update(
            compact(
                {
                    "stopSequences": stop_sequences(options, capabilities),
                    "thinking": thinking(options, capabilities),
                    "safetyMode": options.provider_options.safety_mode,
                }
            )
        )

        declared = self.convert_tools(function_tools(tools, capabilities))
        if declared:
            request["tools"] = declared
        if tool_results:
            request["toolResults"] = tool_results
            request["isForceSingleStep"] = True
        if stream:
            request["isStream"] = True
        return request

    def convert_messages(
        self,
        messages: list[CanonicalMessage],
    ) -> tuple[str, list[dict[str, Any]], list[dict[str, Any]]]:
        """Split CMS messages into ``(message, chatHistory, toolResults)``.

        The last user turn becomes ``message`` (prefixed with the system
        preamble); every earlier turn goes to ``chatHistory``.
        """
        last_user = max((i for i, m in enumerate(messages) if m.role == "user"), default=-1)
        call_names = tool_names_by_id(messages)

        preamble = ""
        message = ""
        chat_history: list[dict[str, Any]] = []
        tool_results: list[dict[str, Any]] = []
        open_calls: list[dict[str, Any]] = []

        for index, msg in enumerate(messages):
            if msg.role == "system":
                preamble = msg.text
            elif msg.role == "user":
                if index == last_user:
                    message = f"{preamble}\n\n{msg.text}" if preamble else msg.text
                else:
                    chat_history.append({"role": "USER", "message": msg.text})
            elif msg.role == "assistant":
                calls = [
                    {"name": call.tool_name, "parameters": _call_parameters(call.arguments)}
                    for call in msg.tool_calls
                ]
                if calls:
                    chat_history.append({"role": "CHATBOT", "message": msg.text, "toolCalls": calls})
                    open_calls = list(calls)
                elif msg.text:
                    chat_history.append({"role": "CHATBOT", "message": msg.text})
            else:
                for part in msg.tool_results:
                    if open_calls:
                        call = open_calls.pop(0)
                        tool_results.append({"call": call, "outputs": _result_outputs(part)})
                    else:
                        logger.warning(
                            "Tool result %s has no open tool call; sending it as text",
                            part.tool_call_id,
                        )
                        name = call_names.get(part.tool_call_id)
                        chat_history.append(
                            {"role": "USER", "message": tool_result_directive(part, name)}
                        )

        return message, chat_history, tool_results

    def convert_tools(self, tools: list[ToolDeclaration]) -> list[dict[str, Any]]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "parameterDefinitions": _parameter_definitions(sanitize(tool.input_schema)),
            }
            for tool in tools
        ]

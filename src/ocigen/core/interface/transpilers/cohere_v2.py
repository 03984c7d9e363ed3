"""Cohere V2 transpiler: CMS to the OCI ``COHEREV2`` chat format (Command A).

Command A takes a messages array with native ``toolCalls`` on assistant
turns (parallel calls allowed) and ``TOOL`` messages keyed by
``toolCallId``.  Tool definitions are nested under ``function``.
"""

import logging
from collections.abc import Sequence
from typing import Any

from ocigen.core.interface.config import GenerationOptions, ToolChoice
from ocigen.core.interface.models import (
    CanonicalMessage,
    FilePart,
    Prompt,
    ToolDeclaration,
    as_messages,
)
from ocigen.core.interface.transpilers._common import (
    choice_type,
    compact,
    function_tools,
    sampling_fields,
    stop_sequences,
    thinking,
)
from ocigen.core.polyfills.capabilities import CapabilityProfile
from ocigen.core.polyfills.schema import sanitize

logger = logging.getLogger(__name__)


class CohereV2Transpiler:
    """Builds ``COHEREV2`` chat requests."""

    family = "cohere-v2"
    api_format = "COHEREV2"

    def build(
        self,
        prompt: Prompt,
        tools: Sequence[ToolDeclaration] | None,
        options: GenerationOptions,
        capabilities: CapabilityProfile,
        stream: bool = False,
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "apiFormat": self.api_format,
            "messages": self.convert_messages(as_messages(prompt)),
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
            if options.tool_choice is not None:
                request["toolsChoice"] = self.convert_tool_choice(options.tool_choice)
        if stream:
            request["isStream"] = True
        return request

    def convert_messages(self, messages: list[CanonicalMessage]) -> list[dict[str, Any]]:
        """Convert CMS messages into ``COHEREV2`` message dicts."""
        result: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role == "system":
                result.append({"role": "SYSTEM", "content": [{"type": "TEXT", "text": msg.text}]})
            elif msg.role == "user":
                if any(isinstance(p, FilePart) for p in msg.parts):
                    logger.warning("Dropping file attachments: not supported by Cohere models")
                result.append({"role": "USER", "content": [{"type": "TEXT", "text": msg.text}]})
            elif msg.role == "assistant":
                result.append(self._assistant_message(msg))
            else:
                for part in msg.tool_results:
                    result.append(
                        {
                            "role": "TOOL",
                            "toolCallId": part.tool_call_id,
                            "content": [{"type": "TEXT", "text": part.output_text}],
                        }
                    )
        return result

    def _assistant_message(self, msg: CanonicalMessage) -> dict[str, Any]:
        message: dict[str, Any] = {"role": "ASSISTANT"}
        if msg.text:
            message["content"] = [{"type": "TEXT", "text": msg.text}]
        if msg.tool_calls:
            message["toolCalls"] = [
                {
                    "id": call.tool_call_id,
                    "type": "FUNCTION",
                    "function": {"name": call.tool_name, "arguments": call.arguments_json},
                }
                for call in msg.tool_calls
            ]
        return message

    def convert_tools(self, tools: list[ToolDeclaration]) -> list[dict[str, Any]]:
        return [
            {
                "type": "FUNCTION",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": sanitize(tool.input_schema),
                },
            }
            for tool in tools
        ]

    def convert_tool_choice(self, choice: ToolChoice) -> str:
        # Command A cannot force one specific tool; "tool" degrades to REQUIRED.
        return choice_type(choice)

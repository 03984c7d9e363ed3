"""Generic transpiler: CMS to the OCI ``GENERIC`` chat format.

Serves every non-Cohere vendor (Gemini, Grok, Llama, gpt-oss, unknown).
Two vendor behaviours are handled here:

* Native tool messages (Gemini and most others): one tool call per
  assistant turn travels in the message-level ``toolCalls`` array; results
  use the ``TOOL`` role.  The backend cannot take parallel calls in that
  array, so a turn with several calls falls back to the text directive
  and its results become synthetic ``USER`` turns.
* Text fallback (xAI, Meta Llama): tool calls and results are always
  written as text, results in synthetic ``USER`` turns.
"""

import logging
from collections.abc import Sequence
from typing import Any

from ocigen.core.interface.config import GenerationOptions, ResponseFormat, ToolChoice
from ocigen.core.interface.models import (
    CanonicalMessage,
    FilePart,
    Prompt,
    TextPart,
    ToolDeclaration,
    as_messages,
)
from ocigen.core.interface.transpilers._common import (
    choice_type,
    compact,
    function_tools,
    reasoning_effort,
    sampling_fields,
    stop_sequences,
)
from ocigen.core.polyfills.capabilities import CapabilityProfile
from ocigen.core.polyfills.schema import sanitize
from ocigen.core.polyfills.tool_text import (
    assistant_text_with_calls,
    tool_names_by_id,
    tool_result_directive,
)

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MEDIA_TYPE = "image/png"


def _text(text: str) -> dict[str, Any]:
    return {"type": "TEXT", "text": text}


class GenericTranspiler:
    """Builds ``GENERIC`` chat requests."""

    family = "generic"
    api_format = "GENERIC"

    def build(
        self,
        prompt: Prompt,
        tools: Sequence[ToolDeclaration] | None,
        options: GenerationOptions,
        capabilities: CapabilityProfile,
        stream: bool = False,
    ) -> dict[str, Any]:
        messages = self.convert_messages(as_messages(prompt), capabilities)
        request: dict[str, Any] = {"apiFormat": self.api_format, "messages": messages}
        request.update(sampling_fields(options, capabilities))
        request.update(
            compact(
                {
                    "stop": stop_sequences(options, capabilities),
                    "reasoningEffort": reasoning_effort(options, capabilities),
                    "maxCompletionTokens": options.provider_options.max_completion_tokens,
                    "responseFormat": self.convert_response_format(options.response_format),
                }
            )
        )

        declared = self.convert_tools(function_tools(tools, capabilities))
        if declared:
            request["tools"] = declared
            if options.tool_choice is not None:
                request["toolChoice"] = self.convert_tool_choice(options.tool_choice)
        if stream:
            request["isStream"] = True
        return request

    # -- messages ----------------------------------------------------------

    def convert_messages(
        self,
        messages: list[CanonicalMessage],
        capabilities: CapabilityProfile,
    ) -> list[dict[str, Any]]:
        """Convert CMS messages into ``GENERIC`` message dicts."""
        native = capabilities.supports_tool_messages
        call_names = tool_names_by_id(messages)
        as_text = self._text_encoded_call_ids(messages, native)
        result: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == "system":
                result.append({"role": "SYSTEM", "content": [_text(msg.text)]})
            elif msg.role == "user":
                result.append({"role": "USER", "content": self._user_content(msg)})
            elif msg.role == "assistant":
                result.append(self._assistant_message(msg, native))
            else:
                for part in msg.tool_results:
                    if native and part.tool_call_id not in as_text:
                        result.append(
                            {
                                "role": "TOOL",
                                "toolCallId": part.tool_call_id,
                                "content": [_text(part.output_text)],
                            }
                        )
                    else:
                        name = call_names.get(part.tool_call_id)
                        result.append(
                            {
                                "role": "USER",
                                "content": [_text(tool_result_directive(part, name))],
                            }
                        )
        return result

    @staticmethod
    def _text_encoded_call_ids(messages: list[CanonicalMessage], native: bool) -> set[str]:
        """Ids of the tool calls that travel as text directives rather than ``toolCalls``."""
        ids: set[str] = set()
        for msg in messages:
            calls = msg.tool_calls if msg.role == "assistant" else []
            if calls and (not native or len(calls) > 1):
                ids.update(call.tool_call_id for call in calls)
        return ids

    def _user_content(self, msg: CanonicalMessage) -> list[dict[str, Any]]:
        content: list[dict[str, Any]] = []
        for part in msg.parts:
            if isinstance(part, TextPart):
                content.append(_text(part.text))
            elif isinstance(part, FilePart):
                content.append(
                    {
                        "type": "IMAGE",
                        "source": {
                            "type": "BASE64",
                            "mediaType": part.media_type or DEFAULT_IMAGE_MEDIA_TYPE,
                            "data": part.data,
                        },
                    }
                )
        return content

    def _assistant_message(self, msg: CanonicalMessage, native: bool) -> dict[str, Any]:
        calls = msg.tool_calls
        text = msg.text

        if calls and (not native or len(calls) > 1):
            if native:
                logger.debug("Encoding %d parallel tool calls as text", len(calls))
            return {"role": "ASSISTANT", "content": [_text(assistant_text_with_calls(text, calls))]}

        message: dict[str, Any] = {
            "role": "ASSISTANT",
            "content": [_text(text)] if text else [],
        }
        if calls:
            call = calls[0]
            message["toolCalls"] = [
                {
                    "id": call.tool_call_id,
                    "type": "FUNCTION",
                    "name": call.tool_name,
                    "arguments": call.arguments_json,
                }
            ]
        return message

    # -- tools and formats ----------------------------------------------------

    def convert_tools(self, tools: list[ToolDeclaration]) -> list[dict[str, Any]]:
        """Flat ``FUNCTION`` definitions with sanitized parameter schemas."""
        return [
            {
                "type": "FUNCTION",
                "name": tool.name,
                "description": tool.description,
                "parameters": sanitize(tool.input_schema),
            }
            for tool in tools
        ]

    def convert_tool_choice(self, choice: ToolChoice) -> dict[str, Any]:
        if choice.type == "tool" and choice.tool_name:
            return {"type": "FUNCTION", "functionName": choice.tool_name}
        return {"type": choice_type(choice)}

    def convert_response_format(self, response_format: ResponseFormat | None) -> dict[str, Any] | None:
        if response_format is None:
            return None
        if response_format.type == "text":
            return {"type": "TEXT"}
        if response_format.json_schema is None:
            return {"type": "JSON_OBJECT"}
        return {"type": "JSON_SCHEMA", "jsonSchema": sanitize(response_format.json_schema)}

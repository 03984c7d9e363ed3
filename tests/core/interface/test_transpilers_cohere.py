"""Tests for the legacy COHERE request builder."""

import logging

import pytest

from ocigen.core.interface.config import GenerationOptions
from ocigen.core.interface.models import (
    CanonicalMessage,
    ToolCallPart,
    ToolDeclaration,
    ToolOutput,
    ToolResultPart,
)
from ocigen.core.interface.transpilers.cohere import CohereTranspiler
from ocigen.core.polyfills.registry_data import build_default_registry

REGISTRY = build_default_registry()
COMMAND_R = "cohere.command-r-plus-08-2024"

WEATHER = ToolDeclaration(
    name="get_weather",
    description="Get the weather",
    input_schema={
        "type": "object",
        "properties": {
            "city": {"type": "string", "description": "City name"},
            "days": {"type": "integer"},
            "unit": {"enum": ["C", "F"]},
        },
        "required": ["city"],
    },
)


def _build(
    messages: list[CanonicalMessage],
    tools: list[ToolDeclaration] | None = None,
    stream: bool = False,
) -> dict:
    return CohereTranspiler().build(
        messages, tools, GenerationOptions(), REGISTRY.lookup(COMMAND_R), stream=stream
    )


def _tool_turns(*results: ToolResultPart) -> list[CanonicalMessage]:
    return [
        CanonicalMessage.user("Weather?"),
        CanonicalMessage.assistant(
            "Let me check.",
            [
                ToolCallPart(tool_call_id="c1", tool_name="get_weather", input={"city": "Paris"}),
                ToolCallPart(tool_call_id="c2", tool_name="get_weather", input={"city": "Rome"}),
            ],
        ),
        CanonicalMessage.tool(*results),
    ]


class TestCohereMessages:
    def test_last_user_message_with_preamble(self) -> None:
        request = _build([CanonicalMessage.system("Be brief."), CanonicalMessage.user("Hi")])
        assert request["apiFormat"] == "COHERE"
        assert request["message"] == "Be brief.\n\nHi"
        assert request["chatHistory"] == []

    def test_earlier_turns_go_to_history(self) -> None:
        request = _build(
            [
                CanonicalMessage.user("First"),
                CanonicalMessage.assistant("Answer"),
                CanonicalMessage.user("Second"),
            ]
        )
        assert request["message"] == "Second"
        assert request["chatHistory"] == [
            {"role": "USER", "message": "First"},
            {"role": "CHATBOT", "message": "Answer"},
        ]

    def test_no_user_message(self) -> None:
        assert _build([CanonicalMessage.system("x")])["message"] == ""

    def test_tool_calls_in_history(self) -> None:
        request = _build(_tool_turns())
        assert request["chatHistory"] == [
            {
                "role": "CHATBOT",
                "message": "Let me check.",
                "toolCalls": [
                    {"name": "get_weather", "parameters": {"city": "Paris"}},
                    {"name": "get_weather", "parameters": {"city": "Rome"}},
                ],
            }
        ]
        assert "toolResults" not in request
        assert "isForceSingleStep" not in request


class TestCohereToolResults:
    def test_results_paired_in_order(self) -> None:
        request = _build(
            _tool_turns(
                ToolResultPart(tool_call_id="c1", output=ToolOutput(type="json", value={"temp": 20})),
                ToolResultPart(tool_call_id="c2", output=ToolOutput(type="text", value="Rainy")),
            )
        )
        assert request["toolResults"] == [
            {"call": {"name": "get_weather", "parameters": {"city": "Paris"}}, "outputs": [{"temp": 20}]},
            {"call": {"name": "get_weather", "parameters": {"city": "Rome"}}, "outputs": [{"result": "Rainy"}]},
        ]
        assert request["isForceSingleStep"] is True

    def test_non_object_json_output(self) -> None:
        request = _build(
            _tool_turns(ToolResultPart(tool_call_id="c1", output=ToolOutput(type="json", value=[1, 2])))
        )
        assert request["toolResults"][0]["outputs"] == [{"result": "[1,2]"}]

    def test_unmatched_result_sent_as_text(self, caplog: pytest.LogCaptureFixture) -> None:
        messages = [
            CanonicalMessage.user("Hi"),
            CanonicalMessage.tool(ToolResultPart(tool_call_id="orphan", tool_name="f", output="x")),
        ]
        with caplog.at_level(logging.WARNING, logger="ocigen"):
            request = _build(messages)
        assert "toolResults" not in request
        assert "isForceSingleStep" not in request
        assert request["chatHistory"] == [{"role": "USER", "message": '[Tool result from "f": x]'}]
        assert "no open tool call" in caplog.text


class TestCohereTools:
    def test_parameter_definitions(self) -> None:
        request = _build([CanonicalMessage.user("Hi")], tools=[WEATHER])
        assert request["tools"] == [
            {
                "name": "get_weather",
                "description": "Get the weather",
                "parameterDefinitions": {
                    "city": {"type": "string", "description": "City name", "isRequired": True},
                    "days": {"type": "integer", "description": "", "isRequired": False},
                    "unit": {"type": "string", "description": "", "isRequired": False},
                },
            }
        ]

    def test_non_object_schema(self) -> None:
        tool = ToolDeclaration(name="ping", input_schema={"type": "string"})
        request = _build([], tools=[tool])
        assert request["tools"][0]["parameterDefinitions"] == {}

    def test_stream_flag(self) -> None:
        assert _build([], stream=True)["isStream"] is True
        assert "thinking" not in _build([])

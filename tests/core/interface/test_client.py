"""Tests for ChatModel and OCIProvider with an in-memory transport."""

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from ocigen.core.interface.client import ChatModel, OCIProvider, create_oci
from ocigen.core.interface.config import GenerationOptions, ProviderSettings
from ocigen.core.interface.events import ErrorEvent
from ocigen.core.interface.models import CanonicalMessage, ToolDeclaration
from ocigen.core.interface.transport import OCITransport
from ocigen.core.interface.transpilers import CohereTranspiler, CohereV2Transpiler, GenericTranspiler
from ocigen.errors import (
    ConfigurationError,
    GenerationCancelledError,
    TransportError,
    UnexpectedResponseError,
)

SETTINGS = ProviderSettings(compartment_id="ocid1.compartment.oc1..test")

GEMINI_RESPONSE = {
    "modelId": "google.gemini-2.5-flash",
    "chatResponse": {
        "apiFormat": "GENERIC",
        "choices": [
            {
                "index": 0,
                "message": {"role": "ASSISTANT", "content": [{"type": "TEXT", "text": "Hello!"}]},
                "finishReason": "stop",
            }
        ],
        "usage": {"promptTokens": 10, "completionTokens": 5, "totalTokens": 15},
    },
}


class FakeTransport:
    """Records requests and replays canned responses."""

    def __init__(
        self,
        response: Any = None,
        chunks: list[Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.response = response
        self.chunks = chunks or []
        self.error = error
        self.requests: list[tuple[str, dict[str, str], dict[str, Any]]] = []

    async def chat(self, compartment_id: str, serving_mode: dict[str, str], chat_request: dict[str, Any]) -> Any:
        self.requests.append((compartment_id, serving_mode, chat_request))
        if self.error is not None:
            raise self.error
        return self.response

    async def stream_chat(
        self, compartment_id: str, serving_mode: dict[str, str], chat_request: dict[str, Any]
    ) -> AsyncIterator[Any]:
        self.requests.append((compartment_id, serving_mode, chat_request))
        if self.error is not None:
            raise self.error
        for chunk in self.chunks:
            yield chunk


class HangingTransport(FakeTransport):
    """Answers the first stream chunk, then never again."""

    async def chat(self, compartment_id: str, serving_mode: dict[str, str], chat_request: dict[str, Any]) -> Any:
        await asyncio.Event().wait()

    async def stream_chat(
        self, compartment_id: str, serving_mode: dict[str, str], chat_request: dict[str, Any]
    ) -> AsyncIterator[Any]:
        for chunk in self.chunks:
            yield chunk
        await asyncio.Event().wait()
        yield "unreachable"


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def _model(model_id: str = "google.gemini-2.5-flash", transport: Any = None, **kwargs: Any) -> ChatModel:
    return ChatModel(model_id, SETTINGS, transport=transport or FakeTransport(GEMINI_RESPONSE), **kwargs)


async def _collect(stream: AsyncIterator[Any]) -> list[Any]:
    return [event async for event in stream]


class TestChatModelSetup:
    def test_generic_family(self) -> None:
        model = _model("xai.grok-4")
        assert model.provider == "oci-genai"
        assert model.family == "generic"
        assert isinstance(model.transpiler, GenericTranspiler)
        assert model.capabilities.supports_tool_messages is False

    def test_cohere_families(self) -> None:
        assert isinstance(_model("cohere.command-r-08-2024").transpiler, CohereTranspiler)
        assert isinstance(_model("cohere.command-a-03-2025").transpiler, CohereV2Transpiler)

    def test_serving_mode(self) -> None:
        assert _model().serving_mode == {"servingType": "ON_DEMAND", "modelId": "google.gemini-2.5-flash"}
        dedicated = _model("ocid1.generativeaiendpoint.x", dedicated=True)
        assert dedicated.serving_mode == {"servingType": "DEDICATED", "endpointId": "ocid1.generativeaiendpoint.x"}

    def test_default_transport(self) -> None:
        model = ChatModel("google.gemini-2.5-flash", SETTINGS)
        assert isinstance(model.transport, OCITransport)

    def test_build_request(self) -> None:
        request = _model().build_request([CanonicalMessage.user("Hi")], stream=True)
        assert request["apiFormat"] == "GENERIC"
        assert request["isStream"] is True


class TestGenerate:
    async def test_returns_normalized_result(self) -> None:
        transport = FakeTransport(GEMINI_RESPONSE)
        model = _model(transport=transport)

        result = await model.generate([CanonicalMessage.user("Hi")], options=GenerationOptions(max_output_tokens=64))

        assert result.text == "Hello!"
        assert result.finish_reason == "stop"
        assert result.usage.total_tokens == 15
        assert result.model_id == "google.gemini-2.5-flash"
        compartment, serving_mode, request = transport.requests[0]
        assert compartment == "ocid1.compartment.oc1..test"
        assert serving_mode["servingType"] == "ON_DEMAND"
        assert request["maxTokens"] == 64
        assert "isStream" not in request
        assert result.request_body == request

    async def test_tool_call_response(self) -> None:
        response = {
            "chatResponse": {
                "choices": [
                    {
                        "message": {
                            "toolCalls": [{"id": "call_1", "type": "FUNCTION", "name": "get_weather", "arguments": "{}"}]
                        },
                        "finishReason": "stop",
                    }
                ]
            }
        }
        tool = ToolDeclaration(name="get_weather", input_schema={"type": "object"})
        result = await _model(transport=FakeTransport(response)).generate([CanonicalMessage.user("Hi")], [tool])
        assert result.finish_reason == "tool-calls"
        assert result.tool_calls[0].tool_call_id == "call_1"

    async def test_backend_error_wrapped(self) -> None:
        model = _model(transport=FakeTransport(error=RuntimeError("400 Bad Request")))
        with pytest.raises(TransportError, match=r"\[OCI GenAI\] Request to google.gemini-2.5-flash failed: 400"):
            await model.generate([CanonicalMessage.user("Hi")])

    async def test_error_hint(self) -> None:
        seen: list[tuple[BaseException, str]] = []

        def hint(exc: BaseException, model_id: str) -> str:
            seen.append((exc, model_id))
            return "check your region"

        model = _model(transport=FakeTransport(error=RuntimeError("404")), error_hint=hint)
        with pytest.raises(TransportError) as exc_info:
            await model.generate([CanonicalMessage.user("Hi")])
        assert exc_info.value.hint == "check your region"
        assert "Hint: check your region" in str(exc_info.value)
        assert seen[0][1] == "google.gemini-2.5-flash"

    async def test_empty_response(self) -> None:
        model = _model(transport=FakeTransport({}))
        with pytest.raises(UnexpectedResponseError):
            await model.generate([CanonicalMessage.user("Hi")])

    async def test_cancelled_before_call(self) -> None:
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(GenerationCancelledError, match="was aborted"):
            await _model().generate([CanonicalMessage.user("Hi")], cancel=cancel)

    async def test_cancelled_while_waiting(self) -> None:
        cancel = asyncio.Event()
        model = _model(transport=HangingTransport())
        task = asyncio.create_task(model.generate([CanonicalMessage.user("Hi")], cancel=cancel))
        await asyncio.sleep(0)
        cancel.set()
        with pytest.raises(GenerationCancelledError):
            await task

    async def test_records_span(self) -> None:
        sdk_trace = pytest.importorskip("opentelemetry.sdk.trace")
        export = pytest.importorskip("opentelemetry.sdk.trace.export")
        in_memory = pytest.importorskip("opentelemetry.sdk.trace.export.in_memory_span_exporter")

        exporter = in_memory.InMemorySpanExporter()
        provider = sdk_trace.TracerProvider()
        provider.add_span_processor(export.SimpleSpanProcessor(exporter))

        with patch("ocigen.core.interface.client._tracer", provider.get_tracer("test")):
            await _model().generate([CanonicalMessage.user("Hi")])

        (span,) = exporter.get_finished_spans()
        assert span.name == "model.generate"
        assert span.attributes["ocigen.model"] == "google.gemini-2.5-flash"
        assert span.attributes["ocigen.finish_reason"] == "stop"
        assert span.attributes["ocigen.tokens.total"] == 15


class TestStream:
    async def test_event_order(self) -> None:
        chunks = [
            _sse({"message": {"content": [{"type": "TEXT", "text": "Hel"}]}}),
            _sse({"message": {"content": [{"type": "TEXT", "text": "lo"}]}}),
            _sse({"finishReason": "stop", "usage": {"promptTokens": 3, "completionTokens": 2}}),
        ]
        transport = FakeTransport(chunks=chunks)
        events = await _collect(_model(transport=transport).stream([CanonicalMessage.user("Hi")]))

        assert [e.type for e in events] == [
            "stream-start",
            "response-metadata",
            "text-start",
            "text-delta",
            "text-delta",
            "text-end",
            "finish",
        ]
        assert events[1].model_id == "google.gemini-2.5-flash"
        assert events[-1].usage.total_tokens == 5
        assert transport.requests[0][2]["isStream"] is True

    async def test_non_streaming_answer_is_replayed(self) -> None:
        transport = FakeTransport(chunks=[GEMINI_RESPONSE])
        events = await _collect(_model(transport=transport).stream([CanonicalMessage.user("Hi")]))
        types = [e.type for e in events]
        assert types == ["stream-start", "response-metadata", "text-start", "text-delta", "text-end", "finish"]
        assert types.count("finish") == 1
        assert events[-1].usage.total_tokens == 15

    async def test_wrong_shape_terminal_fragment_still_finishes(self) -> None:
        chunks = [
            _sse({"message": {"content": [{"type": "TEXT", "text": "Hi"}]}}),
            _sse({"finishReason": ["COMPLETE"], "usage": {"promptTokens": "n/a"}}),
        ]
        events = await _collect(_model(transport=FakeTransport(chunks=chunks)).stream([CanonicalMessage.user("Hi")]))
        types = [e.type for e in events]
        assert types[-1] == "finish"
        assert types.count("finish") == 1
        assert "error" not in types
        assert events[-1].finish_reason == "stop"

    async def test_transport_error_becomes_error_event(self) -> None:
        transport = FakeTransport(error=RuntimeError("boom"))
        events = await _collect(_model(transport=transport).stream([CanonicalMessage.user("Hi")]))
        assert [e.type for e in events] == ["stream-start", "response-metadata", "error"]
        assert isinstance(events[-1], ErrorEvent)
        assert isinstance(events[-1].error, TransportError)

    async def test_cancelled_before_start(self) -> None:
        cancel = asyncio.Event()
        cancel.set()
        transport = FakeTransport(chunks=[_sse({"message": {"content": "x"}})])
        events = await _collect(_model(transport=transport).stream([CanonicalMessage.user("Hi")], cancel=cancel))
        assert [e.type for e in events] == ["stream-start", "response-metadata", "error"]
        assert isinstance(events[-1].error, GenerationCancelledError)
        assert transport.requests == []

    async def test_cancelled_mid_stream(self) -> None:
        cancel = asyncio.Event()
        transport = HangingTransport(chunks=[_sse({"message": {"content": "partial"}})])
        events = []
        async for event in _model(transport=transport).stream([CanonicalMessage.user("Hi")], cancel=cancel):
            events.append(event)
            if event.type == "text-delta":
                cancel.set()
        types = [e.type for e in events]
        assert types[-1] == "error"
        assert "finish" not in types
        assert isinstance(events[-1].error, GenerationCancelledError)


class TestOCIProvider:
    def test_language_model(self) -> None:
        provider = OCIProvider(SETTINGS, transport=FakeTransport())
        model = provider.language_model("google.gemini-2.5-flash")
        assert isinstance(model, ChatModel)
        assert model.transport is provider.transport

    def test_missing_compartment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OCI_COMPARTMENT_ID", raising=False)
        provider = OCIProvider(ProviderSettings())
        with pytest.raises(ConfigurationError, match="Missing compartment ID"):
            provider.language_model("google.gemini-2.5-flash")

    def test_dedicated_only_model_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="dedicated AI cluster"):
            OCIProvider(SETTINGS).language_model("meta.llama-4-maverick-17b-128e-instruct-fp8")

    def test_dedicated_endpoint(self) -> None:
        model = OCIProvider(SETTINGS).language_model("ocid1.generativeaiendpoint.x", dedicated=True)
        assert model.serving_mode["servingType"] == "DEDICATED"

    def test_unsupported_model_kinds(self) -> None:
        provider = OCIProvider(SETTINGS)
        with pytest.raises(NotImplementedError, match="not supported"):
            provider.text_embedding_model("cohere.embed-v4.0")
        with pytest.raises(NotImplementedError, match="not supported"):
            provider.image_model("x")

    def test_get_settings_is_a_copy(self) -> None:
        provider = OCIProvider(SETTINGS)
        settings = provider.get_settings()
        assert settings == SETTINGS
        assert settings is not provider.settings

    def test_lazy_transport(self) -> None:
        provider = OCIProvider(SETTINGS)
        assert provider.transport is provider.transport


class TestCreateOci:
    def test_overrides_win_over_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OCI_COMPARTMENT_ID", "ocid1.compartment.env")
        monkeypatch.setenv("OCI_REGION", "us-chicago-1")
        provider = create_oci(region="eu-frankfurt-1")
        assert provider.settings.compartment_id == "ocid1.compartment.env"
        assert provider.settings.region == "eu-frankfurt-1"

    def test_explicit_settings_with_overrides(self) -> None:
        provider = create_oci(SETTINGS, region="uk-london-1")
        assert provider.settings.region == "uk-london-1"
        assert provider.settings.compartment_id == SETTINGS.compartment_id

    def test_mock_transport_injection(self) -> None:
        transport = MagicMock()
        provider = OCIProvider(SETTINGS, transport=transport)
        assert provider.language_model("xai.grok-4").transport is transport

"""Tests for the oci SDK transport, with the SDK client mocked out."""

from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from oci.generative_ai_inference.models import ChatDetails, DedicatedServingMode, OnDemandServingMode

from ocigen.core.interface.config import ProviderSettings
from ocigen.core.interface.transport import OCITransport, build_client

SETTINGS = ProviderSettings(compartment_id="ocid1.compartment.oc1..test", region="us-chicago-1")
ON_DEMAND = {"servingType": "ON_DEMAND", "modelId": "google.gemini-2.5-flash"}


class _Event:
    def __init__(self, data: str) -> None:
        self.data = data


class _StreamData:
    def __init__(self, payloads: list[str]) -> None:
        self.payloads = payloads
        self.closed = False

    def events(self) -> Any:
        return iter(_Event(p) for p in self.payloads)

    def close(self) -> None:
        self.closed = True


def _client(data: Any) -> MagicMock:
    client = MagicMock()
    client.chat.return_value = MagicMock(data=data)
    client.base_client.sanitize_for_serialization.return_value = {"chatResponse": {"text": "hi"}}
    return client


class TestChat:
    async def test_sends_chat_details(self) -> None:
        client = _client(object())
        transport = OCITransport(SETTINGS, client=client)

        response = await transport.chat("ocid1.compartment", ON_DEMAND, {"apiFormat": "GENERIC"})

        assert response == {"chatResponse": {"text": "hi"}}
        details = client.chat.call_args[0][0]
        assert isinstance(details, ChatDetails)
        assert details.compartment_id == "ocid1.compartment"
        assert isinstance(details.serving_mode, OnDemandServingMode)
        assert details.serving_mode.model_id == "google.gemini-2.5-flash"
        assert details.chat_request == {"apiFormat": "GENERIC"}

    async def test_dedicated_serving_mode(self) -> None:
        client = _client(object())
        transport = OCITransport(SETTINGS, client=client)

        await transport.chat("c", {"servingType": "DEDICATED", "endpointId": "ocid1.endpoint"}, {})

        details = client.chat.call_args[0][0]
        assert isinstance(details.serving_mode, DedicatedServingMode)
        assert details.serving_mode.endpoint_id == "ocid1.endpoint"

    async def test_errors_propagate(self) -> None:
        client = MagicMock()
        client.chat.side_effect = RuntimeError("service error")
        transport = OCITransport(SETTINGS, client=client)
        with pytest.raises(RuntimeError, match="service error"):
            await transport.chat("c", ON_DEMAND, {})


class TestStreamChat:
    async def test_yields_sse_frames(self) -> None:
        data = _StreamData(['{"text":"a"}', '{"text":"b"}'])
        transport = OCITransport(SETTINGS, client=_client(data))

        chunks = [chunk async for chunk in transport.stream_chat("c", ON_DEMAND, {"isStream": True})]

        assert chunks == ['data: {"text":"a"}\n\n', 'data: {"text":"b"}\n\n']
        assert data.closed is True

    async def test_non_streaming_data_yields_dict(self) -> None:
        transport = OCITransport(SETTINGS, client=_client(MagicMock(spec=[])))

        chunks = [chunk async for chunk in transport.stream_chat("c", ON_DEMAND, {"isStream": True})]

        assert chunks == [{"chatResponse": {"text": "hi"}}]


class TestBuildClient:
    def test_region_override(self) -> None:
        config = {"region": "us-ashburn-1", "key_file": "k", "security_token_file": "t"}
        with (
            patch("ocigen.core.interface.transport.oci.config.from_file", return_value=config) as from_file,
            patch("ocigen.core.interface.transport.GenerativeAiInferenceClient") as client_cls,
        ):
            build_client(SETTINGS)

        from_file.assert_called_once()
        assert from_file.call_args.kwargs["profile_name"] == "DEFAULT"
        assert client_cls.call_args[0][0]["region"] == "us-chicago-1"

    def test_client_is_lazy(self) -> None:
        with patch("ocigen.core.interface.transport.build_client") as build:
            transport = OCITransport(SETTINGS)
            build.assert_not_called()
            assert transport.client is build.return_value
            assert transport.client is build.return_value
            build.assert_called_once_with(SETTINGS)

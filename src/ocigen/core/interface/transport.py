"""Backend transport: one ``chat`` call against OCI Generative AI inference.

``ChatTransport`` is the seam between the translation engine and the wire.
``OCITransport`` implements it with the official ``oci`` SDK, which is
synchronous; every blocking SDK call runs in a worker thread.  Request
bodies are built as camelCase dicts by the transpilers and handed to the
SDK unchanged, and responses are serialized back to camelCase dicts, so no
SDK model class leaks past this module.
"""

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from typing import Any, Protocol

import oci
from oci.generative_ai_inference import GenerativeAiInferenceClient
from oci.generative_ai_inference.models import (
    ChatDetails,
    DedicatedServingMode,
    OnDemandServingMode,
)

from ocigen.core.interface.config import ProviderSettings

logger = logging.getLogger(__name__)

_END = object()


class ChatTransport(Protocol):
    """What the translation engine needs from the backend."""

    async def chat(
        self,
        compartment_id: str,
        serving_mode: dict[str, str],
        chat_request: dict[str, Any],
    ) -> dict[str, Any]:
        """Send one non-streaming request; return the camelCase response dict."""
        ...

    def stream_chat(
        self,
        compartment_id: str,
        serving_mode: dict[str, str],
        chat_request: dict[str, Any],
    ) -> AsyncIterator[bytes | str | dict[str, Any]]:
        """Send one streaming request.

        Yields SSE-framed text chunks.  A backend that answers without
        streaming yields the complete response dict once instead.
        """
        ...


def _serving_mode_model(serving_mode: dict[str, str]) -> Any:
    if serving_mode.get("servingType") == "DEDICATED":
        return DedicatedServingMode(endpoint_id=serving_mode["endpointId"])
    return OnDemandServingMode(model_id=serving_mode["modelId"])


def build_client(settings: ProviderSettings) -> GenerativeAiInferenceClient:
    """Create an inference client from the OCI config file named in *settings*."""
    config = oci.config.from_file(
        file_location=os.path.expanduser(settings.config_file),
        profile_name=settings.config_profile,
    )
    if settings.region:
        config["region"] = settings.region

    if settings.auth_type == "session-token":
        token_path = os.path.expanduser(config["security_token_file"])
        with open(token_path, encoding="utf-8") as f:
            token = f.read().strip()
        private_key = oci.signer.load_private_key_from_file(config["key_file"])
        signer = oci.auth.signers.SecurityTokenSigner(token, private_key)
        return GenerativeAiInferenceClient(config, signer=signer)
    return GenerativeAiInferenceClient(config)


class OCITransport:
    """``ChatTransport`` backed by ``oci.generative_ai_inference``.

    The SDK client is created lazily on first use so constructing a model
    never touches the OCI config file.
    """

    def __init__(
        self,
        settings: ProviderSettings,
        client: GenerativeAiInferenceClient | None = None,
    ) -> None:
        self.settings = settings
        self._client = client

    @property
    def client(self) -> GenerativeAiInferenceClient:
        if self._client is None:
            self._client = build_client(self.settings)
        return self._client

    def _details(
        self,
        compartment_id: str,
        serving_mode: dict[str, str],
        chat_request: dict[str, Any],
    ) -> ChatDetails:
        return ChatDetails(
            compartment_id=compartment_id,
            serving_mode=_serving_mode_model(serving_mode),
            chat_request=chat_request,
        )

    def _to_dict(self, data: Any) -> dict[str, Any]:
        serialized = self.client.base_client.sanitize_for_serialization(data)
        return serialized if isinstance(serialized, dict) else {}

    async def chat(
        self,
        compartment_id: str,
        serving_mode: dict[str, str],
        chat_request: dict[str, Any],
    ) -> dict[str, Any]:
        details = self._details(compartment_id, serving_mode, chat_request)
        response = await asyncio.to_thread(self.client.chat, details)
        return self._to_dict(response.data)

    async def stream_chat(
        self,
        compartment_id: str,
        serving_mode: dict[str, str],
        chat_request: dict[str, Any],
    ) -> AsyncIterator[bytes | str | dict[str, Any]]:
        details = self._details(compartment_id, serving_mode, chat_request)
        response = await asyncio.to_thread(self.client.chat, details)
        data = response.data

        if not hasattr(data, "events"):
            logger.debug("Backend answered a streaming request without streaming")
            yield self._to_dict(data)
            return

        events = data.events()
        try:
            while True:
                event = await asyncio.to_thread(next, events, _END)
                if event is _END:
                    break
                yield f"data: {event.data}\n\n"
        finally:
            close = getattr(data, "close", None)
            if callable(close):
                close()

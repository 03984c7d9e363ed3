"""ChatModel: the translation engine facade over OCI Generative AI.

Wires the capability registry, the family transpiler, the transport, the
normalizer and the stream parser together so callers only ever deal with
CMS messages, canonical content blocks and canonical stream events.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any, TypeVar

from ocigen.core.interface.config import (
    GenerationOptions,
    ProviderSettings,
    check_serving_mode,
    resolve_serving_mode,
)
from ocigen.core.interface.events import ErrorEvent, ResponseMetadata, StreamEvent, StreamStart
from ocigen.core.interface.models import GenerateResult, Prompt, ToolDeclaration
from ocigen.core.interface.normalizer import normalize
from ocigen.core.interface.streaming import StreamParser, simulate_stream
from ocigen.core.interface.transpilers import get_transpiler
from ocigen.core.interface.transport import ChatTransport, OCITransport
from ocigen.core.polyfills.capabilities import CapabilityRegistry
from ocigen.errors import (
    ConfigurationError,
    GenerationCancelledError,
    OCIGenAIError,
    TransportError,
    UnexpectedResponseError,
)
from ocigen.utils.telemetry import (
    ATTR_FAMILY,
    ATTR_FINISH_REASON,
    ATTR_MODEL,
    ATTR_SERVING_TYPE,
    ATTR_STREAMING,
    ATTR_TOKENS_COMPLETION,
    ATTR_TOKENS_PROMPT,
    ATTR_TOKENS_TOTAL,
    ATTR_TOOL_COUNT,
    get_tracer,
)

logger = logging.getLogger(__name__)

_tracer = get_tracer(__name__)

T = TypeVar("T")

ErrorHint = Callable[[BaseException, str], str | None]

_default_registry: CapabilityRegistry | None = None


def _get_default_registry() -> CapabilityRegistry:
    """Return (and cache) the default capability registry."""
    global _default_registry
    if _default_registry is None:
        from ocigen.core.polyfills.registry_data import build_default_registry

        _default_registry = build_default_registry()
    return _default_registry


async def _until_cancelled(awaitable: Awaitable[T], cancel: asyncio.Event | None, model_id: str) -> T:
    """Await *awaitable*, abandoning it as soon as *cancel* is set."""
    if cancel is None:
        return await awaitable
    if cancel.is_set():
        close = getattr(awaitable, "close", None)
        if close is not None:
            close()
        raise GenerationCancelledError(model_id)

    task = asyncio.ensure_future(awaitable)

    waiter = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
    if task in done:
        return task.result()
    task.cancel()
    # Let the abandoned call unwind before the caller releases the transport.
    await asyncio.wait({task})
    raise GenerationCancelledError(model_id)


class ChatModel:
    """One OCI-hosted chat model, addressed on-demand or via a dedicated endpoint.

    Usage::

        model = create_oci(compartment_id="ocid1.compartment...").language_model(
            "google.gemini-2.5-flash"
        )
        result = await model.generate([CanonicalMessage.user("Hello")])
        async for event in model.stream([CanonicalMessage.user("Hello")]):
            ...
    """

    provider = "oci-genai"

    def __init__(
        self,
        model_id: str,
        settings: ProviderSettings,
        transport: ChatTransport | None = None,
        registry: CapabilityRegistry | None = None,
        dedicated: bool = False,
        error_hint: ErrorHint | None = None,
    ) -> None:
        resolved_registry = registry or _get_default_registry()
        self.model_id = model_id
        self.settings = settings
        self.family = resolved_registry.family(model_id)
        self.capabilities = resolved_registry.lookup(model_id)
        self.transpiler = get_transpiler(self.family)
        self.transport: ChatTransport = transport or OCITransport(settings)
        self.serving_mode = resolve_serving_mode(model_id, settings, dedicated)
        self.error_hint = error_hint

    @property
    def compartment_id(self) -> str:
        return self.settings.compartment_id or ""

    def build_request(
        self,
        prompt: Prompt,
        tools: Sequence[ToolDeclaration] | None = None,
        options: GenerationOptions | None = None,
        stream: bool = False,
    ) -> dict[str, Any]:
        """Return the ``chatRequest`` body that would be sent for this call."""
        request = self.transpiler.build(
            prompt,
            tools,
            options or GenerationOptions(),
            self.capabilities,
            stream=stream,
        )
        logger.debug(
            "Chat request for %s (%s): %s",
            self.model_id,
            json.dumps(self.serving_mode),
            json.dumps(request),
        )
        return request

    def _transport_error(self, exc: BaseException) -> OCIGenAIError:
        if isinstance(exc, OCIGenAIError):
            return exc
        hint = self.error_hint(exc, self.model_id) if self.error_hint else None
        return TransportError(self.model_id, exc, hint)

    def _start_span(self, name: str, tools: Sequence[ToolDeclaration] | None, streaming: bool) -> Any:
        span = _tracer.start_span(name)
        span.set_attribute(ATTR_MODEL, self.model_id)
        span.set_attribute(ATTR_FAMILY, self.family)
        span.set_attribute(ATTR_SERVING_TYPE, self.serving_mode["servingType"])
        span.set_attribute(ATTR_STREAMING, streaming)
        span.set_attribute(ATTR_TOOL_COUNT, len(tools or ()))
        return span

    @staticmethod
    def _record_outcome(span: Any, result: GenerateResult) -> None:
        span.set_attribute(ATTR_FINISH_REASON, result.finish_reason)
        span.set_attribute(ATTR_TOKENS_PROMPT, result.usage.input_tokens)
        span.set_attribute(ATTR_TOKENS_COMPLETION, result.usage.output_tokens)
        span.set_attribute(ATTR_TOKENS_TOTAL, result.usage.total_tokens)

    async def generate(
        self,
        prompt: Prompt,
        tools: Sequence[ToolDeclaration] | None = None,
        options: GenerationOptions | None = None,
        cancel: asyncio.Event | None = None,
    ) -> GenerateResult:
        """Send one request and return canonical content, finish reason and usage.

        Raises:
            GenerationCancelledError: *cancel* was set before the backend answered.
            TransportError: the backend call failed; never retried here.
        """
        span = self._start_span("model.generate", tools, streaming=False)
        try:
            request = self.build_request(prompt, tools, options)
            try:
                response = await _until_cancelled(
                    self.transport.chat(self.compartment_id, self.serving_mode, request),
                    cancel,
                    self.model_id,
                )
            except (OCIGenAIError, asyncio.CancelledError):
                raise
            except Exception as exc:
                raise self._transport_error(exc) from exc

            if not isinstance(response, dict) or not response:
                raise UnexpectedResponseError(self.model_id)

            result = normalize(response, self.family, self.capabilities)
            result = result.model_copy(update={"model_id": self.model_id, "request_body": request})
            self._record_outcome(span, result)
            return result
        finally:
            span.end()

    async def stream(
        self,
        prompt: Prompt,
        tools: Sequence[ToolDeclaration] | None = None,
        options: GenerationOptions | None = None,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream canonical events for one request.

        Always starts with ``stream-start`` and ``response-metadata``.  Ends
        with exactly one ``finish``, or with exactly one ``error`` when the
        backend call fails or *cancel* is set.
        """
        span = self._start_span("model.stream", tools, streaming=True)
        parser = StreamParser(self.family, self.capabilities)
        try:
            yield StreamStart(warnings=[])
            yield ResponseMetadata(model_id=self.model_id)

            try:
                async for event in self._stream_events(prompt, tools, options, cancel, parser):
                    yield event
                closing = parser.finish()
            except GenerationCancelledError as exc:
                yield ErrorEvent(error=exc)
                return
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.debug("Stream for %s failed: %s", self.model_id, exc)
                yield ErrorEvent(error=self._transport_error(exc))
                return

            for event in closing:
                yield event
            span.set_attribute(ATTR_TOKENS_TOTAL, parser.usage.total_tokens)
        finally:
            span.end()

    async def _stream_events(
        self,
        prompt: Prompt,
        tools: Sequence[ToolDeclaration] | None,
        options: GenerationOptions | None,
        cancel: asyncio.Event | None,
        parser: StreamParser,
    ) -> AsyncIterator[StreamEvent]:
        request = self.build_request(prompt, tools, options, stream=True)
        if cancel is not None and cancel.is_set():
            raise GenerationCancelledError(self.model_id)

        chunks = aiter(self.transport.stream_chat(self.compartment_id, self.serving_mode, request))
        try:
            while True:
                try:
                    chunk = await _until_cancelled(anext(chunks), cancel, self.model_id)
                except StopAsyncIteration:
                    break

                if isinstance(chunk, dict):
                    # Non-streaming answer: replay it and stop; the replay carries its own finish.
                    result = normalize(chunk, self.family, self.capabilities)
                    parser.usage = result.usage
                    for event in simulate_stream(result):
                        yield event
                    parser.finish()
                    return

                for event in parser.feed(chunk):
                    yield event
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()


class OCIProvider:
    """Factory for OCI chat models sharing one settings object and transport.

    Settings not given explicitly are read from the environment (see
    :meth:`ProviderSettings.from_env`).
    """

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        transport: ChatTransport | None = None,
        registry: CapabilityRegistry | None = None,
        error_hint: ErrorHint | None = None,
    ) -> None:
        self.settings = settings or ProviderSettings.from_env()
        self.registry = registry or _get_default_registry()
        self.error_hint = error_hint
        self._transport = transport

    @property
    def transport(self) -> ChatTransport:
        if self._transport is None:
            self._transport = OCITransport(self.settings)
        return self._transport

    def language_model(self, model_id: str, dedicated: bool = False) -> ChatModel:
        """Return a ``ChatModel`` for *model_id*.

        With ``dedicated=True`` *model_id* is a dedicated endpoint OCID.

        Raises:
            ConfigurationError: no compartment is configured, or the model is
                only offered on dedicated AI clusters.
        """
        if not self.settings.compartment_id:
            msg = (
                "Missing compartment ID. Set OCI_COMPARTMENT_ID env var "
                "or pass compartment_id in the provider settings."
            )
            raise ConfigurationError(msg)
        if not dedicated:
            check_serving_mode(model_id, self.settings)
        return ChatModel(
            model_id,
            self.settings,
            transport=self.transport,
            registry=self.registry,
            dedicated=dedicated,
            error_hint=self.error_hint,
        )

    def text_embedding_model(self, model_id: str) -> Any:
        raise NotImplementedError("Text embedding models are not supported by the OCI GenAI provider")

    def image_model(self, model_id: str) -> Any:
        raise NotImplementedError("Image models are not supported by the OCI GenAI provider")

    def get_settings(self) -> ProviderSettings:
        """Return a copy of the effective settings."""
        return self.settings.model_copy()


def create_oci(settings: ProviderSettings | None = None, **overrides: Any) -> OCIProvider:
    """Create an ``OCIProvider``; keyword overrides win over environment values."""
    if settings is None:
        settings = ProviderSettings.from_env(**overrides)
    elif overrides:
        settings = settings.model_copy(update=overrides)
    return OCIProvider(settings)

"""OpenTelemetry tracing helpers for ocigen.

Provides a thin wrapper around the OpenTelemetry API so the rest of the
codebase can call ``get_tracer()`` without caring whether the SDK is
installed.  When the SDK is *not* configured the API returns no-op
implementations.

Usage::

    from ocigen.utils.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    span = _tracer.start_span("model.generate")
    span.set_attribute(ATTR_MODEL, "google.gemini-2.5-flash")
    ...
    span.end()

To export spans, call :func:`configure_telemetry` once at startup (the
``ocigen`` CLI does so for ``--trace`` or ``OCIGEN_TRACE``).  Exporting
requires the ``otel`` extra: ``pip install ocigen[otel]``.
"""

from __future__ import annotations

import os
import sys
from typing import Any, Literal

from opentelemetry import trace

# ---------------------------------------------------------------------------
# Semantic attribute keys used by the translation engine
# ---------------------------------------------------------------------------

ATTR_MODEL = "ocigen.model"
ATTR_FAMILY = "ocigen.family"
ATTR_SERVING_TYPE = "ocigen.serving_type"
ATTR_STREAMING = "ocigen.streaming"
ATTR_TOOL_COUNT = "ocigen.tools"
ATTR_TOKENS_PROMPT = "ocigen.tokens.prompt"
ATTR_TOKENS_COMPLETION = "ocigen.tokens.completion"
ATTR_TOKENS_TOTAL = "ocigen.tokens.total"
ATTR_FINISH_REASON = "ocigen.finish_reason"

_INSTRUMENTATION_NAME = "ocigen"

Exporter = Literal["console", "otlp"]
EXPORTERS: tuple[Exporter, ...] = ("console", "otlp")

TRACE_ENV = "OCIGEN_TRACE"
OTLP_ENDPOINT_ENV = "OTEL_EXPORTER_OTLP_ENDPOINT"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a :class:`~opentelemetry.trace.Tracer` for *name*.

    If the OpenTelemetry SDK has not been configured the returned tracer
    is a no-op.
    """
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def trace_exporter_from_env() -> Exporter | None:
    """Return the exporter named by ``OCIGEN_TRACE``, or ``None`` when unset or unknown."""
    value = os.environ.get(TRACE_ENV, "").strip().lower()
    return value if value in EXPORTERS else None  # type: ignore[return-value]


def configure_telemetry(
    exporter: Exporter = "console",
    *,
    otlp_endpoint: str | None = None,
    service_name: str = "ocigen",
) -> Any:
    """Install a tracer provider that exports ``model.generate``/``model.stream`` spans.

    ``console`` writes each span as JSON to stderr, leaving stdout to the
    model output.  ``otlp`` batches spans to *otlp_endpoint* (default:
    ``OTEL_EXPORTER_OTLP_ENDPOINT``, then the exporter's own default).

    Returns the installed ``TracerProvider``.

    Raises:
        ImportError: ``opentelemetry-sdk`` (or, for ``otlp``, the OTLP
            exporter) is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports,reportUnknownVariableType]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports,reportUnknownVariableType]
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor  # pyright: ignore[reportMissingImports,reportUnknownVariableType]
    except ImportError as exc:
        msg = "opentelemetry-sdk is required for tracing. Install it with: pip install ocigen[otel]"
        raise ImportError(msg) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))  # pyright: ignore[reportUnknownVariableType,reportUnknownMemberType]
    if exporter == "otlp":
        endpoint = otlp_endpoint or os.environ.get(OTLP_ENDPOINT_ENV)
        provider.add_span_processor(BatchSpanProcessor(_otlp_exporter(endpoint)))
    else:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter  # pyright: ignore[reportMissingImports,reportUnknownVariableType]

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter(out=sys.stderr)))

    trace.set_tracer_provider(provider)  # pyright: ignore[reportUnknownArgumentType]
    return provider


def _otlp_exporter(endpoint: str | None) -> Any:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter  # pyright: ignore[reportMissingImports,reportUnknownVariableType]
    except ImportError as exc:
        msg = (
            "opentelemetry-exporter-otlp is required for OTLP export. "
            "Install it with: pip install ocigen[otel]"
        )
        raise ImportError(msg) from exc

    return OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()

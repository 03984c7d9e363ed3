"""Provider settings, per-call generation options, and serving-mode resolution."""

import os
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ocigen.errors import ConfigurationError

# Models that are not offered on-demand; matched by prefix so dated or
# quantized variants (``...-instruct-fp8``) are covered too.
DEDICATED_ONLY_MODELS: tuple[str, ...] = (
    "meta.llama-4-maverick",
    "meta.llama-4-scout",
    "meta.llama-3.2-11b-vision",
)


def is_dedicated_only(model_id: str) -> bool:
    """Return ``True`` if *model_id* requires a dedicated AI cluster."""
    return any(model_id.startswith(prefix) for prefix in DEDICATED_ONLY_MODELS)


class ProviderSettings(BaseModel):
    """Where and how to reach the OCI Generative AI inference service.

    Unset fields can be filled from the environment with :meth:`from_env`:
    ``OCI_COMPARTMENT_ID``, ``OCI_REGION``, ``OCI_CONFIG_PROFILE`` and
    ``OCI_GENAI_ENDPOINT_ID``.
    """

    compartment_id: str | None = None
    region: str | None = None
    config_profile: str = "DEFAULT"
    config_file: str = "~/.oci/config"
    serving_mode: Literal["on-demand", "dedicated"] = "on-demand"
    endpoint_id: str | None = None
    auth_type: Literal["config-file", "session-token"] = "config-file"

    @classmethod
    def from_env(cls, **overrides: Any) -> "ProviderSettings":
        """Build settings from explicit *overrides*, falling back to env vars."""
        env: dict[str, Any] = {
            "compartment_id": os.environ.get("OCI_COMPARTMENT_ID"),
            "region": os.environ.get("OCI_REGION"),
            "config_profile": os.environ.get("OCI_CONFIG_PROFILE"),
            "endpoint_id": os.environ.get("OCI_GENAI_ENDPOINT_ID"),
        }
        values = {k: v for k, v in env.items() if v}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def resolve_serving_mode(
    model_id: str,
    settings: ProviderSettings,
    dedicated: bool = False,
) -> dict[str, str]:
    """Return the wire serving-mode descriptor for *model_id*.

    ``dedicated=True`` means *model_id* itself is an endpoint OCID.
    """
    if dedicated:
        return {"servingType": "DEDICATED", "endpointId": model_id}
    if settings.serving_mode == "dedicated" and settings.endpoint_id:
        return {"servingType": "DEDICATED", "endpointId": settings.endpoint_id}
    return {"servingType": "ON_DEMAND", "modelId": model_id}


def check_serving_mode(model_id: str, settings: ProviderSettings) -> None:
    """Reject dedicated-only models when configured for on-demand serving."""
    if settings.serving_mode == "on-demand" and is_dedicated_only(model_id):
        msg = (
            f"Model {model_id} requires a dedicated AI cluster. "
            "Set serving_mode='dedicated' and provide an endpoint_id."
        )
        raise ConfigurationError(msg)


# ---------------------------------------------------------------------------
# Per-call options
# ---------------------------------------------------------------------------


class ToolChoice(BaseModel):
    """How the model may use the declared tools."""

    type: Literal["auto", "required", "none", "tool"] = "auto"
    tool_name: str | None = None


class ResponseFormat(BaseModel):
    """Requested output format; a ``schema`` turns ``json`` into JSON-schema mode."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["text", "json"] = "text"
    json_schema: dict[str, Any] | None = Field(default=None, alias="schema")


class ProviderOptions(BaseModel):
    """OCI-specific knobs with no vendor-neutral equivalent."""

    reasoning_effort: Literal["LOW", "MEDIUM", "HIGH"] | None = None
    thinking_budget_tokens: int | None = None
    seed: int | None = None
    safety_mode: Literal["CONTEXTUAL", "STRICT", "OFF"] | None = None
    max_completion_tokens: int | None = None


class GenerationOptions(BaseModel):
    """Sampling and control parameters for one invocation.

    Every sampling field left as ``None`` is filled from the model's
    capability profile by the request builders.
    """

    max_output_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop_sequences: list[str] | None = None
    tool_choice: ToolChoice | None = None
    response_format: ResponseFormat | None = None
    provider_options: ProviderOptions = Field(default_factory=ProviderOptions)

"""Helpers shared by the three request builders."""

import logging
from collections.abc import Sequence
from typing import Any

from ocigen.core.interface.config import GenerationOptions, ToolChoice
from ocigen.core.interface.models import ToolDeclaration
from ocigen.core.polyfills.capabilities import CapabilityProfile

logger = logging.getLogger(__name__)

DEFAULT_REASONING_EFFORT = "MEDIUM"


def compact(fields: dict[str, Any]) -> dict[str, Any]:
    """Drop ``None`` values so unsupported or unset fields are omitted."""
    return {k: v for k, v in fields.items() if v is not None}


def pick(value: Any, default: Any) -> Any:
    """Caller value when set, capability default otherwise."""
    return value if value is not None else default


def sampling_fields(options: GenerationOptions, capabilities: CapabilityProfile) -> dict[str, Any]:
    """Sampling parameters common to every family, already compacted.

    Penalties are included only when the model accepts them; a caller-supplied
    penalty for a model that rejects penalties is dropped silently.
    """
    provider = options.provider_options
    fields: dict[str, Any] = {
        "maxTokens": options.max_output_tokens,
        "temperature": pick(options.temperature, capabilities.temperature),
        "topP": pick(options.top_p, capabilities.top_p),
        "topK": options.top_k,
        "seed": provider.seed,
    }
    if capabilities.supports_penalties:
        fields["frequencyPenalty"] = pick(options.frequency_penalty, capabilities.frequency_penalty)
        fields["presencePenalty"] = pick(options.presence_penalty, capabilities.presence_penalty)
    elif options.frequency_penalty is not None or options.presence_penalty is not None:
        logger.debug("Dropping penalty parameters: not supported by this model")
    return compact(fields)


def stop_sequences(options: GenerationOptions, capabilities: CapabilityProfile) -> list[str] | None:
    """Stop sequences to send, or ``None`` when unsupported or empty."""
    if not capabilities.supports_stop_sequences or not options.stop_sequences:
        return None
    return list(options.stop_sequences)


def function_tools(
    tools: Sequence[ToolDeclaration] | None,
    capabilities: CapabilityProfile,
) -> list[ToolDeclaration]:
    """Function tools that should be forwarded; non-function tools are ignored."""
    if not tools or not capabilities.supports_tools:
        return []
    return [tool for tool in tools if tool.type == "function"]


def reasoning_effort(options: GenerationOptions, capabilities: CapabilityProfile) -> str | None:
    """``reasoningEffort`` value for effort-parameter models, else ``None``."""
    if not capabilities.supports_reasoning or capabilities.reasoning_parameter != "effort":
        return None
    return options.provider_options.reasoning_effort or DEFAULT_REASONING_EFFORT


def thinking(options: GenerationOptions, capabilities: CapabilityProfile) -> dict[str, Any] | None:
    """Cohere ``thinking`` block for reasoning models, else ``None``."""
    if not capabilities.supports_reasoning or capabilities.reasoning_parameter != "thinking":
        return None
    return compact(
        {
            "type": "ENABLED",
            "budgetTokens": options.provider_options.thinking_budget_tokens,
        }
    )


def choice_type(choice: ToolChoice) -> str:
    """Upper-case wire name for a non-specific tool choice."""
    if choice.type == "tool":
        return "REQUIRED"
    return choice.type.upper()

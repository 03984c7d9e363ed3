"""Capability detection for OCI-hosted models.

Provides a structured profile of what each model accepts on the wire and a
registry that maps model identifiers to their profiles.  The request
builders consult the profile to fill sampling defaults and to leave out
fields a vendor rejects; the normalizer consults it to decide whether
reasoning text is surfaced.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

ModelFamily = Literal["cohere", "cohere-v2", "generic"]
ReasoningParameter = Literal["effort", "thinking", "none"]


class CapabilityProfile(BaseModel):
    """Immutable description of a model's defaults and accepted parameters.

    ``supports_reasoning`` says the model *produces* reasoning;
    ``reasoning_parameter`` says how (if at all) it is requested.  xAI Grok
    reasons by model variant and has ``reasoning_parameter="none"``.
    """

    model_config = ConfigDict(frozen=True)

    temperature: float = 0.2
    top_p: float = 0.9
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    supports_tools: bool = True
    supports_penalties: bool = True
    supports_stop_sequences: bool = True
    supports_reasoning: bool = False
    supports_tool_messages: bool = True
    reasoning_parameter: ReasoningParameter = "none"

    def with_overrides(self, **changes: Any) -> "CapabilityProfile":
        """Return a copy with *changes* applied; unknown keys are ignored."""
        known = {k: v for k, v in changes.items() if k in type(self).model_fields}
        return self.model_copy(update=known)

    @property
    def emits_reasoning_parameter(self) -> bool:
        return self.supports_reasoning and self.reasoning_parameter != "none"


@dataclass(frozen=True)
class VendorOverride:
    """Vendor-wide adjustment applied when ``matches(model_name)`` is true."""

    matches: Callable[[str], bool]
    changes: dict[str, Any]


def vendor_of(model_id: str) -> str:
    """Vendor prefix of an OCI model id (``google.gemini-2.5-flash`` -> ``google``)."""
    prefix = model_id.split(".", 1)[0]
    return prefix or "default"


def family_of(model_id: str) -> ModelFamily:
    """Wire protocol family for *model_id*.

    Command A models speak ``COHEREV2``; older Cohere models the legacy
    ``COHERE`` format; every other vendor uses ``GENERIC``.
    """
    if model_id.startswith("cohere.command-a"):
        return "cohere-v2"
    if model_id.startswith("cohere."):
        return "cohere"
    return "generic"


class CapabilityRegistry:
    """Maps model identifiers to their capability profiles.

    Resolution, most specific wins:

    1. vendor default (prefix before the first ``.``), else ``default``
    2. vendor-wide overrides whose predicate matches the model name
    3. exact model-id override
    """

    def __init__(self, default: CapabilityProfile | None = None) -> None:
        self._default = default or CapabilityProfile()
        self._vendors: dict[str, CapabilityProfile] = {}
        self._vendor_overrides: dict[str, list[VendorOverride]] = {}
        self._models: dict[str, dict[str, Any]] = {}

    def register_vendor(self, vendor: str, profile: CapabilityProfile) -> None:
        """Register the default profile for every model of *vendor*."""
        self._vendors[vendor] = profile

    def register_override(
        self,
        vendor: str,
        matches: Callable[[str], bool],
        **changes: Any,
    ) -> None:
        """Adjust *vendor* profiles for model names accepted by *matches*.

        Overrides apply in registration order.
        """
        self._vendor_overrides.setdefault(vendor, []).append(VendorOverride(matches, changes))

    def register_model(self, model_id: str, **changes: Any) -> None:
        """Pin field values for one exact model id."""
        self._models.setdefault(model_id, {}).update(changes)

    def lookup(self, model_id: str) -> CapabilityProfile:
        """Resolve the capability profile for *model_id*. Never raises."""
        vendor = vendor_of(model_id)
        profile = self._vendors.get(vendor, self._default)
        name = model_id.split(".", 1)[1] if "." in model_id else model_id

        for override in self._vendor_overrides.get(vendor, []):
            if override.matches(name):
                profile = profile.with_overrides(**override.changes)

        if model_id in self._models:
            profile = profile.with_overrides(**self._models[model_id])
        return profile

    def family(self, model_id: str) -> ModelFamily:
        return family_of(model_id)

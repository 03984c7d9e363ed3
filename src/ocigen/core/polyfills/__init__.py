"""Capability detection and wire-format polyfills."""

from ocigen.core.polyfills.capabilities import (
    CapabilityProfile,
    CapabilityRegistry,
    ModelFamily,
    family_of,
)
from ocigen.core.polyfills.registry_data import build_default_registry
from ocigen.core.polyfills.schema import sanitize
from ocigen.core.polyfills.tool_text import (
    assistant_text_with_calls,
    tool_call_directive,
    tool_result_directive,
)

__all__ = [
    "CapabilityProfile",
    "CapabilityRegistry",
    "ModelFamily",
    "assistant_text_with_calls",
    "build_default_registry",
    "family_of",
    "sanitize",
    "tool_call_directive",
    "tool_result_directive",
]

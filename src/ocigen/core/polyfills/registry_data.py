"""Static capability data for models served by OCI Generative AI.

Contains the per-vendor defaults, the vendor-wide name-based overrides and
the exact-model overrides, plus a helper to build a pre-loaded
``CapabilityRegistry``.  These values were established against the live
service; a parameter marked unsupported here makes the request fail if sent.
"""

from ocigen.core.polyfills.capabilities import CapabilityProfile, CapabilityRegistry

# ---------------------------------------------------------------------------
# Vendor defaults
# ---------------------------------------------------------------------------

VENDOR_PROFILES: dict[str, CapabilityProfile] = {
    # Cohere: good instruction following; reasoning only on "-reasoning-" models
    "cohere": CapabilityProfile(
        temperature=0.2,
        top_p=0.9,
        reasoning_parameter="thinking",
    ),
    # Google Gemini: OCI rejects penalties and exposes no reasoning parameter
    "google": CapabilityProfile(
        temperature=0.1,
        top_p=0.95,
        supports_penalties=False,
    ),
    # xAI Grok: no penalties, no stop sequences, no TOOL role / TOOL_CALL content
    "xai": CapabilityProfile(
        temperature=0.1,
        top_p=0.9,
        supports_penalties=False,
        supports_stop_sequences=False,
        supports_tool_messages=False,
    ),
    # Meta Llama: no TOOL role / TOOL_CALL content
    "meta": CapabilityProfile(
        temperature=0.2,
        top_p=0.9,
        supports_tool_messages=False,
    ),
    # OpenAI gpt-oss: reasoning via reasoningEffort
    "openai": CapabilityProfile(
        temperature=0.2,
        top_p=0.9,
        supports_reasoning=True,
        reasoning_parameter="effort",
    ),
}

DEFAULT_PROFILE = CapabilityProfile()


def _is_grok_reasoning(name: str) -> bool:
    if name.endswith("-non-reasoning") or "-non-reasoning-" in name:
        return False
    return name.endswith("-reasoning") or "-reasoning-" in name or name.startswith("grok-3-mini")


def build_default_registry() -> CapabilityRegistry:
    """Return a ``CapabilityRegistry`` pre-loaded with known OCI vendors."""
    registry = CapabilityRegistry(default=DEFAULT_PROFILE)
    for vendor, profile in VENDOR_PROFILES.items():
        registry.register_vendor(vendor, profile)

    # Cohere Command A reasoning variants accept a thinking block.
    registry.register_override("cohere", lambda name: "reasoning" in name, supports_reasoning=True)

    # Grok reasons by model variant, never by request parameter.
    registry.register_override("xai", _is_grok_reasoning, supports_reasoning=True)

    # Flash-Lite ships with thinking disabled.
    registry.register_model("google.gemini-2.5-flash-lite", supports_reasoning=False)

    return registry

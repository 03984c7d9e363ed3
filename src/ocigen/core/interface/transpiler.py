"""Transpiler protocol: converts CMS prompts into OCI ``chatRequest`` bodies.

Each wire family (legacy Cohere, Cohere V2, Generic) has a concrete
transpiler.  Responses travel the other way through
``ocigen.core.interface.normalizer``, which is shared by all families.
"""

from collections.abc import Sequence
from typing import Any, Protocol

from ocigen.core.interface.config import GenerationOptions
from ocigen.core.interface.models import Prompt, ToolDeclaration
from ocigen.core.polyfills.capabilities import CapabilityProfile, ModelFamily


class Transpiler(Protocol):
    """Protocol for family-specific request builders."""

    family: ModelFamily
    api_format: str

    def build(
        self,
        prompt: Prompt,
        tools: Sequence[ToolDeclaration] | None,
        options: GenerationOptions,
        capabilities: CapabilityProfile,
        stream: bool = False,
    ) -> dict[str, Any]:
        """Convert a CMS prompt into a camelCase ``chatRequest`` dict.

        Unset options are filled from *capabilities*; fields the family does
        not accept are left out entirely rather than sent as ``None``.
        """
        ...

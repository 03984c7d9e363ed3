"""Family-specific transpiler implementations."""

from ocigen.core.interface.transpiler import Transpiler
from ocigen.core.interface.transpilers.cohere import CohereTranspiler
from ocigen.core.interface.transpilers.cohere_v2 import CohereV2Transpiler
from ocigen.core.interface.transpilers.generic import GenericTranspiler
from ocigen.core.polyfills.capabilities import ModelFamily

_TRANSPILERS: dict[str, type] = {
    "cohere": CohereTranspiler,
    "cohere-v2": CohereV2Transpiler,
    "generic": GenericTranspiler,
}


def get_transpiler(family: ModelFamily) -> Transpiler:
    """Return a transpiler instance for *family*."""
    try:
        return _TRANSPILERS[family]()
    except KeyError:
        raise ValueError(f"Unknown model family: {family!r}") from None


__all__ = [
    "CohereTranspiler",
    "CohereV2Transpiler",
    "GenericTranspiler",
    "get_transpiler",
]

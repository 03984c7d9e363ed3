"""ocigen: canonical chat and tool calling on OCI Generative AI."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from ocigen.core.interface.client import ChatModel as ChatModel
    from ocigen.core.interface.client import OCIProvider as OCIProvider
    from ocigen.core.interface.client import create_oci as create_oci

_CLIENT_EXPORTS = {
    "ChatModel": "ocigen.core.interface.client",
    "OCIProvider": "ocigen.core.interface.client",
    "create_oci": "ocigen.core.interface.client",
}


def __getattr__(name: str) -> object:
    module_path = _CLIENT_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'ocigen' has no attribute {name!r}")

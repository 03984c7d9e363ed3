"""Canonical interface and OCI wire translation."""

from ocigen.core.interface.client import ChatModel, OCIProvider, create_oci
from ocigen.core.interface.config import (
    GenerationOptions,
    ProviderOptions,
    ProviderSettings,
    ResponseFormat,
    ToolChoice,
)
from ocigen.core.interface.events import StreamEvent
from ocigen.core.interface.models import (
    CanonicalMessage,
    ContentBlock,
    ContentPart,
    ConversationHistory,
    FilePart,
    GenerateResult,
    ReasoningBlock,
    TextBlock,
    TextPart,
    ToolCallBlock,
    ToolCallPart,
    ToolDeclaration,
    ToolOutput,
    ToolResultPart,
    Usage,
)
from ocigen.core.interface.normalizer import map_finish_reason, normalize
from ocigen.core.interface.streaming import StreamParser, simulate_stream
from ocigen.core.interface.transpiler import Transpiler
from ocigen.core.interface.transport import ChatTransport, OCITransport

__all__ = [
    "CanonicalMessage",
    "ChatModel",
    "ChatTransport",
    "ContentBlock",
    "ContentPart",
    "ConversationHistory",
    "FilePart",
    "GenerateResult",
    "GenerationOptions",
    "OCIProvider",
    "OCITransport",
    "ProviderOptions",
    "ProviderSettings",
    "ReasoningBlock",
    "ResponseFormat",
    "StreamEvent",
    "StreamParser",
    "TextBlock",
    "TextPart",
    "ToolCallBlock",
    "ToolCallPart",
    "ToolChoice",
    "ToolDeclaration",
    "ToolOutput",
    "ToolResultPart",
    "Transpiler",
    "Usage",
    "create_oci",
    "map_finish_reason",
    "normalize",
    "simulate_stream",
]

"""Canonical Message Schema (CMS): the vendor-neutral side of the engine.

Callers describe a conversation with ``CanonicalMessage`` objects and tools
with ``ToolDeclaration``; the engine answers with canonical content blocks
(``TextBlock``, ``ReasoningBlock``, ``ToolCallBlock``), a finish reason and
token ``Usage``.  No OCI wire shapes ever appear here.
"""

import json
from collections.abc import Iterable, Sequence
from typing import Annotated, Any, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Content Parts
# ---------------------------------------------------------------------------


class TextPart(BaseModel):
    """Plain text content part."""

    type: Literal["text"] = "text"
    text: str


class FilePart(BaseModel):
    """Binary attachment carried as base64 text."""

    type: Literal["file"] = "file"
    data: str
    media_type: str | None = None


class ToolCallPart(BaseModel):
    """A tool invocation previously emitted by the assistant."""

    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    input: str | dict[str, Any] = "{}"

    @property
    def arguments_json(self) -> str:
        """The call arguments as a JSON string."""
        if isinstance(self.input, str):
            return self.input
        return json.dumps(self.input, separators=(",", ":"))

    @property
    def arguments(self) -> Any:
        """The call arguments as structured data.

        Unparseable string input is wrapped as ``{"raw": input}``.
        """
        if not isinstance(self.input, str):
            return self.input
        try:
            return json.loads(self.input) if self.input else {}
        except json.JSONDecodeError:
            return {"raw": self.input}


class ToolOutput(BaseModel):
    """Tagged tool output: plain text, JSON value, or error text."""

    type: Literal["text", "json", "error-text"] = "text"
    value: Any = None


class ToolResultPart(BaseModel):
    """The result of executing a tool, answering a prior ``ToolCallPart``.

    ``output`` may also be a raw string or missing; both are tolerated.
    """

    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str | None = None
    output: ToolOutput | str | None = None

    @property
    def output_text(self) -> str:
        """Render the output as text; JSON values are serialized, ``None`` is empty."""
        output = self.output
        if output is None:
            return ""
        if isinstance(output, str):
            return output
        if output.type == "json":
            return json.dumps(output.value, separators=(",", ":"))
        if output.value is None:
            return ""
        return output.value if isinstance(output.value, str) else str(output.value)

    @property
    def output_value(self) -> Any:
        """The output as structured data where possible (JSON outputs stay structured)."""
        if isinstance(self.output, ToolOutput) and self.output.type == "json":
            return self.output.value
        return self.output_text


ContentPart = Annotated[
    Union[TextPart, FilePart, ToolCallPart, ToolResultPart],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Canonical Message
# ---------------------------------------------------------------------------


class CanonicalMessage(BaseModel):
    """A single message in the canonical format.

    Roles:
    - system: instruction text (``content`` is usually a plain string)
    - user: text and file parts
    - assistant: text and tool-call parts
    - tool: tool-result parts
    """

    role: Literal["system", "user", "assistant", "tool"]
    content: str | list[ContentPart] = []

    @property
    def parts(self) -> list[ContentPart]:
        """Content as a list of parts; string content becomes one ``TextPart``."""
        if isinstance(self.content, str):
            return [TextPart(text=self.content)] if self.content else []
        return list(self.content)

    @property
    def text(self) -> str:
        """Concatenated text of all text parts, newline separated."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(p.text for p in self.content if isinstance(p, TextPart))

    @property
    def tool_calls(self) -> list[ToolCallPart]:
        return [p for p in self.parts if isinstance(p, ToolCallPart)]

    @property
    def tool_results(self) -> list[ToolResultPart]:
        return [p for p in self.parts if isinstance(p, ToolResultPart)]

    @classmethod
    def system(cls, text: str) -> "CanonicalMessage":
        """Create a system message."""
        return cls(role="system", content=text)

    @classmethod
    def user(cls, text: str, *files: FilePart) -> "CanonicalMessage":
        """Create a user message with optional file attachments."""
        parts: list[ContentPart] = [TextPart(text=text)] if text else []
        parts.extend(files)
        return cls(role="user", content=parts)

    @classmethod
    def assistant(
        cls,
        text: str = "",
        tool_calls: Iterable[ToolCallPart] = (),
    ) -> "CanonicalMessage":
        """Create an assistant message."""
        parts: list[ContentPart] = [TextPart(text=text)] if text else []
        parts.extend(tool_calls)
        return cls(role="assistant", content=parts)

    @classmethod
    def tool(cls, *results: ToolResultPart) -> "CanonicalMessage":
        """Create a tool-result message."""
        return cls(role="tool", content=list(results))


class ConversationHistory(BaseModel):
    """An ordered sequence of canonical messages forming a conversation."""

    messages: list[CanonicalMessage] = []

    def append(self, message: CanonicalMessage) -> None:
        """Append a message to the history."""
        self.messages.append(message)

    @property
    def has_tool_results(self) -> bool:
        return any(m.role == "tool" and m.tool_results for m in self.messages)

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):  # type: ignore[override]
        return iter(self.messages)


Prompt = ConversationHistory | Sequence[CanonicalMessage] | None


def as_messages(prompt: Prompt) -> list[CanonicalMessage]:
    """Normalize any accepted prompt shape to a plain message list."""
    if prompt is None:
        return []
    if isinstance(prompt, ConversationHistory):
        return list(prompt.messages)
    return list(prompt)


# ---------------------------------------------------------------------------
# Tool Declarations
# ---------------------------------------------------------------------------


class ToolDeclaration(BaseModel):
    """A tool the model may call, with a JSON-Schema input specification.

    Only ``type="function"`` tools are forwarded to the backend.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=lambda: dict[str, Any]())
    type: str = "function"


# ---------------------------------------------------------------------------
# Output: canonical content blocks, usage, finish reason
# ---------------------------------------------------------------------------


def generate_id() -> str:
    """Synthetic id for tool calls and stream spans the backend did not name."""
    return f"oci-{uuid4().hex[:12]}"


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ReasoningBlock(BaseModel):
    type: Literal["reasoning"] = "reasoning"
    text: str


class ToolCallBlock(BaseModel):
    """A tool call requested by the model; ``input`` is stringified JSON."""

    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str = Field(default_factory=generate_id)
    tool_name: str
    input: str = "{}"


ContentBlock = Annotated[
    Union[TextBlock, ReasoningBlock, ToolCallBlock],
    Field(discriminator="type"),
]

FinishReason = Literal["stop", "length", "content-filter", "tool-calls", "error", "other"]


def _token_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class Usage(BaseModel):
    """Token usage; missing or non-numeric counts are zero, never ``None``."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def of(cls, input_tokens: Any, output_tokens: Any, total: Any = None) -> "Usage":
        inp = _token_count(input_tokens)
        out = _token_count(output_tokens)
        return cls(input_tokens=inp, output_tokens=out, total_tokens=_token_count(total) or inp + out)


class GenerateResult(BaseModel):
    """Outcome of a non-streaming ``generate`` call."""

    content: list[ContentBlock] = []
    finish_reason: FinishReason = "stop"
    usage: Usage = Field(default_factory=Usage)
    model_id: str | None = None
    request_body: dict[str, Any] | None = None
    warnings: list[str] = []

    @property
    def text(self) -> str:
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def reasoning(self) -> str:
        return "".join(b.text for b in self.content if isinstance(b, ReasoningBlock))

    @property
    def tool_calls(self) -> list[ToolCallBlock]:
        return [b for b in self.content if isinstance(b, ToolCallBlock)]

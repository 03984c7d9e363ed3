"""Canonical stream events emitted by ``ChatModel.stream``.

Ordering contract for one stream:

* ``stream-start`` first, then ``response-metadata``.
* every ``*-start`` is followed by deltas carrying the same ``id`` and
  exactly one matching ``*-end``;
* ``tool-call`` for an id only after that id's ``tool-input-end``;
* exactly one ``finish`` at natural end, or exactly one ``error`` that
  terminates the stream with no further structural events.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from ocigen.core.interface.models import FinishReason, Usage


class _Event(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


class StreamStart(_Event):
    type: Literal["stream-start"] = "stream-start"
    warnings: list[str] = []


class ResponseMetadata(_Event):
    type: Literal["response-metadata"] = "response-metadata"
    model_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TextStart(_Event):
    type: Literal["text-start"] = "text-start"
    id: str


class TextDelta(_Event):
    type: Literal["text-delta"] = "text-delta"
    id: str
    delta: str


class TextEnd(_Event):
    type: Literal["text-end"] = "text-end"
    id: str


class ReasoningStart(_Event):
    type: Literal["reasoning-start"] = "reasoning-start"
    id: str


class ReasoningDelta(_Event):
    type: Literal["reasoning-delta"] = "reasoning-delta"
    id: str
    delta: str


class ReasoningEnd(_Event):
    type: Literal["reasoning-end"] = "reasoning-end"
    id: str


class ToolInputStart(_Event):
    type: Literal["tool-input-start"] = "tool-input-start"
    id: str
    tool_name: str


class ToolInputDelta(_Event):
    type: Literal["tool-input-delta"] = "tool-input-delta"
    id: str
    delta: str


class ToolInputEnd(_Event):
    type: Literal["tool-input-end"] = "tool-input-end"
    id: str


class ToolCallEvent(_Event):
    """Complete summary of one tool call, emitted after its ``tool-input-end``."""

    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    input: str


class Finish(_Event):
    type: Literal["finish"] = "finish"
    finish_reason: FinishReason
    usage: Usage


class ErrorEvent(_Event):
    """Terminal failure; carries the translated exception."""

    type: Literal["error"] = "error"
    error: Any


StreamEvent = Annotated[
    Union[
        StreamStart,
        ResponseMetadata,
        TextStart,
        TextDelta,
        TextEnd,
        ReasoningStart,
        ReasoningDelta,
        ReasoningEnd,
        ToolInputStart,
        ToolInputDelta,
        ToolInputEnd,
        ToolCallEvent,
        Finish,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

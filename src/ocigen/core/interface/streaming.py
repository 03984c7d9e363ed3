"""Streaming protocol parser: OCI server-sent events to canonical stream events.

``StreamParser`` consumes raw SSE chunks as they arrive, reassembles
partial lines, decodes each ``data:`` payload according to the wire family
and keeps the open-span state (text, reasoning, tool inputs).  Each call to
:meth:`StreamParser.feed` returns the events decoded so far, in order;
:meth:`StreamParser.finish` closes whatever is still open and emits the
single ``finish`` event.

Family grammars:

* ``generic``: ``message.content`` ``TEXT`` deltas, ``message.reasoningContent``
  deltas, ``message.toolCalls`` fragments (only the first fragment of a
  call carries ``id``/``name``), ``finishReason`` and ``usage`` at the end.
* ``cohere``: ``text`` deltas; the terminal event carries ``finishReason``,
  the full ``text`` again, and any ``toolCalls`` with complete parameters.
* ``cohere-v2``: ``message.content`` ``TEXT``/``THINKING`` deltas,
  ``message.toolPlan`` and ``message.toolCalls``.

When the backend answers without streaming, :func:`simulate_stream` turns
the complete ``GenerateResult`` into the same event sequence.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from ocigen.core.interface.events import (
    Finish,
    ReasoningDelta,
    ReasoningEnd,
    ReasoningStart,
    StreamEvent,
    TextDelta,
    TextEnd,
    TextStart,
    ToolCallEvent,
    ToolInputDelta,
    ToolInputEnd,
    ToolInputStart,
)
from ocigen.core.interface.models import (
    GenerateResult,
    ReasoningBlock,
    TextBlock,
    ToolCallBlock,
    Usage,
    generate_id,
)
from ocigen.core.interface.normalizer import map_finish_reason, parse_usage, stringify_arguments
from ocigen.core.polyfills.capabilities import CapabilityProfile, ModelFamily
from ocigen.errors import StreamParseError

logger = logging.getLogger(__name__)

SIMULATED_CHUNK_SIZE = 50

_DONE = "[DONE]"


@dataclass
class _ToolInput:
    name: str
    arguments: str = ""
    ended: bool = False


@dataclass
class _SpanState:
    """Open spans of one stream; discarded when the stream closes."""

    text_id: str | None = None
    reasoning_id: str | None = None
    text_emitted: bool = False
    tools: dict[str, _ToolInput] = field(default_factory=dict)
    tool_order: list[str] = field(default_factory=list)
    tool_indexes: dict[int, str] = field(default_factory=dict)
    summarized: set[str] = field(default_factory=set)


class StreamParser:
    """Incremental decoder for one streamed invocation."""

    def __init__(self, family: ModelFamily, capabilities: CapabilityProfile) -> None:
        self.family = family
        self.capabilities = capabilities
        self.usage = Usage()
        self.raw_finish_reason: str | None = None
        self._state = _SpanState()
        self._buffer = ""
        self._data: list[str] = []
        self._finished = False

    # -- framing -----------------------------------------------------------

    def feed(self, chunk: bytes | str) -> list[StreamEvent]:
        """Consume one transport chunk and return the events it completes."""
        if isinstance(chunk, bytes):
            chunk = chunk.decode("utf-8", errors="replace")
        self._buffer += chunk

        events: list[StreamEvent] = []
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            events.extend(self._consume_line(line.rstrip("\r")))
        return events

    def _consume_line(self, line: str) -> list[StreamEvent]:
        if not line:
            return self._dispatch()
        if line.startswith("data:"):
            self._data.append(line[5:].lstrip())
        # ``event:``, ``id:``, ``retry:`` and ``:`` comments carry nothing we use.
        return []

    def _dispatch(self) -> list[StreamEvent]:
        if not self._data:
            return []
        payload = "\n".join(self._data)
        self._data = []
        if payload.strip() == _DONE:
            return []
        events: list[StreamEvent] = []
        try:
            self._decode(_load(payload), events)
        except StreamParseError as exc:
            logger.debug("Skipping stream fragment: %s (%r)", exc, exc.fragment[:200])
        except Exception as exc:
            logger.debug("Skipping malformed stream fragment: %s (%r)", exc, payload[:200])
        return events

    # -- decoding ----------------------------------------------------------

    def decode(self, event: dict[str, Any]) -> list[StreamEvent]:
        """Translate one decoded SSE payload into canonical events."""
        events: list[StreamEvent] = []
        self._decode(event, events)
        return events

    def _decode(self, event: dict[str, Any], events: list[StreamEvent]) -> None:
        # Appends as it goes: a fragment that fails halfway keeps its opened spans.
        choices = event.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            event = {**event, **choices[0]}

        if event.get("usage"):
            self.usage = parse_usage(event["usage"])
        terminal = bool(event.get("finishReason"))
        if terminal:
            raw = event["finishReason"]
            self.raw_finish_reason = raw if isinstance(raw, str) else None

        if self.family == "cohere":
            self._decode_cohere(event, terminal, events)
        else:
            self._decode_message(event.get("message"), terminal, events)

    def _decode_cohere(self, event: dict[str, Any], terminal: bool, events: list[StreamEvent]) -> None:
        text = event.get("text")
        if isinstance(text, str) and text and not self._repeats_text(terminal):
            self._text_delta(text, events)
        tool_calls = event.get("toolCalls")
        if isinstance(tool_calls, list):
            for raw in tool_calls:
                if isinstance(raw, dict) and raw.get("name"):
                    self._atomic_tool_call(raw["name"], raw.get("parameters"), events)

    def _repeats_text(self, terminal: bool) -> bool:
        # Cohere terminal events repeat the full text already streamed.
        return terminal and self.family != "generic" and self._state.text_emitted

    def _decode_message(self, message: Any, terminal: bool, events: list[StreamEvent]) -> None:
        if not isinstance(message, dict):
            return

        if self.capabilities.supports_reasoning:
            reasoning = message.get("reasoningContent")
            if isinstance(reasoning, str) and reasoning:
                self._reasoning_delta(reasoning, events)
            plan = message.get("toolPlan")
            if self.family == "cohere-v2" and isinstance(plan, str) and plan:
                self._reasoning_delta(plan, events)

        content = message.get("content")
        if isinstance(content, str):
            content = [{"type": "TEXT", "text": content}]
        if isinstance(content, list):
            for part in content:
                if not isinstance(part, dict):
                    continue
                kind = str(part.get("type", "")).upper()
                if kind == "TEXT":
                    text = part.get("text")
                    if isinstance(text, str) and text and not self._repeats_text(terminal):
                        self._text_delta(text, events)
                elif kind == "THINKING" and self.capabilities.supports_reasoning:
                    thought = part.get("thinking") or part.get("text")
                    if isinstance(thought, str) and thought:
                        self._reasoning_delta(thought, events)
                elif kind == "TOOL_CALL":
                    self._tool_fragment(part, None, events)

        tool_calls = message.get("toolCalls", message.get("tool_calls"))
        if isinstance(tool_calls, dict):
            tool_calls = [tool_calls]
        if isinstance(tool_calls, list):
            for raw in tool_calls:
                if isinstance(raw, dict):
                    self._tool_fragment(raw, raw.get("index"), events)

    # -- span transitions ----------------------------------------------------

    def _text_delta(self, text: str, events: list[StreamEvent]) -> None:
        state = self._state
        self._close_reasoning(events)
        if state.text_id is None:
            state.text_id = generate_id()
            events.append(TextStart(id=state.text_id))
        events.append(TextDelta(id=state.text_id, delta=text))
        state.text_emitted = True

    def _reasoning_delta(self, text: str, events: list[StreamEvent]) -> None:
        state = self._state
        self._close_text(events)
        if state.reasoning_id is None:
            state.reasoning_id = generate_id()
            events.append(ReasoningStart(id=state.reasoning_id))
        events.append(ReasoningDelta(id=state.reasoning_id, delta=text))

    def _close_text(self, events: list[StreamEvent]) -> None:
        if self._state.text_id is not None:
            events.append(TextEnd(id=self._state.text_id))
            self._state.text_id = None

    def _close_reasoning(self, events: list[StreamEvent]) -> None:
        if self._state.reasoning_id is not None:
            events.append(ReasoningEnd(id=self._state.reasoning_id))
            self._state.reasoning_id = None

    def _start_tool(self, call_id: str, name: str, events: list[StreamEvent]) -> None:
        self._close_text(events)
        self._close_reasoning(events)
        self._state.tools[call_id] = _ToolInput(name=name)
        self._state.tool_order.append(call_id)
        events.append(ToolInputStart(id=call_id, tool_name=name))

    def _tool_fragment(self, raw: dict[str, Any], index: Any, events: list[StreamEvent]) -> None:
        state = self._state
        function = raw.get("function") if isinstance(raw.get("function"), dict) else {}
        name = raw.get("name") or function.get("name")
        arguments = raw.get("arguments", function.get("arguments"))

        open_ids = [i for i in state.tool_order if not state.tools[i].ended]
        last_open = open_ids[-1] if open_ids else None

        call_id = raw.get("id")
        if call_id and call_id in state.tools:
            pass
        elif call_id:
            self._start_tool(call_id, name or "unknown", events)
        elif isinstance(index, int) and index in state.tool_indexes:
            call_id = state.tool_indexes[index]
        elif name and (last_open is None or state.tools[last_open].name != name):
            call_id = generate_id()
            self._start_tool(call_id, name, events)
        elif last_open is not None:
            # Continuation fragments carry neither id nor index.
            call_id = last_open
        else:
            logger.debug("Dropping tool-call fragment with no open tool: %r", raw)
            return
        if isinstance(index, int):
            state.tool_indexes[index] = call_id

        tool = state.tools[call_id]
        if name and tool.name == "unknown":
            tool.name = name
        if arguments:
            delta = stringify_arguments(arguments)
            if delta == tool.arguments:
                # A terminal event repeating the complete arguments.
                return
            tool.arguments += delta
            events.append(ToolInputDelta(id=call_id, delta=delta))

    def _atomic_tool_call(self, name: str, parameters: Any, events: list[StreamEvent]) -> None:
        call_id = generate_id()
        self._start_tool(call_id, name, events)
        tool = self._state.tools[call_id]
        tool.arguments = stringify_arguments(parameters)
        tool.ended = True
        events.append(ToolInputDelta(id=call_id, delta=tool.arguments))
        events.append(ToolInputEnd(id=call_id))

    # -- end of stream -------------------------------------------------------

    def finish(self) -> list[StreamEvent]:
        """Close open spans, summarize tool calls, and emit the one ``finish``.

        Calling it again returns an empty list.
        """
        if self._finished:
            return []
        self._finished = True

        events = self._dispatch()
        state = self._state
        self._close_text(events)
        self._close_reasoning(events)
        for call_id in state.tool_order:
            tool = state.tools[call_id]
            if not tool.ended:
                tool.ended = True
                events.append(ToolInputEnd(id=call_id))
        for call_id in state.tool_order:
            if call_id not in state.summarized:
                state.summarized.add(call_id)
                tool = state.tools[call_id]
                events.append(
                    ToolCallEvent(
                        tool_call_id=call_id,
                        tool_name=tool.name,
                        input=tool.arguments or "{}",
                    )
                )

        reason = "tool-calls" if state.tool_order else map_finish_reason(self.raw_finish_reason)
        events.append(Finish(finish_reason=reason, usage=self.usage))
        return events


def _load(payload: str) -> dict[str, Any]:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise StreamParseError(payload, str(exc)) from exc
    if not isinstance(data, dict):
        raise StreamParseError(payload, "payload is not a JSON object")
    return data


def simulate_stream(result: GenerateResult, chunk_size: int = SIMULATED_CHUNK_SIZE) -> list[StreamEvent]:
    """Replay a complete result as stream events.

    Text and reasoning are cut into *chunk_size* deltas inside one matched
    start/end pair each; every tool call gets its own start, a single delta
    carrying the full input, an end, and then its ``tool-call`` summary.
    """
    events: list[StreamEvent] = []

    for block in result.content:
        if isinstance(block, (TextBlock, ReasoningBlock)) and block.text:
            span_id = generate_id()
            is_text = isinstance(block, TextBlock)
            events.append(TextStart(id=span_id) if is_text else ReasoningStart(id=span_id))
            for start in range(0, len(block.text), chunk_size):
                piece = block.text[start : start + chunk_size]
                events.append(
                    TextDelta(id=span_id, delta=piece) if is_text else ReasoningDelta(id=span_id, delta=piece)
                )
            events.append(TextEnd(id=span_id) if is_text else ReasoningEnd(id=span_id))

    tool_calls: list[ToolCallBlock] = result.tool_calls
    for call in tool_calls:
        events.append(ToolInputStart(id=call.tool_call_id, tool_name=call.tool_name))
        events.append(ToolInputDelta(id=call.tool_call_id, delta=call.input))
        events.append(ToolInputEnd(id=call.tool_call_id))
        events.append(ToolCallEvent(tool_call_id=call.tool_call_id, tool_name=call.tool_name, input=call.input))

    reason = "tool-calls" if tool_calls else result.finish_reason
    events.append(Finish(finish_reason=reason, usage=result.usage))
    return events

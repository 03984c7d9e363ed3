"""Shared error types for the translation engine."""

from __future__ import annotations


class OCIGenAIError(Exception):
    """Base error for all ocigen failures."""


class ConfigurationError(OCIGenAIError):
    """Provider settings cannot address the requested model."""


class TransportError(OCIGenAIError):
    """The backend call failed (rejected request, connection error, timeout).

    Never retried by this layer. ``hint`` is an optional human-readable
    addition supplied by an error-description hook.
    """

    def __init__(self, model_id: str, cause: BaseException | str, hint: str | None = None) -> None:
        self.model_id = model_id
        self.cause = cause
        self.hint = hint
        msg = f"[OCI GenAI] Request to {model_id} failed: {cause}"
        if hint:
            msg += f"\nHint: {hint}"
        super().__init__(msg)


class UnexpectedResponseError(TransportError):
    """The backend answered with something that is not a chat result."""

    def __init__(self, model_id: str, detail: str = "unexpected response type") -> None:
        super().__init__(model_id, detail)


class GenerationCancelledError(OCIGenAIError):
    """The caller cancelled the invocation before it completed."""

    def __init__(self, model_id: str) -> None:
        self.model_id = model_id
        super().__init__(f"Request to {model_id} was aborted")


class StreamParseError(OCIGenAIError):
    """A single streaming fragment could not be decoded.

    Raised internally by the stream parser and always caught there: the
    fragment is skipped and parsing continues.
    """

    def __init__(self, fragment: str, detail: str = "") -> None:
        self.fragment = fragment
        self.detail = detail
        super().__init__("Malformed stream fragment" + (f": {detail}" if detail else ""))

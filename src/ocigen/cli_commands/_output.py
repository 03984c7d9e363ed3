"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from ocigen.core.interface.models import GenerateResult  # noqa: TC001
from ocigen.core.polyfills.capabilities import CapabilityProfile  # noqa: TC001

console = Console()


def print_capabilities_table(profiles: dict[str, tuple[str, CapabilityProfile]]) -> None:
    """Pretty-print resolved capability profiles, one row per model id."""
    table = Table(title="Model Capabilities")
    table.add_column("Model", style="cyan")
    table.add_column("Family")
    table.add_column("Temp", justify="right")
    table.add_column("Top P", justify="right")
    table.add_column("Penalties")
    table.add_column("Stop")
    table.add_column("Tool msgs")
    table.add_column("Reasoning")

    for model_id, (family, profile) in profiles.items():
        reasoning = "no"
        if profile.supports_reasoning:
            reasoning = f"yes ({profile.reasoning_parameter})"
        table.add_row(
            model_id,
            family,
            f"{profile.temperature:g}",
            f"{profile.top_p:g}",
            _yes_no(profile.supports_penalties),
            _yes_no(profile.supports_stop_sequences),
            _yes_no(profile.supports_tool_messages),
            reasoning,
        )

    console.print(table)


def print_request(serving_mode: dict[str, str], request: dict[str, Any]) -> None:
    """Print the serving mode and the ``chatRequest`` body as JSON."""
    console.print(f"[bold]Serving mode:[/bold] {json.dumps(serving_mode)}")
    console.print_json(json.dumps(request))


def print_result(result: GenerateResult, *, as_json: bool = False) -> None:
    """Pretty-print a generation result."""
    if as_json:
        console.print_json(result.model_dump_json(exclude={"request_body"}))
        return

    if result.reasoning:
        console.print(f"[dim]{result.reasoning}[/dim]\n")
    if result.text:
        console.print(result.text)
    for call in result.tool_calls:
        console.print(f"[cyan]tool-call[/cyan] {call.tool_name}({_truncate(call.input)})")

    usage = result.usage
    console.print(
        f"\n[dim]finish: {result.finish_reason}  tokens: "
        f"{usage.input_tokens} in / {usage.output_tokens} out / {usage.total_tokens} total[/dim]"
    )


def _yes_no(value: bool) -> str:
    return "[green]yes[/green]" if value else "[red]no[/red]"


def _truncate(text: str, max_len: int = 80) -> str:
    """Truncate a string to *max_len* characters with an ellipsis."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."

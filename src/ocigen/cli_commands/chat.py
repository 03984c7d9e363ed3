"""``ocigen chat``: send one prompt to an OCI-hosted model."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING, Any

import click

from ocigen.cli_commands._output import console, print_result
from ocigen.cli_commands.request import build_prompt, load_tools

if TYPE_CHECKING:
    from ocigen.core.interface.client import ChatModel
    from ocigen.core.interface.config import GenerationOptions


async def _stream(model: ChatModel, messages: list[Any], tools: list[Any] | None, options: GenerationOptions) -> str:
    """Print text deltas as they arrive; return the finish reason."""
    finish_reason = "stop"
    async for event in model.stream(messages, tools, options):
        if event.type == "text-delta":
            console.print(event.delta, end="", highlight=False, markup=False)
        elif event.type == "reasoning-delta":
            console.print(event.delta, end="", style="dim", highlight=False, markup=False)
        elif event.type == "tool-call":
            console.print(f"\n[cyan]tool-call[/cyan] {event.tool_name}({event.input})")
        elif event.type == "error":
            raise event.error
        elif event.type == "finish":
            finish_reason = event.finish_reason
    console.print()
    return finish_reason


@click.command()
@click.argument("model_id")
@click.argument("prompt")
@click.option("--system", "-s", default=None, help="System instruction.")
@click.option("--tools", "tools_file", type=click.Path(exists=True), default=None, help="JSON file of tool declarations.")
@click.option("--max-tokens", type=int, default=None, help="Maximum output tokens.")
@click.option("--temperature", type=float, default=None, help="Sampling temperature.")
@click.option("--stream", is_flag=True, help="Stream the answer as it is generated.")
@click.option("--json", "as_json", is_flag=True, help="Output the result as JSON.")
@click.option("--compartment", default=None, help="Compartment OCID (default: OCI_COMPARTMENT_ID).")
@click.option("--region", default=None, help="OCI region (default: OCI_REGION or the config file).")
@click.option("--profile", default=None, help="OCI config profile (default: OCI_CONFIG_PROFILE or DEFAULT).")
@click.option("--endpoint", is_flag=True, help="MODEL_ID is a dedicated endpoint OCID.")
def chat(
    model_id: str,
    prompt: str,
    system: str | None,
    tools_file: str | None,
    max_tokens: int | None,
    temperature: float | None,
    stream: bool,
    as_json: bool,
    compartment: str | None,
    region: str | None,
    profile: str | None,
    endpoint: bool,
) -> None:
    """Send PROMPT to MODEL_ID and print the answer."""
    from ocigen.core.interface.client import create_oci
    from ocigen.core.interface.config import GenerationOptions
    from ocigen.errors import OCIGenAIError

    try:
        tools = load_tools(tools_file) if tools_file else None
    except (OSError, ValueError, KeyError, TypeError) as exc:
        console.print(f"[red]Invalid tools file:[/red] {exc}")
        sys.exit(1)

    try:
        provider = create_oci(compartment_id=compartment, region=region, config_profile=profile)
        model = provider.language_model(model_id, dedicated=endpoint)
    except OCIGenAIError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(1)

    messages = build_prompt(prompt, system)
    options = GenerationOptions(max_output_tokens=max_tokens, temperature=temperature)

    try:
        if stream:
            asyncio.run(_stream(model, messages, tools, options))
        else:
            result = asyncio.run(model.generate(messages, tools, options))
            print_result(result, as_json=as_json)
    except Exception as exc:
        console.print(f"[red]Request failed:[/red] {exc}")
        sys.exit(1)

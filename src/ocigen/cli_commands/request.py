"""``ocigen request``: print the wire request a prompt translates to, offline."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from ocigen.cli_commands._output import console, print_request


def load_tools(path: str) -> list[Any]:
    """Read tool declarations from a JSON file holding a list of objects.

    Each entry needs ``name``; ``description`` and ``input_schema`` (or
    ``parameters``) are optional.
    """
    from ocigen.core.interface.models import ToolDeclaration

    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        msg = "tools file must contain a JSON list"
        raise ValueError(msg)
    tools = []
    for entry in raw:
        schema = entry.get("input_schema", entry.get("parameters", {}))
        tools.append(
            ToolDeclaration(
                name=entry["name"],
                description=entry.get("description", ""),
                input_schema=schema,
            )
        )
    return tools


def build_prompt(prompt: str, system: str | None) -> list[Any]:
    from ocigen.core.interface.models import CanonicalMessage

    messages = [CanonicalMessage.system(system)] if system else []
    messages.append(CanonicalMessage.user(prompt))
    return messages


@click.command()
@click.argument("model_id")
@click.argument("prompt")
@click.option("--system", "-s", default=None, help="System instruction.")
@click.option("--tools", "tools_file", type=click.Path(exists=True), default=None, help="JSON file of tool declarations.")
@click.option("--max-tokens", type=int, default=None, help="Maximum output tokens.")
@click.option("--stream", is_flag=True, help="Build the streaming variant of the request.")
def request(
    model_id: str,
    prompt: str,
    system: str | None,
    tools_file: str | None,
    max_tokens: int | None,
    stream: bool,
) -> None:
    """Show the chatRequest body MODEL_ID would receive for PROMPT."""
    from ocigen.core.interface.client import ChatModel
    from ocigen.core.interface.config import GenerationOptions, ProviderSettings

    try:
        tools = load_tools(tools_file) if tools_file else None
    except (OSError, ValueError, KeyError, TypeError) as exc:
        console.print(f"[red]Invalid tools file:[/red] {exc}")
        sys.exit(1)

    # The transport is never used; building a request is purely local.
    model = ChatModel(model_id, ProviderSettings.from_env())
    body = model.build_request(
        build_prompt(prompt, system),
        tools,
        GenerationOptions(max_output_tokens=max_tokens),
        stream=stream,
    )
    print_request(model.serving_mode, body)

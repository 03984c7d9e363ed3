"""``ocigen models``: show the resolved capability profile of model ids."""

from __future__ import annotations

import json

import click

from ocigen.cli_commands._output import console, print_capabilities_table


@click.command()
@click.argument("model_ids", nargs=-1, required=True)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def models(model_ids: tuple[str, ...], as_json: bool) -> None:
    """Show wire family and capabilities for each of MODEL_IDS."""
    from ocigen.core.polyfills.registry_data import build_default_registry

    registry = build_default_registry()
    profiles = {model_id: (registry.family(model_id), registry.lookup(model_id)) for model_id in model_ids}

    if as_json:
        data = {
            model_id: {"family": family, **profile.model_dump()}
            for model_id, (family, profile) in profiles.items()
        }
        console.print_json(json.dumps(data))
        return

    print_capabilities_table(profiles)

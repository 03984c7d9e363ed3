"""ocigen CLI entrypoint."""

from __future__ import annotations

import sys

import click

from ocigen import __version__
from ocigen.utils.debug import configure_debug_logging
from ocigen.utils.telemetry import EXPORTERS, OTLP_ENDPOINT_ENV, configure_telemetry, trace_exporter_from_env


@click.group()
@click.version_option(version=__version__, prog_name="ocigen")
@click.option("--debug", is_flag=True, help="Log request bodies and stream fragments to stderr.")
@click.option(
    "--trace",
    type=click.Choice(EXPORTERS),
    default=None,
    help="Export model.generate/model.stream spans (console: JSON on stderr). Env: OCIGEN_TRACE.",
)
@click.option(
    "--otlp-endpoint",
    envvar=OTLP_ENDPOINT_ENV,
    default=None,
    help="OTLP collector endpoint for --trace otlp.",
)
def main(debug: bool, trace: str | None, otlp_endpoint: str | None) -> None:
    """ocigen: OCI Generative AI chat from the command line."""
    configure_debug_logging(force=debug)

    exporter = trace or trace_exporter_from_env()
    if exporter is not None:
        from ocigen.cli_commands._output import console

        try:
            configure_telemetry(exporter, otlp_endpoint=otlp_endpoint)  # type: ignore[arg-type]
        except ImportError as exc:
            console.print(f"[red]Tracing unavailable:[/red] {exc}")
            sys.exit(1)


# Register subcommands
from ocigen.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()

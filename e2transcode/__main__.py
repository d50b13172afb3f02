"""Click-based command line entry point for e2transcode."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import click
import yaml

from . import __version__
from .config import ConfigurationError, load_settings, merge_overrides, resolve, resolve_root
from .enigma2 import FetchError, list_services
from .logging_conf import configure_logging


@click.group(help="Transcoding server configuration toolkit")
@click.version_option(__version__)
@click.option("--verbose", is_flag=True, help="Enable verbose logging output.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """
    Root CLI group configuring logging before subcommands execute.
    """

    configure_logging("DEBUG" if verbose else "INFO")
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command("resolve")
@click.option("--config", "config_path", default=None, type=click.Path(path_type=Path, dir_okay=False))
@click.option("--bind", default=None, help="Address/port/socket to serve on [default: 127.0.0.1:8080].")
@click.option("--cert", default=None, help="Path to the SSL cert used to secure the server.")
@click.option("--key", default=None, help="Path to the SSL key used to secure the server.")
@click.option("--static", default=None, help="Path to client files to serve.")
@click.option(
    "--proxy/--no-proxy",
    default=None,
    help="Allow reverse proxies: X-Forwarded-For headers determine the client IP.",
)
@click.option("--basedir", default=None, help="Base directory for assets and profiles.")
@click.option("--profiles", default=None, help="Hardware encoding profiles directory for ffmpeg.")
@click.option("--debug/--no-debug", default=None, help="Enable debug mode.")
@click.option("--pprof/--no-pprof", default=None, help="Enable the profiling endpoint.")
@click.option("--format", "output_format", default="json", type=click.Choice(["json", "yaml"]), show_default=True)
def cli_resolve(config_path: Optional[Path], output_format: str, **kwargs: Any) -> None:
    """Resolve settings (including receiver discovery) and print the result."""

    try:
        raw = load_settings(config_path) if config_path else {}
        merged = merge_overrides(raw, kwargs)
        if config_path:
            merged["config"] = str(config_path)
        root = resolve_root(merged)
        if root.debug:
            configure_logging("DEBUG")
        settings = resolve(merged)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    payload: Dict[str, Any] = settings.to_dict()
    payload["debug"] = root.debug
    payload["pprof"] = root.pprof
    if output_format == "yaml":
        click.echo(yaml.safe_dump(payload, sort_keys=True), nl=False)
    else:
        click.echo(json.dumps(payload, indent=2, sort_keys=True))
    logging.getLogger(__name__).info("resolved %d streams -> %s", len(settings.streams), settings.bind)


@cli.command("services")
@click.option("--host", required=True, help="Receiver host (optionally host:port of the web interface).")
@click.option("--sref", default="", help="Bouquet reference; lists the bouquet's channels instead of bouquets.")
def cli_services(host: str, sref: str) -> None:
    """List the service directory of an Enigma2 receiver."""

    try:
        entries = list_services(host, sref)
    except FetchError as exc:
        raise click.ClickException(str(exc)) from exc
    for entry in entries:
        click.echo(f"{entry.name}\t{entry.reference}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    """
    Entry point returning an exit code for console scripts.
    """

    argv_list = sys.argv[1:] if argv is None else list(argv)
    try:
        cli.main(args=argv_list, prog_name="e2transcode", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return 1
    except SystemExit as exc:
        return int(exc.code or 0)
    return 0


if __name__ == "__main__":
    sys.exit(main())

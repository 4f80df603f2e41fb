"""CLI handling for lanclip.

This module provides the command-line interface for lanclip, handling
argument parsing via click, logging configuration, and dispatching to
server or client mode based on user-specified options.

Usage:
    lanclip --server [--host HOST] [--port PORT] [--headless] [--verbose]
    lanclip --client [--host HOST] [--port PORT] [--name NAME] [--verbose]
"""

import sys

import click

from lanclip.client_constants import DEFAULT_CONNECT_HOST
from lanclip.constants import DEFAULT_HOST, DEFAULT_PORT, MIN_POLL_INTERVAL_MS, POLL_INTERVAL_MS
from lanclip.devices import DeviceType
from lanclip.main_logging import configure_logging
from lanclip.main_options import MutuallyExclusiveOption, load_config_file


@click.command()
@click.option(
    "--config",
    type=click.Path(dir_okay=False),
    callback=load_config_file,
    is_eager=True,
    expose_value=False,
    help="JSON file with option defaults",
)
@click.option(
    "--server",
    is_flag=True,
    cls=MutuallyExclusiveOption,
    exclusive_with=["client"],
    help="Run the relay server",
)
@click.option(
    "--client",
    is_flag=True,
    cls=MutuallyExclusiveOption,
    exclusive_with=["server"],
    help="Run as a device of a relay",
)
@click.option(
    "--host",
    default=None,
    help=(
        f"Address to bind (server, default {DEFAULT_HOST}) "
        f"or relay to connect to (client, default {DEFAULT_CONNECT_HOST})"
    ),
)
@click.option(
    "--port",
    default=DEFAULT_PORT,
    show_default=True,
    type=click.IntRange(1, 65535),
    help="TCP port",
)
@click.option(
    "--polling-interval",
    default=POLL_INTERVAL_MS,
    show_default=True,
    type=click.IntRange(min=MIN_POLL_INTERVAL_MS),
    help="Local clipboard polling interval in milliseconds",
)
@click.option("--name", default=None, help="Device name shown to other devices (client)")
@click.option(
    "--device-type",
    default=DeviceType.DESKTOP.value,
    show_default=True,
    type=click.Choice([t.value for t in DeviceType]),
    help="Device type reported on registration (client)",
)
@click.option(
    "--headless",
    is_flag=True,
    help="Use an in-memory clipboard instead of X11",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable DEBUG-level logging",
)
def main(
    server: bool,
    client: bool,
    host: str | None,
    port: int,
    polling_interval: int,
    name: str | None,
    device_type: str,
    headless: bool,
    verbose: bool,
) -> None:
    """Share one clipboard between the devices on a local network."""
    if not server and not client:
        raise click.UsageError("Either --server or --client must be specified")

    configure_logging(verbose)

    _run_mode(server, host, port, polling_interval / 1000, name, device_type, headless)


def _run_mode(
    server: bool,
    host: str | None,
    port: int,
    poll_interval: float,
    name: str | None,
    device_type: str,
    headless: bool,
) -> None:
    """Run the appropriate mode (server or client).

    Args:
        server: True for server mode, False for client mode.
        host: Bind address or relay address.
        port: TCP port.
        poll_interval: Seconds between local clipboard samples.
        name: Device name (client only).
        device_type: Device type (client only).
        headless: Use an in-memory clipboard.
    """
    import asyncio
    from lanclip.client import run_client
    from lanclip.protocol import ProtocolError
    from lanclip.server import run_server

    try:
        if server:
            asyncio.run(run_server(host or DEFAULT_HOST, port, poll_interval, headless))
        else:
            client_host = host or DEFAULT_CONNECT_HOST
            asyncio.run(run_client(client_host, port, name, device_type, poll_interval, headless))
    except (ProtocolError, ConnectionError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

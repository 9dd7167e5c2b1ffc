"""
ttn-exporter entry point.

Usage:
    TTN_TOKEN=... TTN_GATEWAY_NAME=my-gw ttn-exporter
    ttn-exporter --token ... --gateway my-gw --web.listen-address :9101
    ttn-exporter --api-url http://127.0.0.1:1885 ...     Against the fake API
"""

from __future__ import annotations

import logging

import click

from ttn_exporter import __version__
from ttn_exporter.collector.stats_fetcher import DEFAULT_API_URL
from ttn_exporter.config import DEFAULT_LISTEN_ADDRESS, DEFAULT_METRICS_PATH, ExporterConfig
from ttn_exporter.exposition import serve


log = logging.getLogger("ttn_exporter")


@click.command()
@click.version_option(version=__version__, prog_name="ttn_exporter")
@click.option("--web.listen-address", "listen_address", envvar="TTN_LISTEN_ADDRESS",
              default=DEFAULT_LISTEN_ADDRESS, show_default=True,
              help="Address to listen on for web interface.")
@click.option("--web.metrics-path", "metrics_path", envvar="TTN_METRICS_PATH",
              default=DEFAULT_METRICS_PATH, show_default=True,
              help="Path under which to expose metrics.")
@click.option("--token", envvar="TTN_TOKEN", required=True,
              help="TTN API key with gateway stats rights (env: TTN_TOKEN).")
@click.option("--gateway", envvar="TTN_GATEWAY_NAME", required=True,
              help="Gateway ID to export (env: TTN_GATEWAY_NAME).")
@click.option("--api-url", envvar="TTN_API_URL", default=DEFAULT_API_URL, show_default=True,
              help="Base URL of the TTN cluster.")
@click.option("--timeout", envvar="TTN_TIMEOUT", type=float, default=10.0, show_default=True,
              help="Upstream request timeout in seconds.")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
def cli(listen_address: str, metrics_path: str, token: str, gateway: str,
        api_url: str, timeout: float, verbose: bool):
    """Export The Things Network gateway connection stats to Prometheus."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = ExporterConfig(
            api_token=token,
            gateway_id=gateway,
            api_url=api_url,
            timeout_seconds=timeout,
            listen_address=listen_address,
            metrics_path=metrics_path,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    log.info("Starting ttn_exporter %s", __version__)
    log.debug("Config: %r", config)

    try:
        serve(config)
    except OSError as e:
        log.error("Cannot listen on %s: %s", listen_address, e)
        raise SystemExit(1)


if __name__ == "__main__":
    cli()

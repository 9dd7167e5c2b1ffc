"""
Exporter configuration. Values come from CLI flags or their TTN_* env
fallbacks (see main.py) and are frozen once the exporter starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ttn_exporter.collector.stats_fetcher import DEFAULT_API_URL


DEFAULT_LISTEN_ADDRESS = ":9101"
DEFAULT_METRICS_PATH = "/metrics"


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split host:port. An empty host (":9101") means all interfaces."""
    host, sep, port_str = address.rpartition(":")
    if not sep:
        raise ValueError(f"listen address {address!r} must look like host:port")

    host = host.strip("[]") or "0.0.0.0"
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"invalid port in listen address {address!r}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"port {port} out of range in listen address {address!r}")
    return host, port


@dataclass(frozen=True)
class ExporterConfig:
    api_token: str
    gateway_id: str
    api_url: str = DEFAULT_API_URL
    timeout_seconds: float = 10.0
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    metrics_path: str = DEFAULT_METRICS_PATH

    def __post_init__(self):
        if not self.api_token:
            raise ValueError("an API token is required")
        if not self.gateway_id:
            raise ValueError("a gateway ID is required")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout must be positive")
        if not self.metrics_path.startswith("/"):
            raise ValueError("metrics path must start with '/'")
        parse_listen_address(self.listen_address)

    @property
    def bind(self) -> Tuple[str, int]:
        return parse_listen_address(self.listen_address)

    def __repr__(self) -> str:
        # Keep the token out of logs and tracebacks
        return (
            f"ExporterConfig(gateway_id={self.gateway_id!r}, api_url={self.api_url!r}, "
            f"timeout_seconds={self.timeout_seconds}, listen_address={self.listen_address!r}, "
            f"metrics_path={self.metrics_path!r})"
        )

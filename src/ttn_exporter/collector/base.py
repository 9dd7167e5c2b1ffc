"""
Base stats source interface.

A stats source is anything that can produce a GatewayConnectionStats for a
gateway. This keeps the Prometheus collector decoupled from where the data
actually comes from (the live TTN API, a fake server, a test double).
"""

from abc import ABC, abstractmethod

from ttn_exporter.stats import GatewayConnectionStats


class StatsSource(ABC):
    """Interface for all gateway stats sources."""

    @abstractmethod
    def fetch(self, api_token: str, gateway_id: str) -> GatewayConnectionStats:
        """Fetch one snapshot, or raise a FetchError subclass."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

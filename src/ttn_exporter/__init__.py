"""ttn-exporter: Prometheus exporter for The Things Network gateway stats."""

__version__ = "0.1.0"

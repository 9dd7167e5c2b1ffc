"""
Wires the collector into a Prometheus registry and serves it over HTTP.

Nothing here touches prometheus_client's global REGISTRY: each call to
build_registry() returns a fresh registry holding only the build info
series and the gateway collector.
"""

from __future__ import annotations

import logging
import platform
from typing import Optional
from wsgiref.simple_server import WSGIRequestHandler, make_server

from prometheus_client import CollectorRegistry, Info, make_wsgi_app
from prometheus_client.exposition import ThreadingWSGIServer

from ttn_exporter import __version__
from ttn_exporter.collector.base import StatsSource
from ttn_exporter.collector.stats_fetcher import StatsFetcher
from ttn_exporter.collector.ttn_collector import TTNCollector
from ttn_exporter.config import ExporterConfig


log = logging.getLogger(__name__)

_LANDING_PAGE = """<html>
<head><title>TTN Exporter</title></head>
<body>
<h1>TTN Exporter</h1>
<p>Gateway: {gateway}</p>
<p><a href="{path}">Metrics</a></p>
</body>
</html>
"""


def build_registry(
    config: ExporterConfig,
    source: Optional[StatsSource] = None,
) -> CollectorRegistry:
    """Fresh registry with build info and the collector for config.gateway_id."""
    if source is None:
        source = StatsFetcher(api_url=config.api_url, timeout_seconds=config.timeout_seconds)

    registry = CollectorRegistry()
    build_info = Info("ttn_exporter_build", "Build information about ttn_exporter.", registry=registry)
    build_info.info({
        "version": __version__,
        "python_version": platform.python_version(),
    })
    registry.register(TTNCollector(source, config.api_token, config.gateway_id))
    return registry


def make_app(registry: CollectorRegistry, metrics_path: str = "/metrics", gateway_id: str = ""):
    """WSGI app: metrics at metrics_path, a landing page at /, 404 elsewhere."""
    metrics_app = make_wsgi_app(registry)
    landing = _LANDING_PAGE.format(gateway=gateway_id, path=metrics_path).encode()

    def app(environ, start_response):
        path = environ.get("PATH_INFO", "/")
        if path == metrics_path:
            return metrics_app(environ, start_response)
        if path == "/":
            start_response("200 OK", [
                ("Content-Type", "text/html; charset=utf-8"),
                ("Content-Length", str(len(landing))),
            ])
            return [landing]
        start_response("404 Not Found", [("Content-Type", "text/plain")])
        return [b"Not Found\n"]

    return app


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format, *args):
        log.debug("%s - %s", self.address_string(), format % args)


def create_server(config: ExporterConfig, source: Optional[StatsSource] = None):
    """Bind the exposition server. Raises OSError if the address is taken."""
    registry = build_registry(config, source)
    app = make_app(registry, config.metrics_path, config.gateway_id)
    host, port = config.bind
    return make_server(host, port, app, ThreadingWSGIServer, handler_class=_QuietHandler)


def serve(config: ExporterConfig, source: Optional[StatsSource] = None):
    """Run the exposition server until interrupted."""
    fetcher = source or StatsFetcher(api_url=config.api_url, timeout_seconds=config.timeout_seconds)
    server = create_server(config, fetcher)
    host, port = server.server_address[:2]
    log.info(
        "Serving metrics for gateway %s at http://%s:%d%s",
        config.gateway_id, host, port, config.metrics_path,
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
        if source is None:
            fetcher.close()

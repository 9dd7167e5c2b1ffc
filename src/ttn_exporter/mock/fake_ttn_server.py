"""
Fake TTN gateway server API for running the exporter without a real gateway.

    python -m ttn_exporter.mock.fake_ttn_server
    ttn-exporter --api-url http://127.0.0.1:1885 --token test-token --gateway fake-gateway
"""

from __future__ import annotations

import json
import random
import re
import threading
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, HTTPServer, ThreadingHTTPServer


FAKE_GATEWAY_ID = "fake-gateway"
FAKE_TOKEN = "test-token"

_STATS_PATH_RE = re.compile(r"^/api/v3/gs/gateways/([^/]+)/connection/stats$")

_lock = threading.Lock()
_rng = random.Random(42)
_uplinks = 0
_downlinks = 0


def _rfc3339(dt: datetime) -> str:
    return dt.isoformat(timespec="microseconds").replace("+00:00", "Z")


def generate_stats() -> dict:
    """Build a stats document shaped like the real API's, counters growing per call."""
    global _uplinks, _downlinks
    with _lock:
        _uplinks += _rng.randint(1, 20)
        _downlinks += _rng.randint(0, 3)
        uplinks, downlinks = _uplinks, _downlinks
        rxin = _rng.randint(0, 10)
        rxok = max(0, rxin - _rng.randint(0, 2))

    now = _rfc3339(datetime.now(timezone.utc))

    # The API sends 64-bit counters as strings and omits zero-valued fields
    doc = {
        "connected_at": now,
        "protocol": "udp",
        "last_status_received_at": now,
        "last_status": {
            "time": now,
            "boot_time": now,
            "versions": {
                "fpga": "0",
                "hal": "5.0.1",
                "ttn-lw-gateway-server": "3.24.0",
            },
            "antenna_locations": [
                {"latitude": 52.3676, "longitude": 4.9041, "altitude": 12},
            ],
            "ip": ["192.0.2.10"],
            "metrics": {
                "ackr": 100,
                "rxfw": rxok,
                "rxin": rxin,
                "rxok": rxok,
                "txin": 0,
                "txok": 0,
            },
        },
        "last_uplink_received_at": now,
        "uplink_count": str(uplinks),
        "round_trip_times": {
            "min": "0.031s",
            "max": "0.092s",
            "median": "0.045s",
            "count": 20,
        },
        "sub_bands": [
            {"min_frequency": "863000000", "max_frequency": "865000000",
             "downlink_utilization_limit": 0.001},
        ],
    }
    if downlinks:
        doc["last_downlink_received_at"] = now
        doc["downlink_count"] = str(downlinks)
    for key in [k for k, v in doc["last_status"]["metrics"].items() if v == 0]:
        del doc["last_status"]["metrics"][key]
    return doc


class _StatsHandler(BaseHTTPRequestHandler):
    gateway_id = FAKE_GATEWAY_ID
    token = FAKE_TOKEN

    def _send_json(self, status: int, payload: dict):
        body = json.dumps(payload).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self):
        match = _STATS_PATH_RE.match(self.path)
        if not match:
            self._send_json(404, {"code": 5, "message": "not found"})
            return

        if self.headers.get("Authorization") != f"Bearer {self.token}":
            self._send_json(401, {"code": 16, "message": "error:pkg/auth:token_invalid"})
            return

        if match.group(1) != self.gateway_id:
            self._send_json(404, {"code": 5, "message": "error:pkg/gatewayserver:not_connected"})
            return

        self._send_json(200, generate_stats())

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


def make_fake_server(host: str = "127.0.0.1", port: int = 1885) -> HTTPServer:
    return ThreadingHTTPServer((host, port), _StatsHandler)


def run_fake_server(host: str = "127.0.0.1", port: int = 1885):
    server = make_fake_server(host, port)
    print(f"Fake TTN API running at http://{host}:{port}")
    print(f"Gateway: {FAKE_GATEWAY_ID}  Token: {FAKE_TOKEN}")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_server()

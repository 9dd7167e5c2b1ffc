"""
Fetches gateway connection stats from the TTN gateway server API.

One authenticated GET per call, bounded by a timeout, no retries. Every
failure is translated into the FetchError taxonomy so callers never see
an httpx exception.
"""

from __future__ import annotations

import logging
import time
from typing import Optional
from urllib.parse import quote

import httpx

from ttn_exporter.collector.base import StatsSource
from ttn_exporter.errors import (
    DecodeError,
    FetchConnectionError,
    FetchTimeoutError,
    HTTPStatusError,
)
from ttn_exporter.stats import GatewayConnectionStats, parse_stats_json


log = logging.getLogger(__name__)

DEFAULT_API_URL = "https://eu1.cloud.thethings.network"
STATS_PATH = "/api/v3/gs/gateways/{gateway_id}/connection/stats"


class StatsFetcher(StatsSource):

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self._api_url = api_url.rstrip("/")
        self._timeout = timeout_seconds
        # One Timeout value covers connect, read, write and pool waits
        self._client = client or httpx.Client(timeout=httpx.Timeout(self._timeout))

    def stats_url(self, gateway_id: str) -> str:
        return self._api_url + STATS_PATH.format(gateway_id=quote(gateway_id, safe=""))

    def fetch(self, api_token: str, gateway_id: str) -> GatewayConnectionStats:
        """GET the stats document and decode it. All or nothing."""
        url = self.stats_url(gateway_id)
        headers = {
            "Authorization": f"Bearer {api_token}",
            "Accept": "application/json",
        }

        started = time.monotonic()
        deadline = started + self._timeout
        try:
            with self._client.stream("GET", url, headers=headers, timeout=self._timeout) as response:
                log.debug(
                    "GET %s -> %d in %.0fms",
                    url, response.status_code, (time.monotonic() - started) * 1000,
                )

                # Error pages are never read, let alone decoded as stats
                if not response.is_success:
                    raise HTTPStatusError(response.status_code, url)

                # httpx times each socket wait on its own, so a server trickling
                # bytes could hold the scrape forever without this check
                chunks = []
                for chunk in response.iter_bytes():
                    if time.monotonic() > deadline:
                        raise FetchTimeoutError(
                            f"body from {url} not complete within {self._timeout:.1f}s"
                        )
                    chunks.append(chunk)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(
                f"no response from {url} within {self._timeout:.1f}s"
            ) from exc
        except httpx.DecodingError as exc:
            raise DecodeError(f"cannot decode response body from {url}: {exc}") from exc
        except httpx.TransportError as exc:
            raise FetchConnectionError(f"request to {url} failed: {exc}") from exc

        if time.monotonic() > deadline:
            raise FetchTimeoutError(f"response from {url} took longer than {self._timeout:.1f}s")

        return parse_stats_json(b"".join(chunks))

    def name(self) -> str:
        return f"TTN gateway server ({self._api_url})"

    def close(self):
        self._client.close()

"""
Fetch error taxonomy.

Every failure of a single stats fetch is one of these. They are all
recoverable: the collector turns any of them into ttn_up 0 for that scrape.
"""

from __future__ import annotations


class FetchError(Exception):
    """Base class for a failed gateway stats fetch."""


class FetchConnectionError(FetchError):
    """Transport failure: DNS, refused connection, reset, TLS."""


class FetchTimeoutError(FetchConnectionError):
    """The request did not finish within the configured deadline."""


class HTTPStatusError(FetchError):
    def __init__(self, code: int, url: str = ""):
        self.code = code
        self.url = url
        where = f" from {url}" if url else ""
        super().__init__(f"unexpected HTTP status {code}{where}")


class DecodeError(FetchError):
    """Body is not JSON, or not shaped like a connection stats document."""


class FieldParseError(FetchError):
    def __init__(self, field: str, raw=None):
        self.field = field
        self.raw = raw
        super().__init__(f"cannot parse counter {field!r} from {raw!r}")

"""
Gateway connection stats, as returned by the TTN gateway server at
/api/v3/gs/gateways/{id}/connection/stats.

The wire format mixes encodings: uplink/downlink counts arrive as decimal
strings, the link counters under last_status.metrics as plain integers.
decode_stats() normalizes both to floats so nothing downstream ever sees
the raw representation. Fields the API leaves at their zero value are
omitted from the JSON entirely, so an absent counter means 0.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ttn_exporter.errors import DecodeError, FieldParseError


LINK_COUNTERS = ("ackr", "lpps", "rxfw", "rxin", "rxok", "txin", "txok")


@dataclass(frozen=True)
class LinkMetrics:
    """Radio link counters the gateway reports in its status messages."""

    ackr: float = 0.0
    lpps: float = 0.0
    rxfw: float = 0.0
    rxin: float = 0.0
    rxok: float = 0.0
    txin: float = 0.0
    txok: float = 0.0


@dataclass(frozen=True)
class AntennaLocation:
    latitude: float
    longitude: float
    altitude: int = 0


@dataclass(frozen=True)
class RoundTripTimes:
    min: Optional[str] = None
    max: Optional[str] = None
    median: Optional[str] = None
    count: int = 0


@dataclass(frozen=True)
class SubBand:
    min_frequency: Optional[str] = None
    max_frequency: Optional[str] = None
    downlink_utilization_limit: float = 0.0


@dataclass(frozen=True)
class LastStatus:
    time: Optional[str] = None
    boot_time: Optional[str] = None
    versions: Dict[str, str] = field(default_factory=dict)
    antenna_locations: List[AntennaLocation] = field(default_factory=list)
    ip: List[str] = field(default_factory=list)
    metrics: LinkMetrics = field(default_factory=LinkMetrics)


@dataclass(frozen=True)
class GatewayConnectionStats:
    """One decoded stats document. Timestamps are kept as the RFC 3339 strings
    the API sends; they are carried along but never exported."""

    uplink_count: float = 0.0
    downlink_count: float = 0.0
    last_status: LastStatus = field(default_factory=LastStatus)

    connected_at: Optional[str] = None
    protocol: Optional[str] = None
    last_status_received_at: Optional[str] = None
    last_uplink_received_at: Optional[str] = None
    last_downlink_received_at: Optional[str] = None
    round_trip_times: Optional[RoundTripTimes] = None
    sub_bands: List[SubBand] = field(default_factory=list)

    @property
    def metrics(self) -> LinkMetrics:
        return self.last_status.metrics


def _parse_count(doc: Dict[str, Any], name: str) -> float:
    """Parse one of the string-encoded top-level counters."""
    raw = doc.get(name)
    if raw is None:
        return 0.0
    # bool is an int subclass, and "true" is not a count
    if isinstance(raw, bool):
        raise FieldParseError(name, raw)
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            raise FieldParseError(name, raw) from None
    else:
        raise FieldParseError(name, raw)

    if not math.isfinite(value) or value < 0:
        raise FieldParseError(name, raw)
    return value


def _parse_link_counter(metrics: Dict[str, Any], name: str) -> float:
    raw = metrics.get(name)
    if raw is None:
        return 0.0
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        raise FieldParseError(f"last_status.metrics.{name}", raw)
    return float(raw)


def _object(doc: Dict[str, Any], name: str, where: str) -> Dict[str, Any]:
    value = doc.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DecodeError(f"{where}{name} is {type(value).__name__}, expected an object")
    return value


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


# Ancillary fields are best effort: a malformed one is dropped, never fatal.

def _antenna_locations(raw: Any) -> List[AntennaLocation]:
    if not isinstance(raw, list):
        return []
    locations = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        locations.append(AntennaLocation(
            latitude=_number(item.get("latitude")),
            longitude=_number(item.get("longitude")),
            altitude=int(_number(item.get("altitude"))),
        ))
    return locations


def _sub_bands(raw: Any) -> List[SubBand]:
    if not isinstance(raw, list):
        return []
    return [
        SubBand(
            min_frequency=_str_or_none(item.get("min_frequency")),
            max_frequency=_str_or_none(item.get("max_frequency")),
            downlink_utilization_limit=_number(item.get("downlink_utilization_limit")),
        )
        for item in raw
        if isinstance(item, dict)
    ]


def _round_trip_times(raw: Any) -> Optional[RoundTripTimes]:
    if not isinstance(raw, dict):
        return None
    return RoundTripTimes(
        min=_str_or_none(raw.get("min")),
        max=_str_or_none(raw.get("max")),
        median=_str_or_none(raw.get("median")),
        count=int(_number(raw.get("count"))),
    )


def _last_status(doc: Dict[str, Any]) -> LastStatus:
    status = _object(doc, "last_status", "")
    metrics = _object(status, "metrics", "last_status.")

    versions = status.get("versions")
    if isinstance(versions, dict):
        versions = {k: v for k, v in versions.items() if isinstance(v, str)}
    else:
        versions = {}

    ips = status.get("ip")
    ips = [ip for ip in ips if isinstance(ip, str)] if isinstance(ips, list) else []

    return LastStatus(
        time=_str_or_none(status.get("time")),
        boot_time=_str_or_none(status.get("boot_time")),
        versions=versions,
        antenna_locations=_antenna_locations(status.get("antenna_locations")),
        ip=ips,
        metrics=LinkMetrics(**{name: _parse_link_counter(metrics, name) for name in LINK_COUNTERS}),
    )


def decode_stats(doc: Any) -> GatewayConnectionStats:
    """Build a snapshot from an already-parsed JSON document.

    Raises DecodeError if the document isn't shaped like connection stats,
    FieldParseError if a counter can't be read as a non-negative number.
    Never returns a partially filled snapshot.
    """
    if not isinstance(doc, dict):
        raise DecodeError(f"expected a JSON object, got {type(doc).__name__}")

    return GatewayConnectionStats(
        uplink_count=_parse_count(doc, "uplink_count"),
        downlink_count=_parse_count(doc, "downlink_count"),
        last_status=_last_status(doc),
        connected_at=_str_or_none(doc.get("connected_at")),
        protocol=_str_or_none(doc.get("protocol")),
        last_status_received_at=_str_or_none(doc.get("last_status_received_at")),
        last_uplink_received_at=_str_or_none(doc.get("last_uplink_received_at")),
        last_downlink_received_at=_str_or_none(doc.get("last_downlink_received_at")),
        round_trip_times=_round_trip_times(doc.get("round_trip_times")),
        sub_bands=_sub_bands(doc.get("sub_bands")),
    )


def parse_stats_json(body: Union[str, bytes]) -> GatewayConnectionStats:
    """Parse a raw response body. Bytes may be UTF-8, -16 or -32."""
    try:
        doc = json.loads(body)
    except RecursionError as exc:
        raise DecodeError("response body is nested too deeply") from exc
    except ValueError as exc:
        raise DecodeError(f"response body is not valid JSON: {exc}") from exc
    return decode_stats(doc)

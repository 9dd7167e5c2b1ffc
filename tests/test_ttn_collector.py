"""
Tests for the Prometheus collector.

Uses an in-process stats source, so no network is needed; the fetcher is
covered separately in test_stats_fetcher.py.
"""

import logging
import threading

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from ttn_exporter.collector.base import StatsSource
from ttn_exporter.collector.ttn_collector import TTNCollector
from ttn_exporter.errors import (
    DecodeError,
    FetchConnectionError,
    FetchTimeoutError,
    FieldParseError,
    HTTPStatusError,
)
from ttn_exporter.stats import decode_stats


ROUND_TRIP_DOC = {
    "uplink_count": "42",
    "downlink_count": "7",
    "last_status": {
        "metrics": {"ackr": 99, "lpps": 1, "rxfw": 2, "rxin": 3, "rxok": 4, "txin": 5, "txok": 6},
    },
}


class _FakeSource(StatsSource):
    """Returns a fixed snapshot, or raises a fixed error. Records calls."""

    def __init__(self, doc=None, error=None):
        self._doc = doc
        self._error = error
        self.calls = []

    def fetch(self, api_token, gateway_id):
        self.calls.append((api_token, gateway_id))
        if self._error is not None:
            raise self._error
        return decode_stats(self._doc)

    def name(self):
        return "fake"


def _values(collector: TTNCollector) -> dict:
    return {d.name: v for d, v in collector.samples()}


def test_successful_scrape_round_trip():
    collector = TTNCollector(_FakeSource(ROUND_TRIP_DOC), "token", "gw-1")

    assert _values(collector) == {
        "ttn_up": 1.0,
        "ttn_uplink_count": 42.0,
        "ttn_downlink_count": 7.0,
        "ttn_ackr": 99.0,
        "ttn_lpps": 1.0,
        "ttn_rxfw": 2.0,
        "ttn_rxin": 3.0,
        "ttn_rxok": 4.0,
        "ttn_txin": 5.0,
        "ttn_txok": 6.0,
    }


def test_successful_scrape_emits_up_first_then_nine():
    samples = list(TTNCollector(_FakeSource(ROUND_TRIP_DOC), "token", "gw-1").samples())
    assert len(samples) == 10
    assert samples[0][0].name == "ttn_up"
    assert samples[0][1] == 1.0


def test_fetch_gets_configured_token_and_gateway():
    source = _FakeSource(ROUND_TRIP_DOC)
    collector = TTNCollector(source, "secret", "my-gateway")
    list(collector.collect())
    assert source.calls == [("secret", "my-gateway")]


def test_one_fetch_per_scrape():
    source = _FakeSource(ROUND_TRIP_DOC)
    collector = TTNCollector(source, "token", "gw-1")
    list(collector.collect())
    list(collector.collect())
    assert len(source.calls) == 2


def test_describe_does_not_fetch():
    source = _FakeSource(error=AssertionError("describe must not fetch"))
    collector = TTNCollector(source, "token", "gw-1")
    collector.describe()
    assert source.calls == []


@pytest.mark.parametrize("error", [
    FetchConnectionError("connection refused"),
    FetchTimeoutError("no response within 10.0s"),
    HTTPStatusError(503),
    HTTPStatusError(401),
    DecodeError("response body is not valid JSON"),
    FieldParseError("uplink_count", "N/A"),
])
def test_failed_scrape_emits_only_up_zero(error):
    collector = TTNCollector(_FakeSource(error=error), "token", "gw-1")
    samples = list(collector.samples())

    assert len(samples) == 1
    descriptor, value = samples[0]
    assert descriptor.name == "ttn_up"
    assert value == 0.0


def test_non_numeric_uplink_is_not_exported_as_zero():
    doc = dict(ROUND_TRIP_DOC, uplink_count="N/A")
    values = _values(TTNCollector(_FakeSource(doc), "token", "gw-1"))
    assert values == {"ttn_up": 0.0}


def test_failure_is_logged(caplog):
    collector = TTNCollector(_FakeSource(error=HTTPStatusError(503)), "s3cret", "gw-1")

    with caplog.at_level(logging.WARNING, logger="ttn_exporter.collector.ttn_collector"):
        list(collector.collect())

    assert "gw-1" in caplog.text
    assert "HTTPStatusError" in caplog.text
    assert "s3cret" not in caplog.text


def test_failure_does_not_affect_next_scrape():
    source = _FakeSource(error=FetchConnectionError("down"))
    collector = TTNCollector(source, "token", "gw-1")
    assert _values(collector) == {"ttn_up": 0.0}

    source._error = None
    source._doc = ROUND_TRIP_DOC
    assert len(_values(collector)) == 10


def test_unexpected_errors_propagate():
    collector = TTNCollector(_FakeSource(error=RuntimeError("bug")), "token", "gw-1")
    with pytest.raises(RuntimeError):
        list(collector.collect())


def test_describe_matches_everything_collect_can_emit():
    collector = TTNCollector(_FakeSource(ROUND_TRIP_DOC), "token", "gw-1")

    described = [m.name for m in collector.describe()]
    collected = [m.name for m in collector.collect()]

    assert described == collected
    assert len(set(described)) == len(described) == 10


def test_describe_is_stable():
    collector = TTNCollector(_FakeSource(ROUND_TRIP_DOC), "token", "gw-1")
    first = [(m.name, m.documentation) for m in collector.describe()]
    second = [(m.name, m.documentation) for m in collector.describe()]
    assert first == second


def test_describe_families_have_no_samples():
    collector = TTNCollector(_FakeSource(ROUND_TRIP_DOC), "token", "gw-1")
    for family in collector.describe():
        assert family.type == "gauge"
        assert family.samples == []


def test_collect_yields_gauge_families():
    collector = TTNCollector(_FakeSource(ROUND_TRIP_DOC), "token", "gw-1")
    families = {m.name: m for m in collector.collect()}

    assert families["ttn_uplink_count"].type == "gauge"
    assert families["ttn_uplink_count"].samples[0].value == 42.0
    assert families["ttn_uplink_count"].samples[0].labels == {}


def test_exposition_output():
    registry = CollectorRegistry()
    registry.register(TTNCollector(_FakeSource(ROUND_TRIP_DOC), "token", "gw-1"))
    output = generate_latest(registry).decode()

    assert "# TYPE ttn_up gauge" in output
    assert "ttn_up 1.0" in output
    assert "ttn_ackr 99.0" in output
    assert "ttn_downlink_count 7.0" in output


def test_exposition_output_on_failure():
    registry = CollectorRegistry()
    registry.register(TTNCollector(_FakeSource(error=FetchConnectionError("down")), "token", "gw-1"))
    output = generate_latest(registry).decode()

    assert "ttn_up 0.0" in output
    assert "ttn_uplink_count " not in output
    assert "ttn_rxok " not in output


def test_concurrent_scrapes_are_independent():
    source = _FakeSource(ROUND_TRIP_DOC)
    collector = TTNCollector(source, "token", "gw-1")
    results = []

    def scrape():
        results.append(_values(collector))

    threads = [threading.Thread(target=scrape) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 8
    assert all(r["ttn_up"] == 1.0 and len(r) == 10 for r in results)
    assert len(source.calls) == 8

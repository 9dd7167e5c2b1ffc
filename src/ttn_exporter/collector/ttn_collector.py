"""
Prometheus collector for one TTN gateway.

Every scrape does exactly one stats fetch and maps the snapshot onto the
descriptor set. A failed fetch yields ttn_up 0 and nothing else, so
consumers see the derived series vanish instead of dropping to zero.
The collector keeps no state between scrapes and is safe to call from
concurrent scrape threads.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from ttn_exporter.collector.base import StatsSource
from ttn_exporter.collector.descriptors import MetricDescriptor, MetricDescriptorSet
from ttn_exporter.errors import FetchError


log = logging.getLogger(__name__)

Sample = Tuple[MetricDescriptor, float]


class TTNCollector(Collector):

    def __init__(
        self,
        source: StatsSource,
        api_token: str,
        gateway_id: str,
        descriptors: Optional[MetricDescriptorSet] = None,
    ):
        self._source = source
        self._api_token = api_token
        self._gateway_id = gateway_id
        self._descriptors = descriptors or MetricDescriptorSet()

    @property
    def gateway_id(self) -> str:
        return self._gateway_id

    @property
    def descriptors(self) -> MetricDescriptorSet:
        return self._descriptors

    def samples(self) -> Iterator[Sample]:
        """Fetch once and yield (descriptor, value) pairs for this scrape."""
        up = self._descriptors.up
        try:
            stats = self._source.fetch(self._api_token, self._gateway_id)
        except FetchError as exc:
            log.warning(
                "Fetching stats for gateway %s from %s failed (%s): %s",
                self._gateway_id, self._source.name(), type(exc).__name__, exc,
            )
            yield up, 0.0
            return

        yield up, 1.0
        for descriptor in self._descriptors.derived:
            yield descriptor, float(descriptor.value_of(stats))

    def describe(self) -> List[GaugeMetricFamily]:
        """Advertise every series collect() can produce, without fetching."""
        return [GaugeMetricFamily(d.name, d.help_text) for d in self._descriptors]

    def collect(self) -> Iterator[GaugeMetricFamily]:
        for descriptor, value in self.samples():
            yield GaugeMetricFamily(descriptor.name, descriptor.help_text, value=value)

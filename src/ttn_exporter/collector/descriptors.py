"""
The fixed set of metrics the exporter can ever emit.

Each descriptor carries the accessor that reads its value off a snapshot,
so describe() and collect() iterate the same table and can't drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple

from ttn_exporter.stats import LINK_COUNTERS, GatewayConnectionStats


NAMESPACE = "ttn"


def build_fqname(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty parts with underscores, like client_golang does."""
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass(frozen=True)
class MetricDescriptor:
    name: str
    help_text: str
    # None only for `up`, whose value depends on the fetch outcome
    value_of: Optional[Callable[[GatewayConnectionStats], float]] = None


def _link_counter(namespace: str, counter: str) -> MetricDescriptor:
    return MetricDescriptor(
        name=build_fqname(namespace, "", counter),
        help_text=f"Value of the {counter} link counter in the gateway's last status message.",
        value_of=lambda stats: getattr(stats.metrics, counter),
    )


class MetricDescriptorSet:
    """Immutable, ordered. `up` always comes first."""

    def __init__(self, namespace: str = NAMESPACE):
        self.up = MetricDescriptor(
            name=build_fqname(namespace, "", "up"),
            help_text="Was the last API query successful.",
        )
        self.uplink_count = MetricDescriptor(
            name=build_fqname(namespace, "", "uplink_count"),
            help_text="How many uplinks the gateway has received on this connection.",
            value_of=lambda stats: stats.uplink_count,
        )
        self.downlink_count = MetricDescriptor(
            name=build_fqname(namespace, "", "downlink_count"),
            help_text="How many downlinks the gateway has sent on this connection.",
            value_of=lambda stats: stats.downlink_count,
        )
        link = tuple(_link_counter(namespace, c) for c in LINK_COUNTERS)
        self._derived: Tuple[MetricDescriptor, ...] = (
            self.uplink_count,
            self.downlink_count,
        ) + link
        self._all: Tuple[MetricDescriptor, ...] = (self.up,) + self._derived

    @property
    def derived(self) -> Tuple[MetricDescriptor, ...]:
        """Everything except `up`, in emission order."""
        return self._derived

    def names(self) -> Tuple[str, ...]:
        return tuple(d.name for d in self._all)

    def __iter__(self) -> Iterator[MetricDescriptor]:
        return iter(self._all)

    def __len__(self) -> int:
        return len(self._all)

    def __contains__(self, descriptor) -> bool:
        return descriptor in self._all

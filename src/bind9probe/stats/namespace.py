from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

GLOBAL_ZONE = "global"

NATIVE_METRICS = ("success", "referral", "nxrrset", "nxdomain", "recursion", "failure")


@dataclass(frozen=True)
class MetricValue:
    value: int | float
    kind: Literal["int", "float"] = "int"

    @classmethod
    def counter(cls, value: int) -> MetricValue:
        return cls(value=int(value), kind="int")

    @classmethod
    def seconds(cls, value: float) -> MetricValue:
        return cls(value=float(value), kind="float")

    def format(self) -> str:
        if self.kind == "float":
            return repr(float(self.value))
        return str(int(self.value))


class StatsNamespace:
    """zone -> metric -> value; every zone may hold only some metrics."""

    def __init__(self) -> None:
        self._zones: dict[str, dict[str, MetricValue]] = {}

    def __len__(self) -> int:
        return len(self._zones)

    def __contains__(self, zone: object) -> bool:
        return zone in self._zones

    def __iter__(self) -> Iterator[str]:
        return iter(self._zones)

    def set(self, zone: str, metric: str, value: MetricValue) -> None:
        self._zones.setdefault(zone, {})[metric] = value

    def set_count(self, zone: str, metric: str, value: int) -> None:
        self.set(zone, metric, MetricValue.counter(value))

    def get(self, zone: str, metric: str) -> MetricValue | None:
        return self._zones.get(zone, {}).get(metric)

    def metrics(self, zone: str) -> dict[str, MetricValue]:
        return dict(self._zones.get(zone, {}))

    def total(self, zone: str, names: tuple[str, ...] = NATIVE_METRICS) -> int:
        metrics = self._zones.get(zone, {})
        return sum(int(metrics[name].value) for name in names if name in metrics)

    def as_dict(self) -> dict[str, dict[str, int | float]]:
        return {
            zone: {name: value.value for name, value in metrics.items()}
            for zone, metrics in self._zones.items()
        }

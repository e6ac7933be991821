from __future__ import annotations

from collections.abc import Mapping

_STATS_FIELDS = (
    ("stats", "stats_triggers_total"),
    ("polls", "stats_polls_total"),
    ("trigger_fail", "trigger_failures_total"),
    ("invalid_lines", "stats_invalid_lines_total"),
    ("dumps", "dump_triggers_total"),
    ("latency_q", "latency_queries_total"),
    ("latency_fail", "latency_failures_total"),
)


class Metrics:
    """Counters for a single probe run, reported at debug level."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}

    def inc(self, key: str, by: int = 1) -> None:
        self._counters[key] = self._counters.get(key, 0) + int(by)

    def snapshot(self) -> dict[str, int]:
        return dict(self._counters)


def format_stats(snapshot: Mapping[str, int]) -> str:
    parts = [f"{label}={snapshot.get(key, 0)}" for label, key in _STATS_FIELDS]
    return f"STATS {' '.join(parts)}"

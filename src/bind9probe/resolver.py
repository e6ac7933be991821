from __future__ import annotations

import logging
import pprint
from dataclasses import dataclass

from bind9probe.config import ProbeConfig
from bind9probe.control.records import RecordCounter
from bind9probe.control.trigger import TriggerRunner
from bind9probe.dns.latency import LatencyProbe
from bind9probe.metrics import Metrics, format_stats
from bind9probe.stats.namespace import GLOBAL_ZONE, NATIVE_METRICS, MetricValue, StatsNamespace
from bind9probe.stats.parser import parse_stats_dump
from bind9probe.stats.waiter import StatsFileWaiter
from bind9probe.system.process import ProcessInspector

logger = logging.getLogger("bind9probe")

UNKNOWN_ZONE_HELP = (
    "You may have made a typo, or there may be a misconfiguration in named.conf "
    "(zone-statistics must be enabled for per-zone counters).\n"
    "See http://code.google.com/p/appaloosa-zabbix-templates/wiki/Bind9Templates#Troubleshooting "
    "for help."
)


@dataclass(frozen=True)
class ProbeRequest:
    stat: str
    zone: str = GLOBAL_ZONE


@dataclass(frozen=True)
class ProbeResult:
    exit_code: int
    output: str | None = None
    diagnostic: str | None = None


FAILED = ProbeResult(exit_code=1, output="-1")


class MetricResolver:
    def __init__(
        self,
        config: ProbeConfig,
        *,
        runner: TriggerRunner | None = None,
        waiter: StatsFileWaiter | None = None,
        latency_probe: LatencyProbe | None = None,
        record_counter: RecordCounter | None = None,
        process_inspector: ProcessInspector | None = None,
        metrics: Metrics | None = None,
    ):
        self.config = config
        self.metrics = metrics if metrics is not None else Metrics()
        self.runner = runner or TriggerRunner(config.rndc_path, metrics=self.metrics)
        self.waiter = waiter or StatsFileWaiter(
            config.poll_attempts,
            config.poll_interval_s,
            metrics=self.metrics,
        )
        self.latency_probe = latency_probe or LatencyProbe(
            config.ns_ip,
            config.ns_query,
            port=config.ns_port,
            timeout_s=config.query_timeout_s,
            metrics=self.metrics,
        )
        self.record_counter = record_counter or RecordCounter(
            self.runner, config.dump_file, metrics=self.metrics
        )
        self.process_inspector = process_inspector or ProcessInspector(
            config.pid_file, proc_root=config.proc_root
        )

    def collect_stats(self) -> StatsNamespace:
        """Fresh namespace from ``rndc stats``; empty when the trigger failed."""
        self.metrics.inc("stats_triggers_total")
        if not self.waiter.wait_for(self.config.stats_file, self.runner.stats):
            return StatsNamespace()

        with open(self.config.stats_file, encoding="utf-8", errors="replace") as fh:
            text = fh.read()
        stats, invalid = parse_stats_dump(text)
        if invalid:
            self.metrics.inc("stats_invalid_lines_total", invalid)
            logger.debug("skipped %d malformed lines in %s", invalid, self.config.stats_file)
        return stats

    def resolve(self, request: ProbeRequest) -> ProbeResult:
        try:
            return self._resolve(request)
        finally:
            logger.debug(format_stats(self.metrics.snapshot()))

    def _resolve(self, request: ProbeRequest) -> ProbeResult:
        stats = self.collect_stats()
        if len(stats) == 0:
            return FAILED

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("parsed stats:\n%s", pprint.pformat(stats.as_dict()))

        zone = request.zone
        if zone not in stats:
            return ProbeResult(
                exit_code=1,
                diagnostic=f"The stats file did not contain data for {zone}.\n{UNKNOWN_ZONE_HELP}",
            )

        stats.set(GLOBAL_ZONE, "latency", MetricValue.seconds(self.latency_probe.measure()))
        stats.set_count(GLOBAL_ZONE, "zones", len(stats))

        if request.stat == "records":
            stats.set_count(GLOBAL_ZONE, "records", self.record_counter.count())

        logger.debug("counting total queries for %s", zone)
        stats.set_count(zone, "queries", stats.total(zone, NATIVE_METRICS))

        for name, value in self.process_inspector.inspect().items():
            stats.set_count(GLOBAL_ZONE, name, value)

        value = stats.get(zone, request.stat)
        if value is None:
            return FAILED
        return ProbeResult(exit_code=0, output=value.format())

import pytest

from bind9probe.config import ProbeConfig
from bind9probe.control.trigger import TriggerResult, classify_trigger_output
from bind9probe.metrics import Metrics
from bind9probe.resolver import MetricResolver, ProbeRequest
from bind9probe.stats.waiter import StatsFileTimeoutError, StatsFileWaiter

STATS = "success 100 example.com\nfailure 5 example.com\nsuccess 9000\n"

ZONE_DUMP = """\
example.com. 86400 IN NS ns1.example.com.
ns1.example.com. 86400 IN A 192.0.2.1
"""

STATUS = "Name:\tnamed\nVmRSS:\t  1000 kB\nThreads:\t4\n"


class FakeRunner:
    def __init__(self, cfg: ProbeConfig, stats=STATS, output="", dump=ZONE_DUMP):
        self.cfg = cfg
        self.stats_text = stats
        self.output = output
        self.dump_text = dump
        self.calls = []

    def _result(self) -> TriggerResult:
        return TriggerResult(classify_trigger_output(self.output), self.output)

    def stats(self) -> TriggerResult:
        self.calls.append("stats")
        if self.stats_text is not None:
            with open(self.cfg.stats_file, "w", encoding="utf-8") as fh:
                fh.write(self.stats_text)
        return self._result()

    def dumpdb(self) -> TriggerResult:
        self.calls.append("dumpdb")
        with open(self.cfg.dump_file, "w", encoding="utf-8") as fh:
            fh.write(self.dump_text)
        return self._result()


class FakeLatency:
    def __init__(self, elapsed: float = 0.0125) -> None:
        self.elapsed = elapsed
        self.calls = 0

    def measure(self) -> float:
        self.calls += 1
        return self.elapsed


@pytest.fixture
def cfg(tmp_path) -> ProbeConfig:
    proc = tmp_path / "proc" / "4242"
    proc.mkdir(parents=True)
    (proc / "status").write_text(STATUS)
    (tmp_path / "named.pid").write_text("4242\n")
    return ProbeConfig(
        stats_file=str(tmp_path / "named_stats.txt"),
        dump_file=str(tmp_path / "cache_dump.db"),
        pid_file=str(tmp_path / "named.pid"),
        proc_root=str(tmp_path / "proc"),
    )


def _resolver(cfg, **kwargs):
    runner = kwargs.pop("runner", None) or FakeRunner(cfg)
    latency = kwargs.pop("latency", None) or FakeLatency()
    metrics = Metrics()
    resolver = MetricResolver(
        cfg,
        runner=runner,
        waiter=StatsFileWaiter(sleep=lambda s: None, metrics=metrics, **kwargs),
        latency_probe=latency,
        metrics=metrics,
    )
    return resolver, runner, latency


def test_zone_native_metric(cfg):
    resolver, _, _ = _resolver(cfg)
    result = resolver.resolve(ProbeRequest("success", "example.com"))
    assert (result.output, result.exit_code, result.diagnostic) == ("100", 0, None)


def test_zone_queries_sum(cfg):
    resolver, _, _ = _resolver(cfg)
    result = resolver.resolve(ProbeRequest("queries", "example.com"))
    assert (result.output, result.exit_code) == ("105", 0)


def test_global_is_default_zone(cfg):
    resolver, _, _ = _resolver(cfg)
    result = resolver.resolve(ProbeRequest("success"))
    assert (result.output, result.exit_code) == ("9000", 0)


def test_unknown_zone_is_a_diagnostic(cfg):
    resolver, _, latency = _resolver(cfg)
    result = resolver.resolve(ProbeRequest("success", "nosuchzone"))
    assert result.exit_code == 1
    assert result.output is None
    assert "nosuchzone" in result.diagnostic
    assert "Troubleshooting" in result.diagnostic
    assert latency.calls == 0


def test_unknown_stat_in_known_zone(cfg):
    resolver, _, _ = _resolver(cfg)
    result = resolver.resolve(ProbeRequest("referral", "example.com"))
    assert (result.output, result.exit_code, result.diagnostic) == ("-1", 1, None)


def test_failed_trigger_reports_sentinel(cfg):
    runner = FakeRunner(cfg, stats=None, output="rndc: connect failed: 127.0.0.1#953: ERROR")
    resolver, _, latency = _resolver(cfg, runner=runner)
    result = resolver.resolve(ProbeRequest("success"))
    assert (result.output, result.exit_code) == ("-1", 1)
    assert latency.calls == 0
    assert resolver.metrics.snapshot().get("stats_polls_total", 0) == 0


def test_empty_stats_file_reports_sentinel(cfg):
    runner = FakeRunner(cfg, stats="+++ Statistics Dump +++ (1)\n--- Statistics Dump --- (1)\n")
    resolver, _, _ = _resolver(cfg, runner=runner)
    result = resolver.resolve(ProbeRequest("success"))
    assert (result.output, result.exit_code) == ("-1", 1)


def test_missing_stats_file_is_fatal(cfg):
    runner = FakeRunner(cfg, stats=None)
    resolver, _, _ = _resolver(cfg, runner=runner, exists=lambda path: False)
    with pytest.raises(StatsFileTimeoutError):
        resolver.resolve(ProbeRequest("success"))


def test_latency_is_float_seconds(cfg):
    resolver, _, latency = _resolver(cfg, latency=FakeLatency(0.25))
    result = resolver.resolve(ProbeRequest("latency"))
    assert (result.output, result.exit_code) == ("0.25", 0)
    assert latency.calls == 1


def test_latency_runs_for_every_stat(cfg):
    resolver, _, latency = _resolver(cfg)
    resolver.resolve(ProbeRequest("success", "example.com"))
    assert latency.calls == 1


def test_zones_counts_global(cfg):
    resolver, _, _ = _resolver(cfg)
    result = resolver.resolve(ProbeRequest("zones"))
    assert (result.output, result.exit_code) == ("2", 0)


def test_global_request_without_global_lines_is_unknown_zone(cfg):
    runner = FakeRunner(cfg, stats="success 1 example.com\nsuccess 2 example.org\n")
    resolver, _, _ = _resolver(cfg, runner=runner)
    result = resolver.resolve(ProbeRequest("zones"))
    assert result.exit_code == 1
    assert result.output is None
    assert "global" in result.diagnostic


def test_records_triggers_one_dump(cfg):
    resolver, runner, _ = _resolver(cfg)
    result = resolver.resolve(ProbeRequest("records"))
    assert (result.output, result.exit_code) == ("2", 0)
    assert runner.calls == ["stats", "dumpdb"]
    assert resolver.metrics.snapshot()["dump_triggers_total"] == 1


@pytest.mark.parametrize("stat", ["success", "queries", "zones", "latency", "VmRSS"])
def test_other_stats_never_dump(cfg, stat):
    resolver, runner, _ = _resolver(cfg)
    resolver.resolve(ProbeRequest(stat))
    assert runner.calls == ["stats"]


def test_process_fields_are_global(cfg):
    resolver, _, _ = _resolver(cfg)
    assert resolver.resolve(ProbeRequest("pid")).output == "4242"

    resolver, _, _ = _resolver(cfg)
    assert resolver.resolve(ProbeRequest("VmRSS")).output == str(1000 * 1024)

    resolver, _, _ = _resolver(cfg)
    assert resolver.resolve(ProbeRequest("Threads")).output == "4"


def test_process_fields_absent_without_pid_file(cfg, tmp_path):
    (tmp_path / "named.pid").unlink()
    resolver, _, _ = _resolver(cfg)
    result = resolver.resolve(ProbeRequest("VmRSS"))
    assert (result.output, result.exit_code) == ("-1", 1)


def test_debug_logs_namespace_and_counters(cfg, caplog):
    resolver, _, _ = _resolver(cfg)
    with caplog.at_level("DEBUG", logger="bind9probe"):
        resolver.resolve(ProbeRequest("success"))
    assert "parsed stats" in caplog.text
    assert "example.com" in caplog.text
    assert "STATS stats=1" in caplog.text

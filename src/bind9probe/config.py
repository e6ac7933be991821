import argparse
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class ProbeConfig:
    rndc_path: str = "/usr/sbin/rndc"
    stats_file: str = "/var/named/chroot/var/named/data/named_stats.txt"
    dump_file: str = "/var/named/chroot/var/named/data/cache_dump.db"
    pid_file: str = "/var/run/named.pid"
    proc_root: str = "/proc"
    ns_ip: str = "127.0.0.1"
    ns_port: int = 53
    ns_query: str = "localhost.localdomain"
    query_timeout_s: float = 2.0
    poll_attempts: int = 4
    poll_interval_s: float = 0.25
    debug: bool = False


def debug_from_env(environ: Mapping[str, str]) -> bool:
    return environ.get("DEBUG", "").strip() not in ("", "0")


def build_config(args: argparse.Namespace, environ: Mapping[str, str] | None = None) -> ProbeConfig:
    environ = environ or {}
    return ProbeConfig(
        rndc_path=args.rndc,
        stats_file=args.stats_file,
        dump_file=args.dump_file,
        pid_file=args.pid_file,
        ns_ip=args.ns_ip,
        ns_port=args.ns_port,
        ns_query=args.ns_query,
        query_timeout_s=args.query_timeout,
        debug=args.debug or debug_from_env(environ),
    )


def validate_config(cfg: ProbeConfig) -> None:
    if not cfg.rndc_path.strip():
        raise ValueError("rndc_path must be non-empty")
    if not cfg.stats_file.strip():
        raise ValueError("stats_file must be non-empty")
    if not cfg.dump_file.strip():
        raise ValueError("dump_file must be non-empty")
    if not cfg.pid_file.strip():
        raise ValueError("pid_file must be non-empty")
    if not cfg.ns_ip.strip():
        raise ValueError("ns_ip must be non-empty")
    if not cfg.ns_query.strip():
        raise ValueError("ns_query must be non-empty")

    if cfg.ns_port < 1 or cfg.ns_port > 65535:
        raise ValueError("ns_port must be between 1 and 65535")
    if cfg.query_timeout_s <= 0:
        raise ValueError("query_timeout_s must be > 0")
    if cfg.poll_attempts < 1:
        raise ValueError("poll_attempts must be >= 1")
    if cfg.poll_interval_s < 0:
        raise ValueError("poll_interval_s must be >= 0")

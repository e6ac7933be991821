import argparse
import logging
import os
import sys
from typing import NoReturn

from bind9probe.config import ProbeConfig, build_config, validate_config
from bind9probe.resolver import MetricResolver, ProbeRequest
from bind9probe.stats.namespace import GLOBAL_ZONE
from bind9probe.stats.waiter import StatsFileTimeoutError

USAGE = """\
Usage: bind9probe [options] <stat> [<zone>]

Where stat is one of:

native per zone:
These statistics are measured by BIND and read directly from the
dump file produced by 'rndc stats'
  - success
  - referral
  - nxrrset
  - nxdomain
  - recursion
  - failure

If <zone> is specified, then the stats reported will be
just for that zone, otherwise, they are global.

calculated:
These statistics are measured outside BIND, or by
doing a more complicated operation.

  - 'queries' sum of success,referral,nxrrset,nxdomain,recursion,failure.
  - 'latency' performs a query and measures response time.
  - 'pid'     returns the pid of the named process
  - 'VmPeak'  peak memory usage of named.
  - 'VmSize'  current memory usage
  - 'VmLck'   locked in memory
  - 'VmHWM'   high water mark
  - 'VmRSS'   resident size
  - 'VmData'  data size
  - 'VmStk'   stack size
  - 'VmExe'   exec size
  - 'VmLib'   shared library
  - 'VmPTE'   page table entries
  - 'Threads' number of named threads
  Of the above memory status, only VmSize and VmRSS are likely to be of
  interest. The others are included for completeness.

  - 'zones'   tracks how many zones are configured

  - 'records' number of A, NS, AAAA, MX, and PTR records configured.

NOTE: This probe needs to be run as 'root', or the 'named' user
      since it needs to read and delete the rndc stats file.
      A simple way to achieve that is to run it SUID named.

Run with --help for the available options.
"""


def _setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class _ProbeArgumentParser(argparse.ArgumentParser):
    """Option errors exit with status 1 instead of argparse's 2."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    defaults = ProbeConfig()
    parser = _ProbeArgumentParser(
        prog="bind9probe",
        description="Print a single BIND 9 statistic for a monitoring agent",
    )
    parser.add_argument("stat", nargs="?", help="Statistic to print")
    parser.add_argument("zone", nargs="?", default=GLOBAL_ZONE, help="Zone (default: global)")

    # Control channel and files written by named
    parser.add_argument("--rndc", default=defaults.rndc_path)
    parser.add_argument("--stats-file", default=defaults.stats_file)
    parser.add_argument("--dump-file", default=defaults.dump_file)
    parser.add_argument("--pid-file", default=defaults.pid_file)

    # Latency query
    parser.add_argument(
        "--ns-ip",
        default=defaults.ns_ip,
        help="Nameserver address used for latency queries",
    )
    parser.add_argument("--ns-port", type=int, default=defaults.ns_port)
    parser.add_argument(
        "--ns-query",
        default=defaults.ns_query,
        help="Name queried for latency timings, ideally in a configured zone",
    )
    parser.add_argument("--query-timeout", type=float, default=defaults.query_timeout_s)

    # Logging
    parser.add_argument("-v", "--debug", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    # trailing arguments after <stat> <zone> are ignored
    args, _ = _build_parser().parse_known_args(argv)
    if args.stat is None:
        sys.stdout.write(USAGE)
        return 0

    cfg = build_config(args, os.environ)
    try:
        validate_config(cfg)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    _setup_logging(cfg.debug)

    resolver = MetricResolver(cfg)
    try:
        result = resolver.resolve(ProbeRequest(stat=args.stat, zone=args.zone or GLOBAL_ZONE))
    except StatsFileTimeoutError as exc:
        raise SystemExit(str(exc)) from exc
    except OSError as exc:
        raise SystemExit(f"while opening {cfg.stats_file}: {exc}") from exc

    if result.diagnostic:
        print(result.diagnostic, file=sys.stderr)
    if result.output is not None:
        print(result.output)
    return result.exit_code


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()

import logging
import socket
import time
from collections.abc import Callable

from dnslib import DNSRecord

from bind9probe.metrics import Metrics

logger = logging.getLogger("bind9probe.dns")


class LatencyProbe:
    """
    Times a single A query against the nameserver.

    There is no retry and failures are not filtered out: a query that times out
    still reports the time spent waiting for it.
    """

    def __init__(
        self,
        host: str,
        qname: str,
        port: int = 53,
        timeout_s: float = 2.0,
        *,
        clock: Callable[[], float] = time.perf_counter,
        metrics: Metrics | None = None,
    ):
        self.host = host
        self.qname = qname
        self.port = port
        self.timeout_s = timeout_s
        self._clock = clock
        self.metrics = metrics

    def measure(self) -> float:
        if self.metrics:
            self.metrics.inc("latency_queries_total")

        start = self._clock()
        try:
            wire = DNSRecord.question(self.qname, "A").pack()
        except Exception as exc:
            self._failed(f"unusable query name: {exc}")
            return self._clock() - start

        try:
            family, _, _, _, sockaddr = socket.getaddrinfo(
                self.host, self.port, type=socket.SOCK_DGRAM
            )[0]
            s = socket.socket(family, socket.SOCK_DGRAM)
        except OSError as exc:
            self._failed(str(exc))
            return self._clock() - start

        s.settimeout(self.timeout_s)
        try:
            s.sendto(wire, sockaddr)
            data, _ = s.recvfrom(65535)
        except TimeoutError:
            self._failed("timeout")
            return self._clock() - start
        except OSError as exc:
            self._failed(str(exc))
            return self._clock() - start
        finally:
            s.close()
        elapsed = self._clock() - start

        try:
            reply = DNSRecord.parse(data)
        except Exception as exc:
            self._failed(f"bad reply: {exc}")
            return elapsed
        logger.debug(
            "latency query %s @%s rcode=%s answers=%d",
            self.qname,
            self.host,
            reply.header.rcode,
            len(reply.rr),
        )
        return elapsed

    def _failed(self, reason: str) -> None:
        if self.metrics:
            self.metrics.inc("latency_failures_total")
        logger.debug("latency query %s @%s failed: %s", self.qname, self.host, reason)

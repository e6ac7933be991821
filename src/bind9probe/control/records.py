from __future__ import annotations

import logging
import re

from bind9probe.control.trigger import TriggerRunner
from bind9probe.metrics import Metrics

logger = logging.getLogger("bind9probe.control")

# Other record types are not counted.
_RECORD_RE = re.compile(r"\bIN\s+(?:NS|A|MX|AAAA|PTR)\b")


def count_records(lines) -> int:
    return sum(1 for line in lines if _RECORD_RE.search(line))


class RecordCounter:
    """
    Counts NS, A, MX, AAAA and PTR records in a full zone dump.

    Dumping every zone is expensive on large servers, so this only runs when
    the ``records`` stat is asked for.
    """

    def __init__(self, runner: TriggerRunner, dump_file: str, metrics: Metrics | None = None):
        self.runner = runner
        self.dump_file = dump_file
        self.metrics = metrics

    def count(self) -> int:
        if self.metrics:
            self.metrics.inc("dump_triggers_total")
        result = self.runner.dumpdb()
        if not result.ok:
            return -1

        try:
            with open(self.dump_file, encoding="utf-8", errors="replace") as fh:
                return count_records(fh)
        except OSError as exc:
            logger.warning("Unable to read %s: %s", self.dump_file, exc)
            return -1

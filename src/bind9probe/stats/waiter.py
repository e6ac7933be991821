from __future__ import annotations

import contextlib
import logging
import os
import time
from collections.abc import Callable

from bind9probe.control.trigger import TriggerResult
from bind9probe.metrics import Metrics

logger = logging.getLogger("bind9probe.stats")


class StatsFileTimeoutError(RuntimeError):
    pass


class StatsFileWaiter:
    """
    Removes a dump file, fires the trigger that makes named rewrite it and
    polls until the file shows up again.

    named writes the file asynchronously after rndc returns, so a short
    bounded poll is needed. A file that never appears means the configured
    path does not match named.conf, which is fatal.
    """

    def __init__(
        self,
        attempts: int = 4,
        interval_s: float = 0.25,
        *,
        sleep: Callable[[float], None] | None = None,
        exists: Callable[[str], bool] = os.path.isfile,
        metrics: Metrics | None = None,
    ):
        self.attempts = attempts
        self.interval_s = interval_s
        self._sleep = sleep if sleep is not None else time.sleep
        self._exists = exists
        self.metrics = metrics

    def wait_for(self, path: str, trigger: Callable[[], TriggerResult]) -> bool:
        with contextlib.suppress(OSError):
            os.unlink(path)

        result = trigger()
        if not result.ok:
            return False

        remaining = self.attempts
        while not self._poll(path):
            if remaining == 0:
                raise StatsFileTimeoutError(
                    f"{path} never showed up. Is the probe configured correctly?"
                )
            remaining -= 1
            logger.debug("waiting for %s", path)
            self._sleep(self.interval_s)
        return True

    def _poll(self, path: str) -> bool:
        if self.metrics:
            self.metrics.inc("stats_polls_total")
        return self._exists(path)

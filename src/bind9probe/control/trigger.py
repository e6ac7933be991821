from __future__ import annotations

import logging
import os
import re
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from bind9probe.metrics import Metrics

logger = logging.getLogger("bind9probe.control")

_FAILURE_RE = re.compile(r"failed|error|found", re.IGNORECASE)


class TriggerStatus(Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass(frozen=True)
class TriggerResult:
    status: TriggerStatus
    output: str

    @property
    def ok(self) -> bool:
        return self.status is TriggerStatus.OK


def classify_trigger_output(text: str) -> TriggerStatus:
    """
    rndc reports most problems on stdout/stderr with a zero exit status, so
    the combined output is the only reliable signal.
    """
    if _FAILURE_RE.search(text):
        return TriggerStatus.FAILED
    return TriggerStatus.OK


class TriggerRunner:
    def __init__(
        self,
        rndc_path: str,
        env: Mapping[str, str] | None = None,
        metrics: Metrics | None = None,
    ):
        self.rndc_path = rndc_path
        # may run SUID: rndc gets an empty PATH, never the caller's
        self.env = dict(env) if env is not None else {**os.environ, "PATH": ""}
        self.metrics = metrics

    def run(self, args: Sequence[str]) -> TriggerResult:
        cmd = [self.rndc_path, *args]
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                env=self.env,
                check=False,
            )
        except OSError as exc:
            output = f"{self.rndc_path}: {exc}"
            status = TriggerStatus.FAILED
        else:
            output = (proc.stdout or "").rstrip("\n")
            status = classify_trigger_output(output)

        if status is TriggerStatus.FAILED:
            if self.metrics:
                self.metrics.inc("trigger_failures_total")
            logger.debug("%s failed: %s", " ".join(cmd), output)
        return TriggerResult(status=status, output=output)

    def stats(self) -> TriggerResult:
        return self.run(["stats"])

    def dumpdb(self) -> TriggerResult:
        return self.run(["dumpdb", "-zones"])

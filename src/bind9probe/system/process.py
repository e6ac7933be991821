from __future__ import annotations

import logging
import os

from bind9probe.stats.parser import parse_int

logger = logging.getLogger("bind9probe.system")


class ProcessInspector:
    """
    Reads named's pid and the Vm*/Threads lines of /proc/<pid>/status.

    Everything here is optional: a missing pid file or status file just
    leaves the fields out.
    """

    def __init__(self, pid_file: str, proc_root: str = "/proc"):
        self.pid_file = pid_file
        self.proc_root = proc_root

    def inspect(self) -> dict[str, int]:
        pid = self.read_pid()
        if pid is None:
            return {}
        fields = {"pid": pid}
        fields.update(self.read_status(pid))
        return fields

    def read_pid(self) -> int | None:
        if not os.path.isfile(self.pid_file):
            logger.debug("no pid file at %s", self.pid_file)
            return None
        try:
            with open(self.pid_file, encoding="utf-8") as fh:
                first = fh.readline().strip()
        except OSError as exc:
            logger.debug("unable to open %s: %s", self.pid_file, exc)
            return None
        if not first.isdigit():
            logger.debug("unusable pid %r in %s", first, self.pid_file)
            return None
        return int(first)

    def read_status(self, pid: int) -> dict[str, int]:
        path = os.path.join(self.proc_root, str(pid), "status")
        try:
            with open(path, encoding="utf-8", errors="replace") as fh:
                return parse_status(fh)
        except OSError as exc:
            logger.debug("unable to read %s: %s", path, exc)
            return {}


def parse_status(lines) -> dict[str, int]:
    fields: dict[str, int] = {}
    for line in lines:
        parts = line.split()
        if len(parts) < 2:
            continue
        label = parts[0].rstrip(":")
        if not (label.startswith("Vm") or label == "Threads"):
            continue
        value = parse_int(parts[1])
        if len(parts) > 2 and parts[2] == "kB":
            value *= 1024
        fields[label] = value
    return fields

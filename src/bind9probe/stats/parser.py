from __future__ import annotations

import re

from bind9probe.stats.namespace import GLOBAL_ZONE, StatsNamespace

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def parse_int(token: str) -> int:
    """Leading integer of ``token``, or 0 when it has none ("12ms" -> 12)."""
    match = _LEADING_INT_RE.match(token)
    if match is None:
        return 0
    return int(match.group(1))


def parse_stats_dump(text: str) -> tuple[StatsNamespace, int]:
    stats = StatsNamespace()
    invalid = 0
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        # summary section of the dump plus the +++/--- framing
        if line.endswith("_bind") or line.startswith(("---", "+++")):
            continue
        parts = line.split()
        if len(parts) == 2:
            metric, value = parts
            zone = GLOBAL_ZONE
        elif len(parts) == 3:
            metric, value, zone = parts
        else:
            invalid += 1
            continue
        stats.set_count(zone, metric, parse_int(value))
    return stats, invalid

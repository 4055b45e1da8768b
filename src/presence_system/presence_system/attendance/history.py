from __future__ import annotations

from typing import Iterable, Sequence

from .model import AttendanceEvent


def compress_status_changes(events: Iterable[AttendanceEvent]) -> list[AttendanceEvent]:
    """Keep only events whose status differs from the chronologically preceding one.

    Input order does not matter; the result is ascending by (timestamp, id).
    The first event of the sequence always counts as a change.
    """
    changes: list[AttendanceEvent] = []
    last_status = None
    for ev in sorted(events, key=lambda e: e.sort_key):
        if ev.status != last_status:
            changes.append(ev)
            last_status = ev.status
    return changes


def recent_status_changes(events: Sequence[AttendanceEvent], limit: int) -> list[AttendanceEvent]:
    """Newest `limit` status changes, newest first.

    Compression must see the whole history: windowing first could hide a
    transition that sits right at the window edge.
    """
    if limit <= 0:
        return []
    changes = compress_status_changes(events)
    changes.reverse()
    return changes[:limit]

"""Monthly presence aggregation.

Replays the event log as present/absent sessions and totals them per day.
Only status transitions matter: repeated "present" heartbeats inside one
session must not open new sessions. A session is attributed entirely to the
day it started, even when it runs past midnight.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable

from ..attendance.history import compress_status_changes
from ..attendance.model import AttendanceEvent
from ..core.enums import AttendanceStatus


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


@dataclass(frozen=True)
class PresenceSession:
    start: datetime
    end: datetime
    ongoing: bool = False

    @property
    def exact_minutes(self) -> float:
        return _minutes_between(self.start, self.end)

    @property
    def minutes(self) -> int:
        return _round_half_up(self.exact_minutes)

    def to_dict(self) -> dict:
        d = {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "minutes": self.minutes,
        }
        if self.ongoing:
            d["ongoing"] = True
        return d


@dataclass
class DailyPresence:
    date: date
    sessions: list[PresenceSession] = field(default_factory=list)

    @property
    def exact_minutes(self) -> float:
        return sum(s.exact_minutes for s in self.sessions)

    @property
    def total_minutes(self) -> int:
        return _round_half_up(self.exact_minutes)

    @property
    def total_hours(self) -> str:
        return f"{self.exact_minutes / 60:.2f}"

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "totalMinutes": self.total_minutes,
            "totalHours": self.total_hours,
            "sessions": [s.to_dict() for s in self.sessions],
        }


def build_daily_presence(transitions: Iterable[AttendanceEvent], *, now: datetime) -> list[DailyPresence]:
    """Walk transitions in order and total closed/open sessions per start day.

    "present" opens a session; any other status closes it, since "late"
    never grants presence on its own. Note: "late" closes a session just like
    "absent" does, so a session is never counted past a late mark. A session
    still open at the end runs until `now` and is flagged as ongoing.
    """
    days: dict[date, DailyPresence] = {}

    def add(session: PresenceSession) -> None:
        day = session.start.date()
        days.setdefault(day, DailyPresence(date=day)).sessions.append(session)

    session_start: datetime | None = None
    for ev in sorted(transitions, key=lambda e: e.sort_key):
        if ev.status == AttendanceStatus.PRESENT:
            if session_start is None:
                session_start = ev.timestamp
        elif session_start is not None:
            add(PresenceSession(start=session_start, end=ev.timestamp))
            session_start = None

    if session_start is not None:
        add(PresenceSession(start=session_start, end=max(now, session_start), ongoing=True))

    return [days[d] for d in sorted(days)]


def aggregate_presence(events: Iterable[AttendanceEvent], *, now: datetime) -> list[DailyPresence]:
    """Full pipeline: raw events -> transitions -> per-day sessions."""
    return build_daily_presence(compress_status_changes(events), now=now)

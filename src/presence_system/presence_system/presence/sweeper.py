from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_SWEEP_BATCH_SIZE, DEFAULT_SWEEP_INTERVAL_SECONDS, FRESHNESS_WINDOW
from ..core.exceptions import StorageError, ValidationError
from ..employees.model import EmployeePresenceRow
from ..employees.repository import EmployeeRepository
from .reconciler import should_be_present

logger = logging.getLogger(__name__)

_CONSISTENT = "consistent"
_CORRECTED = "corrected"
_SUPERSEDED = "superseded"
_FAILED = "failed"


@dataclass(frozen=True)
class PresenceTransition:
    employee_id: int
    employee_code: str
    employee_name: str
    was_present: bool
    is_present: bool
    last_seen: Optional[datetime]
    at: datetime

    def describe(self) -> str:
        before = "Present" if self.was_present else "Absent"
        after = "Present" if self.is_present else "Absent"
        return f"{self.employee_name} ({self.employee_code}): {before} -> {after}"


@dataclass(frozen=True)
class SweepResult:
    started_at: datetime
    finished_at: datetime
    checked: int = 0
    corrected: int = 0
    failed: int = 0
    superseded: int = 0
    transitions: tuple[PresenceTransition, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.failed == 0

    def to_dict(self) -> dict:
        return {
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat(),
            "checked": self.checked,
            "corrected": self.corrected,
            "failed": self.failed,
            "superseded": self.superseded,
            "error": self.error,
        }


@dataclass(frozen=True)
class SweeperStatus:
    is_running: bool
    interval_ms: int
    next_tick_at: Optional[datetime]
    last_run_at: Optional[datetime]
    last_result: Optional[SweepResult]
    runs: int

    def to_dict(self) -> dict:
        return {
            "isRunning": self.is_running,
            "intervalMs": self.interval_ms,
            "nextTickAt": self.next_tick_at.isoformat() if self.next_tick_at else None,
            "lastRunAt": self.last_run_at.isoformat() if self.last_run_at else None,
            "lastResult": self.last_result.to_dict() if self.last_result else None,
            "runs": self.runs,
        }


TransitionListener = Callable[[PresenceTransition], None]


class PresenceSweeper:
    """Periodic pass that corrects every employee's materialized presence.

    One daemon thread ticks every `interval_seconds`. Sweeps are serialized
    by `_run_lock`: a scheduled tick that finds a sweep in flight is skipped,
    while an explicit `run_once()` waits for it and then runs.

    The sweeper is an owned handle: build it, keep the reference, and call
    `start()`/`stop()` on it. Nothing here is process-global.
    """

    def __init__(
        self,
        employees: EmployeeRepository,
        *,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        batch_size: int = DEFAULT_SWEEP_BATCH_SIZE,
        window: timedelta = FRESHNESS_WINDOW,
        clock: Callable[[], datetime] = now_local,
        listeners: Iterable[TransitionListener] = (),
    ):
        if interval_seconds <= 0:
            raise ValidationError("interval_seconds must be positive")
        if batch_size <= 0:
            raise ValidationError("batch_size must be positive")

        self._employees = employees
        self._interval = float(interval_seconds)
        self._batch_size = int(batch_size)
        self._window = window
        self._clock = clock
        self._listeners: list[TransitionListener] = list(listeners)

        self._run_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._next_tick_at: Optional[datetime] = None
        self._last_result: Optional[SweepResult] = None
        self._runs = 0

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    # Lifecycle ---------------------------------------------------------

    def start(self) -> bool:
        """Run one sweep now, then keep sweeping on every tick.

        Returns False (and does nothing) if already running.
        """
        with self._state_lock:
            if self._running:
                logger.warning("Presence sweeper is already running")
                return False
            self._running = True
            self._stop_event = threading.Event()
            stop_event = self._stop_event

        logger.info("Starting presence sweeper (interval=%ss)", self._interval)
        self.run_once()

        with self._state_lock:
            if stop_event.is_set():
                # stop() was called while the initial sweep ran.
                return True
            self._next_tick_at = self._clock() + timedelta(seconds=self._interval)
            self._thread = threading.Thread(
                target=self._loop,
                args=(stop_event,),
                name="presence-sweeper",
                daemon=True,
            )
            self._thread.start()
        return True

    def stop(self, *, wait: bool = False, timeout: float | None = None) -> bool:
        """Cancel the pending tick. An in-flight sweep finishes but is not rescheduled.

        Returns False (and does nothing) if not running.
        """
        with self._state_lock:
            if not self._running:
                logger.warning("Presence sweeper is not running")
                return False
            self._running = False
            self._next_tick_at = None
            self._stop_event.set()
            thread, self._thread = self._thread, None

        logger.info("Stopping presence sweeper")
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        return True

    def get_status(self) -> SweeperStatus:
        with self._state_lock:
            last = self._last_result
            return SweeperStatus(
                is_running=self._running,
                interval_ms=int(self._interval * 1000),
                next_tick_at=self._next_tick_at,
                last_run_at=last.finished_at if last else None,
                last_result=last,
                runs=self._runs,
            )

    def _loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            self._tick()
            with self._state_lock:
                if not stop_event.is_set():
                    self._next_tick_at = self._clock() + timedelta(seconds=self._interval)

    def _tick(self) -> Optional[SweepResult]:
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Previous presence sweep still in flight; skipping tick")
            return None
        try:
            return self._sweep(self._clock())
        finally:
            self._run_lock.release()

    # Sweep -------------------------------------------------------------

    def run_once(self, *, now: datetime | None = None) -> SweepResult:
        """Run a full sweep, waiting for any in-flight sweep first. Never raises."""
        with self._run_lock:
            return self._sweep(now or self._clock())

    def _sweep(self, now: datetime) -> SweepResult:
        logger.debug("Checking employee presence status...")
        checked = corrected = failed = superseded = 0
        transitions: list[PresenceTransition] = []
        error: Optional[str] = None

        after_id = 0
        try:
            while True:
                batch = list(self._employees.list_with_last_event(after_id=after_id, limit=self._batch_size))
                for row in batch:
                    checked += 1
                    outcome, transition = self._correct(row, now)
                    if outcome == _FAILED:
                        failed += 1
                    elif outcome == _SUPERSEDED:
                        superseded += 1
                    elif outcome == _CORRECTED:
                        corrected += 1
                        if transition.was_present != transition.is_present:
                            transitions.append(transition)
                            self._notify(transition)

                if len(batch) < self._batch_size:
                    break
                after_id = batch[-1].employee_id
        except Exception as e:
            # The ticker must survive anything; the next tick retries from scratch.
            error = str(e) or e.__class__.__name__
            logger.exception("Presence sweep failed")

        result = SweepResult(
            started_at=now,
            finished_at=self._clock(),
            checked=checked,
            corrected=corrected,
            failed=failed,
            superseded=superseded,
            transitions=tuple(transitions),
            error=error,
        )

        if corrected:
            logger.info("Updated presence status for %d employees", corrected)
        else:
            logger.debug("No presence updates needed")

        with self._state_lock:
            self._last_result = result
            self._runs += 1
        return result

    def _correct(self, row: EmployeePresenceRow, now: datetime) -> tuple[str, Optional[PresenceTransition]]:
        """Bring one snapshot row in line with its latest event.

        The write is conditional on the row's last_seen not having moved past
        the snapshot: a live report that landed after the batch was read wins.
        """
        target = should_be_present(row.last_status, row.last_event_at, now, self._window)
        last_seen = row.last_event_at
        if row.is_present == target and row.last_seen == last_seen:
            return _CONSISTENT, None

        try:
            written = self._employees.update_presence_if_not_newer(
                row.employee_id,
                is_present=target,
                last_seen=last_seen,
                observed_last_seen=row.last_seen,
            )
        except StorageError:
            logger.exception("Failed to correct presence for employee %s", row.code)
            return _FAILED, None

        if not written:
            logger.debug("Presence of %s changed during the sweep; leaving it", row.code)
            return _SUPERSEDED, None

        return _CORRECTED, PresenceTransition(
            employee_id=row.employee_id,
            employee_code=row.code,
            employee_name=row.name,
            was_present=row.is_present,
            is_present=target,
            last_seen=last_seen,
            at=now,
        )

    def _notify(self, transition: PresenceTransition) -> None:
        logger.info("Updated %s", transition.describe())
        for listener in self._listeners:
            try:
                listener(transition)
            except Exception:
                logger.exception("Presence transition listener failed")

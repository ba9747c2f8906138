"""Archival scheduler.

Fires once per calendar day at a fixed wall-clock time in a fixed timezone
and archives "yesterday": daily report first, then the weekly rollup when
yesterday was a Sunday, then the monthly rollup when yesterday closed a
month. Each level is isolated; a failure is logged, recorded as a failed
report and never stops the other levels or the scheduler itself. A day whose
daily report exists but which still holds unarchived records comes back as
``incomplete`` with the record ids, and the run is not ok.

Time is injected (``clock``) and ``tick(now)`` can be driven by hand, so the
schedule is testable by advancing a fake clock instead of sleeping.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Callable, Optional

from ..common.datetime_utils import is_month_end, is_week_end, local_date, now_in
from ..core.constants import DEFAULT_ARCHIVE_ACTOR
from ..core.enums import ReportKind, SchedulerState, StepOutcome
from ..core.exceptions import AggregationFailed, AggregationSkipped, UnreportedRecords, ValidationError
from ..reports.aggregator import AggregationEngine
from ..reports.model import Report
from .model import ArchivalRun, LevelResult

logger = logging.getLogger(__name__)

# Upper bound on one sleep, so wall-clock jumps are noticed within the hour.
MAX_WAIT_SECONDS = 3600


class ArchivalScheduler:
    def __init__(
        self,
        engine: AggregationEngine,
        *,
        tz: tzinfo,
        fire_at: time = time(0, 0),
        clock: Optional[Callable[[], datetime]] = None,
        actor: str = DEFAULT_ARCHIVE_ACTOR,
    ):
        self._engine = engine
        self._tz = tz
        self._fire_at = fire_at
        self._clock = clock or (lambda: now_in(tz))
        self._actor = actor

        # Serializes passes: a manual trigger racing the timer waits its turn.
        self._run_lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._last_run: Optional[ArchivalRun] = None
        self._next_fire = self.compute_next_fire(self._clock())

        self._shutdown = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def next_fire(self) -> datetime:
        return self._next_fire

    @property
    def last_run(self) -> Optional[ArchivalRun]:
        return self._last_run

    def _localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self._tz)
        return moment.astimezone(self._tz)

    def compute_next_fire(self, after: datetime) -> datetime:
        """First fire time strictly after ``after``."""
        local = self._localize(after)
        candidate = datetime.combine(local.date(), self._fire_at, tzinfo=self._tz)
        if candidate <= local:
            candidate = datetime.combine(local.date() + timedelta(days=1), self._fire_at, tzinfo=self._tz)
        return candidate

    def yesterday(self, now: Optional[datetime] = None) -> date:
        return local_date(self._localize(now or self._clock()), self._tz) - timedelta(days=1)

    def tick(self, now: Optional[datetime] = None) -> Optional[ArchivalRun]:
        """Run a pass if the next fire time has been reached.

        Missed fires are not back-filled: after a long pause only the most
        recent "yesterday" is archived, then the schedule moves past ``now``.
        """

        now = self._localize(now or self._clock())
        if now < self._next_fire:
            return None

        target = self.yesterday(now)
        self._next_fire = self.compute_next_fire(now)
        logger.info("Scheduled archival fired; next fire at %s", self._next_fire.isoformat())
        return self.run_pass(target, actor=self._actor)

    def run_now(self, *, target: Optional[date] = None, actor: Optional[str] = None) -> ArchivalRun:
        """Operator-triggered pass, synchronous. Only days before local today can be archived."""
        today = local_date(self._localize(self._clock()), self._tz)
        target = target or today - timedelta(days=1)
        if target >= today:
            raise ValidationError(f"Archival target {target} must be before {today}")
        return self.run_pass(target, actor=actor or self._actor)

    def run_pass(self, target: date, *, actor: str) -> ArchivalRun:
        with self._run_lock:
            self._state = SchedulerState.RUNNING
            started_at = self._clock()
            logger.info("Archival pass for %s started by %s", target, actor)
            try:
                results = [
                    self._step(ReportKind.DAILY, target, actor, self._engine.aggregate_daily),
                    self._step(ReportKind.WEEKLY, target, actor, self._engine.aggregate_weekly)
                    if is_week_end(target)
                    else LevelResult(ReportKind.WEEKLY, StepOutcome.NOT_DUE),
                    self._step(ReportKind.MONTHLY, target, actor, self._engine.aggregate_monthly)
                    if is_month_end(target)
                    else LevelResult(ReportKind.MONTHLY, StepOutcome.NOT_DUE),
                ]
            finally:
                self._state = SchedulerState.IDLE

            run = ArchivalRun(
                target=target,
                actor=actor,
                started_at=started_at,
                finished_at=self._clock(),
                results=tuple(results),
            )
            self._last_run = run
            logger.info(
                "Archival pass for %s finished: %s",
                target,
                ", ".join(f"{r.kind.value}={r.outcome.value}" for r in results),
            )
            return run

    def _step(self, kind: ReportKind, target: date, actor: str, aggregate: Callable[..., Report]) -> LevelResult:
        try:
            report = aggregate(target, generated_by=actor)
        except AggregationSkipped as e:
            logger.info("%s aggregation for %s skipped: %s", kind.value.capitalize(), target, e.reason)
            return LevelResult(kind, StepOutcome.SKIPPED, message=e.reason)
        except UnreportedRecords as e:
            logger.error("%s aggregation for %s incomplete: %s", kind.value.capitalize(), target, e)
            self._record_failure(kind, target, actor, e)
            return LevelResult(kind, StepOutcome.INCOMPLETE, message=str(e))
        except Exception as e:
            failure = AggregationFailed(kind.value, e)
            logger.exception("%s", failure)
            self._record_failure(kind, target, actor, e)
            return LevelResult(kind, StepOutcome.FAILED, message=str(failure))
        return LevelResult(kind, StepOutcome.COMPLETED, report_id=report.report_id)

    def _record_failure(self, kind: ReportKind, target: date, actor: str, error: Exception) -> None:
        try:
            self._engine.record_failure(kind, target, generated_by=actor, error=error)
        except Exception:
            logger.exception("Could not record failed %s report for %s", kind.value, target)

    # -- background timer -------------------------------------------------

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            raise RuntimeError("Archival scheduler already running")

        self._shutdown.clear()
        self._thread = threading.Thread(target=self._loop, name="archival-scheduler", daemon=True)
        self._thread.start()
        logger.info("Archival scheduler started; next fire at %s", self._next_fire.isoformat())

    def stop(self, timeout: float = 5.0) -> None:
        self._shutdown.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Archival scheduler stopped")

    def _loop(self) -> None:
        while not self._shutdown.is_set():
            wait = (self._next_fire - self._localize(self._clock())).total_seconds()
            if wait > 0:
                self._shutdown.wait(min(wait, MAX_WAIT_SECONDS))
                continue
            try:
                self.tick()
            except Exception:
                # Steps are isolated inside run_pass; this guards the loop itself.
                logger.exception("Archival tick failed")
                self._next_fire = self.compute_next_fire(self._clock())

    def status(self) -> dict:
        return {
            "state": self._state.value,
            "running": bool(self._thread and self._thread.is_alive()),
            "next_fire": self._next_fire.isoformat(),
            "last_run": self._last_run.to_dict() if self._last_run else None,
        }

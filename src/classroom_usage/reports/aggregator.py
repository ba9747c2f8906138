"""Aggregation engine: time-in records -> daily reports -> weekly/monthly rollups.

Daily reports are computed from raw records; weekly and monthly reports are
computed only from previously produced reports, never by re-scanning records.

Query-then-mark is two separate operations with no isolation between them.
Records are marked archived by id (exactly the ids the report references), so
a record that shows up between the query and the mark stays unarchived. A
re-run for a date that already has a completed daily report re-applies the
mark for that report's ids, which makes the pairing at-least-once, and
raises ``UnreportedRecords`` naming any record of that day still left out.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional, Sequence

from ..common.datetime_utils import is_month_end, is_week_end, month_window, week_window
from ..core.enums import ReportKind, ReportStatus
from ..core.exceptions import AggregationSkipped, ConflictError, UnreportedRecords, ValidationError
from ..timein.model import EventRecord
from ..timein.repository import EventRecordLog
from .model import LocationBreakdown, Period, Report, Statistics, merge_breakdowns, report_title
from .repository import ReportRepository

logger = logging.getLogger(__name__)


def breakdown_from_records(records: Iterable[EventRecord]) -> tuple[LocationBreakdown, ...]:
    by_location: dict[str, list] = {}
    for r in records:
        by_location.setdefault(r.location_ref, []).append(r.status)
    return tuple(
        LocationBreakdown(location_ref=ref, statistics=Statistics.from_statuses(statuses))
        for ref, statuses in by_location.items()
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AggregationEngine:
    def __init__(
        self,
        events: EventRecordLog,
        reports: ReportRepository,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._events = events
        self._reports = reports
        self._clock = clock or _utcnow
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)

    @staticmethod
    def period_for(kind: ReportKind, day: date) -> Period:
        if kind == ReportKind.DAILY:
            return Period(day, day)
        if kind == ReportKind.WEEKLY:
            return Period(*week_window(day))
        return Period(*month_window(day))

    def _build(
        self,
        kind: ReportKind,
        period: Period,
        *,
        statistics: Statistics,
        breakdown: Sequence[LocationBreakdown],
        source_refs: Sequence[str],
        generated_by: str,
    ) -> Report:
        return Report(
            report_id=self._new_id(),
            kind=kind,
            period=period,
            title=report_title(kind, period),
            status=ReportStatus.COMPLETED,
            generated_by=generated_by,
            created_at=self._clock(),
            statistics=statistics,
            location_breakdown=tuple(breakdown),
            source_refs=tuple(source_refs),
        )

    def _persist(self, report: Report) -> Report:
        try:
            self._reports.add(report)
        except ConflictError as e:
            # Another pass created the same report between our check and insert.
            raise AggregationSkipped(str(e)) from e
        logger.info(
            "%s report %s created for %s..%s (total=%s)",
            report.kind.value.capitalize(),
            report.report_id,
            report.period.start,
            report.period.end,
            report.statistics.total,
        )
        return report

    def _ensure_absent(self, kind: ReportKind, period: Period) -> None:
        existing = self._reports.find_completed(kind=kind, period=period)
        if existing:
            raise AggregationSkipped(
                f"{kind.value.capitalize()} report {existing.report_id} already exists for {period.start}..{period.end}"
            )

    def aggregate_daily(self, day: date, *, generated_by: str) -> Report:
        period = self.period_for(ReportKind.DAILY, day)

        existing = self._reports.find_completed(kind=ReportKind.DAILY, period=period)
        if existing:
            healed = self._events.mark_archived(existing.source_refs)
            if healed:
                logger.warning("Re-marked %s records of daily report %s as archived", healed, existing.report_id)
            refs = set(existing.source_refs)
            late = [r for r in self._events.find_unarchived(start=day, end=day) if r.record_id not in refs]
            if late:
                logger.warning("%s records for %s arrived after its daily report %s", len(late), day, existing.report_id)
                raise UnreportedRecords(day, [r.record_id for r in late])
            raise AggregationSkipped(f"Daily report {existing.report_id} already exists for {day}")

        records = self._events.find_unarchived(start=day, end=day)
        if not records:
            raise AggregationSkipped(f"No records to archive for {day}")

        report = self._persist(
            self._build(
                ReportKind.DAILY,
                period,
                statistics=Statistics.from_statuses(r.status for r in records),
                breakdown=breakdown_from_records(records),
                source_refs=[r.record_id for r in records],
                generated_by=generated_by,
            )
        )

        archived = self._events.mark_archived(report.source_refs)
        logger.info("Archived %s records for %s", archived, day)
        return report

    def _rollup(self, kind: ReportKind, period: Period, children: Sequence[Report], *, generated_by: str) -> Report:
        return self._persist(
            self._build(
                kind,
                period,
                statistics=Statistics.sum(c.statistics for c in children),
                breakdown=merge_breakdowns(c.location_breakdown for c in children),
                source_refs=[c.report_id for c in children],
                generated_by=generated_by,
            )
        )

    def aggregate_weekly(self, week_end: date, *, generated_by: str) -> Report:
        if not is_week_end(week_end):
            raise ValidationError(f"{week_end} is not a week-ending day (Sunday)")

        period = self.period_for(ReportKind.WEEKLY, week_end)
        self._ensure_absent(ReportKind.WEEKLY, period)

        dailies = self._reports.find_within(kind=ReportKind.DAILY, start=period.start, end=period.end)
        if not dailies:
            raise AggregationSkipped(f"No daily reports for week {period.start}..{period.end}")

        return self._rollup(ReportKind.WEEKLY, period, dailies, generated_by=generated_by)

    def aggregate_monthly(self, month_end: date, *, generated_by: str) -> Report:
        if not is_month_end(month_end):
            raise ValidationError(f"{month_end} is not the last day of its month")

        period = self.period_for(ReportKind.MONTHLY, month_end)
        self._ensure_absent(ReportKind.MONTHLY, period)

        weeklies = list(self._reports.find_within(kind=ReportKind.WEEKLY, start=period.start, end=period.end))
        covered = {ref for w in weeklies for ref in w.source_refs}
        # Days of weeks straddling the month boundary only exist as daily reports.
        leftovers = [
            d
            for d in self._reports.find_within(kind=ReportKind.DAILY, start=period.start, end=period.end)
            if d.report_id not in covered
        ]

        children = sorted(weeklies + leftovers, key=lambda r: (r.period.start, r.period.end))
        if not children:
            raise AggregationSkipped(f"No reports to roll up for {period.start:%B %Y}")

        return self._rollup(ReportKind.MONTHLY, period, children, generated_by=generated_by)

    def record_failure(self, kind: ReportKind, day: date, *, generated_by: str, error: BaseException) -> Report:
        """Store a failed report so operators can find the broken pass."""
        period = self.period_for(kind, day)
        report = Report(
            report_id=self._new_id(),
            kind=kind,
            period=period,
            title=report_title(kind, period),
            status=ReportStatus.FAILED,
            generated_by=generated_by,
            created_at=self._clock(),
            error=f"{type(error).__name__}: {error}",
        )
        self._reports.add(report)
        return report

from __future__ import annotations

import threading
from datetime import date
from typing import Optional, Sequence

from ..core.enums import ReportKind, ReportStatus
from ..core.exceptions import ConflictError
from .model import Period, Report
from .repository import ReportRepository


class InMemoryReportRepository(ReportRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._rows: dict[str, Report] = {}

    def _completed(self, kind: ReportKind, period: Period) -> Optional[Report]:
        for r in self._rows.values():
            if r.status == ReportStatus.COMPLETED and r.kind == kind and r.period == period:
                return r
        return None

    def add(self, report: Report) -> None:
        with self._lock:
            if report.report_id in self._rows:
                raise ValueError(f"Duplicate report id: {report.report_id}")
            if report.status == ReportStatus.COMPLETED and self._completed(report.kind, report.period):
                raise ConflictError(
                    "Report",
                    report.report_id,
                    f"A completed {report.kind.value} report already exists for {report.period.start}..{report.period.end}",
                )
            self._rows[report.report_id] = report

    def get(self, report_id: str) -> Optional[Report]:
        return self._rows.get(report_id)

    def find_completed(self, *, kind: ReportKind, period: Period) -> Optional[Report]:
        with self._lock:
            return self._completed(kind, period)

    def find_within(self, *, kind: ReportKind, start: date, end: date) -> Sequence[Report]:
        window = Period(start, end)
        items = [
            r
            for r in list(self._rows.values())
            if r.kind == kind and r.status == ReportStatus.COMPLETED and window.contains(r.period)
        ]
        items.sort(key=lambda r: r.period.start)
        return items

    def list_reports(
        self,
        *,
        kind: Optional[ReportKind] = None,
        status: Optional[ReportStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[Report]:
        items = []
        for r in list(self._rows.values()):
            if kind is not None and r.kind != kind:
                continue
            if status is not None and r.status != status:
                continue
            if start is not None and r.period.end < start:
                continue
            if end is not None and r.period.start > end:
                continue
            items.append(r)
        items.sort(key=lambda r: r.created_at, reverse=True)
        return items[: int(limit)]

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import ReportKind, ReportStatus
from .model import Period, Report


class ReportRepository(Protocol):
    def add(self, report: Report) -> None:
        """Persist a new report.

        Raises ConflictError when ``report`` is completed and a completed
        report already exists for the same kind and period. The check and the
        insert are one atomic operation.
        """

        raise NotImplementedError

    def get(self, report_id: str) -> Optional[Report]:
        raise NotImplementedError

    def find_completed(self, *, kind: ReportKind, period: Period) -> Optional[Report]:
        raise NotImplementedError

    def find_within(self, *, kind: ReportKind, start: date, end: date) -> Sequence[Report]:
        """Completed reports of ``kind`` whose period lies fully in [start, end], oldest first."""

        raise NotImplementedError

    def list_reports(
        self,
        *,
        kind: Optional[ReportKind] = None,
        status: Optional[ReportStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[Report]:
        """Newest first; ``start``/``end`` keep reports whose period overlaps the range."""

        raise NotImplementedError

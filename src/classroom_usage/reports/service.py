from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..common.validators import require_limit
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import ReportKind, ReportStatus
from ..core.exceptions import NotFoundError, ValidationError
from .model import Report
from .repository import ReportRepository


class ReportService:
    """Read-only access for report consumers (listing screens, exports)."""

    def __init__(self, reports: ReportRepository):
        self._reports = reports

    def get(self, report_id: str) -> Report:
        report = self._reports.get(str(report_id))
        if not report:
            raise NotFoundError("Report", str(report_id))
        return report

    def list(
        self,
        *,
        kind: Any = None,
        status: Any = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int | str | None = DEFAULT_LIST_LIMIT,
    ) -> Sequence[Report]:
        try:
            kind = ReportKind(kind) if kind else None
            status = ReportStatus(status) if status else None
        except ValueError as e:
            raise ValidationError(str(e))
        if start and end and end < start:
            raise ValidationError("End date cannot be earlier than start date")
        return self._reports.list_reports(kind=kind, status=status, start=start, end=end, limit=require_limit(limit))

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.enums import ReportKind, ReportStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, from_json, to_db_datetime, to_json
from .model import LocationBreakdown, Period, Report, Statistics
from .repository import ReportRepository

_COLUMNS = """
    report_id, kind, period_start, period_end, title, source_refs, statistics,
    location_breakdown, status, generated_by, error, created_at
"""


class MySQLReportRepository(ReportRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_report(r: dict) -> Report:
        return Report(
            report_id=str(r["report_id"]),
            kind=ReportKind(r["kind"]),
            period=Period(r["period_start"], r["period_end"]),
            title=r["title"],
            status=ReportStatus(r["status"]),
            generated_by=r["generated_by"],
            created_at=from_db_datetime(r["created_at"]),
            statistics=Statistics.from_dict(from_json(r["statistics"]) or {}),
            location_breakdown=tuple(LocationBreakdown.from_dict(b) for b in from_json(r["location_breakdown"]) or []),
            source_refs=tuple(from_json(r["source_refs"]) or []),
            error=r.get("error"),
        )

    def add(self, report: Report) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO reports(
                        report_id, kind, period_start, period_end, title, source_refs, statistics,
                        location_breakdown, status, generated_by, error, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        report.report_id,
                        report.kind.value,
                        report.period.start,
                        report.period.end,
                        report.title,
                        to_json(list(report.source_refs)),
                        to_json(report.statistics.to_dict()),
                        to_json([b.to_dict() for b in report.location_breakdown]),
                        report.status.value,
                        report.generated_by,
                        report.error,
                        to_db_datetime(report.created_at),
                    ),
                )
        except IntegrityError as e:
            # uq_reports_completed: one completed report per (kind, period)
            if e.errno != errorcode.ER_DUP_ENTRY:
                raise
            raise ConflictError(
                "Report",
                report.report_id,
                f"A completed {report.kind.value} report already exists for {report.period.start}..{report.period.end}",
            ) from e

    def get(self, report_id: str) -> Optional[Report]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM reports WHERE report_id=%s", (report_id,))
            r = fetchone(cur)
            return self._to_report(r) if r else None

    def find_completed(self, *, kind: ReportKind, period: Period) -> Optional[Report]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM reports
                WHERE kind=%s AND period_start=%s AND period_end=%s AND status=%s
                LIMIT 1
                """,
                (kind.value, period.start, period.end, ReportStatus.COMPLETED.value),
            )
            r = fetchone(cur)
            return self._to_report(r) if r else None

    def find_within(self, *, kind: ReportKind, start: date, end: date) -> Sequence[Report]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM reports
                WHERE kind=%s AND status=%s AND period_start >= %s AND period_end <= %s
                ORDER BY period_start ASC
                """,
                (kind.value, ReportStatus.COMPLETED.value, start, end),
            )
            return [self._to_report(r) for r in fetchall(cur)]

    def list_reports(
        self,
        *,
        kind: Optional[ReportKind] = None,
        status: Optional[ReportStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[Report]:
        clauses: list[str] = []
        params: list[object] = []

        if kind is not None:
            clauses.append("kind=%s")
            params.append(kind.value)
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if start is not None:
            clauses.append("period_end >= %s")
            params.append(start)
        if end is not None:
            clauses.append("period_start <= %s")
            params.append(end)

        where = " AND ".join(clauses) or "1=1"
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM reports
                WHERE {where}
                ORDER BY created_at DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [self._to_report(r) for r in fetchall(cur)]

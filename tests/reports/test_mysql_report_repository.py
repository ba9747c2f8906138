from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from classroom_usage.core.enums import EventStatus, ReportKind, ReportStatus
from classroom_usage.core.exceptions import AggregationSkipped, ConflictError
from classroom_usage.reports.aggregator import AggregationEngine
from classroom_usage.reports.model import Period, Report, Statistics, report_title
from classroom_usage.reports.mysql_report_repository import MySQLReportRepository


class FailingCursor:
    def __init__(self, error: Exception):
        self._error = error
        self.calls = []

    def execute(self, sql, params=()):
        self.calls.append(" ".join(sql.split()))
        raise self._error

    def close(self):
        pass


class FakeConn:
    def __init__(self, cursor):
        self._cursor = cursor
        self.rolled_back = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        raise AssertionError("must not commit after a failed insert")

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class FakeConnFactory:
    def __init__(self, error: Exception):
        self.conn = FakeConn(FailingCursor(error))

    def connect(self):
        return self.conn


def _daily() -> Report:
    period = Period(date(2026, 10, 16), date(2026, 10, 16))
    return Report(
        report_id="r1",
        kind=ReportKind.DAILY,
        period=period,
        title=report_title(ReportKind.DAILY, period),
        status=ReportStatus.COMPLETED,
        generated_by="system:archival",
        created_at=datetime(2026, 10, 17, 0, 0, tzinfo=timezone.utc),
        statistics=Statistics(total=1, verified=1),
        source_refs=("rec1",),
    )


def test_duplicate_completed_report_becomes_conflict():
    factory = FakeConnFactory(
        IntegrityError(msg="Duplicate entry for key 'uq_reports_completed'", errno=errorcode.ER_DUP_ENTRY)
    )
    repo = MySQLReportRepository(factory)

    with pytest.raises(ConflictError):
        repo.add(_daily())

    assert factory.conn.rolled_back


def test_other_integrity_errors_propagate():
    factory = FakeConnFactory(IntegrityError(msg="Column cannot be null", errno=errorcode.ER_BAD_NULL_ERROR))
    repo = MySQLReportRepository(factory)

    with pytest.raises(IntegrityError):
        repo.add(_daily())


def test_engine_treats_a_lost_insert_race_as_skipped(event_log, clock, make_ids, add_records):
    factory = FakeConnFactory(IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY))

    class NoExistingReport(MySQLReportRepository):
        def find_completed(self, *, kind, period):
            return None

    engine = AggregationEngine(event_log, NoExistingReport(factory), clock=clock, id_factory=make_ids("r"))
    records = add_records(date(2026, 10, 16), [EventStatus.VERIFIED])

    with pytest.raises(AggregationSkipped):
        engine.aggregate_daily(date(2026, 10, 16), generated_by="system:archival")

    # the winner of the race owns the archive marks
    assert event_log.get(records[0].record_id).archived is False

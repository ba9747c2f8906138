from __future__ import annotations

import threading
from datetime import date, timedelta

import pytest

from classroom_usage.core.enums import EventStatus, ReportKind, ReportStatus
from classroom_usage.core.exceptions import AggregationSkipped, UnreportedRecords, ValidationError
from classroom_usage.reports.aggregator import AggregationEngine
from classroom_usage.reports.model import (
    LocationBreakdown,
    Period,
    Statistics,
    merge_breakdowns,
    report_title,
    verification_rate,
)

V, P, R = EventStatus.VERIFIED, EventStatus.PENDING, EventStatus.REJECTED
ACTOR = "system:archival"


def _by_location(report) -> dict[str, Statistics]:
    return {b.location_ref: b.statistics for b in report.location_breakdown}


def test_daily_counts_rate_and_archives_every_record(engine, event_log, add_records):
    day = date(2026, 10, 16)
    records = add_records(day, [V] * 4 + [P] * 2 + [R], location_ref="room-a")
    records += add_records(day, [V, V, P], location_ref="room-b")

    report = engine.aggregate_daily(day, generated_by=ACTOR)

    assert report.kind == ReportKind.DAILY
    assert report.status == ReportStatus.COMPLETED
    assert report.period == Period(day, day)
    assert report.title == "Daily Report - October 16, 2026"
    assert report.statistics == Statistics(total=10, verified=6, pending=3, rejected=1)
    assert report.statistics.verification_rate == 60
    assert _by_location(report) == {
        "room-a": Statistics(total=7, verified=4, pending=2, rejected=1),
        "room-b": Statistics(total=3, verified=2, pending=1, rejected=0),
    }
    assert sorted(report.source_refs) == sorted(r.record_id for r in records)
    assert all(event_log.get(r.record_id).archived for r in records)
    assert event_log.find_unarchived(start=day, end=day) == []


def test_daily_only_reads_its_own_day(engine, event_log, add_records):
    add_records(date(2026, 10, 15), [V])
    add_records(date(2026, 10, 16), [P, P])
    other = add_records(date(2026, 10, 17), [R])

    report = engine.aggregate_daily(date(2026, 10, 16), generated_by=ACTOR)

    assert report.statistics.total == 2
    assert event_log.get(other[0].record_id).archived is False


def test_empty_day_is_skipped_without_a_report(engine, report_repo):
    with pytest.raises(AggregationSkipped):
        engine.aggregate_daily(date(2026, 10, 16), generated_by=ACTOR)

    assert report_repo.list_reports() == []


def test_rerun_is_skipped_and_never_duplicates(engine, report_repo, add_records):
    day = date(2026, 10, 16)
    add_records(day, [V, P])
    engine.aggregate_daily(day, generated_by=ACTOR)

    with pytest.raises(AggregationSkipped):
        engine.aggregate_daily(day, generated_by=ACTOR)

    assert len(report_repo.list_reports(kind=ReportKind.DAILY)) == 1


def test_records_added_after_the_daily_report_are_named_not_skipped(engine, event_log, report_repo, add_records):
    day = date(2026, 10, 16)
    add_records(day, [V, P])
    first = engine.aggregate_daily(day, generated_by=ACTOR)
    late = add_records(day, [R, V, V])

    with pytest.raises(UnreportedRecords) as excinfo:
        engine.aggregate_daily(day, generated_by=ACTOR)

    assert excinfo.value.day == day
    assert set(excinfo.value.record_ids) == {r.record_id for r in late}
    assert all(r.record_id in str(excinfo.value) for r in late)
    # the sealed report is untouched and the late records stay visible
    assert report_repo.get(first.report_id).statistics.total == 2
    assert len(report_repo.list_reports(kind=ReportKind.DAILY)) == 1
    assert all(event_log.get(r.record_id).archived is False for r in late)


class FlakyMarkLog:
    """Wraps an event log; the first ``mark_archived`` call blows up."""

    def __init__(self, inner):
        self._inner = inner
        self.failures_left = 1

    def __getattr__(self, name):
        return getattr(self._inner, name)

    def mark_archived(self, record_ids):
        if self.failures_left:
            self.failures_left -= 1
            raise RuntimeError("connection lost")
        return self._inner.mark_archived(record_ids)


def test_rerun_heals_an_interrupted_mark(event_log, report_repo, clock, make_ids, add_records):
    engine = AggregationEngine(FlakyMarkLog(event_log), report_repo, clock=clock, id_factory=make_ids("rep"))
    day = date(2026, 10, 16)
    records = add_records(day, [V, V, P])

    with pytest.raises(RuntimeError):
        engine.aggregate_daily(day, generated_by=ACTOR)
    assert len(event_log.find_unarchived(start=day, end=day)) == 3

    with pytest.raises(AggregationSkipped):
        engine.aggregate_daily(day, generated_by=ACTOR)

    assert all(event_log.get(r.record_id).archived for r in records)
    assert len(report_repo.list_reports(kind=ReportKind.DAILY)) == 1


def test_concurrent_daily_passes_create_one_report(engine, report_repo, event_log, add_records):
    day = date(2026, 10, 16)
    add_records(day, [V, P, R, V])
    workers = 6
    barrier = threading.Barrier(workers)
    outcomes: list[str] = []
    lock = threading.Lock()

    def run():
        barrier.wait()
        try:
            engine.aggregate_daily(day, generated_by=ACTOR)
            result = "completed"
        except AggregationSkipped:
            result = "skipped"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=run) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("completed") == 1
    assert outcomes.count("skipped") == workers - 1
    assert len(report_repo.list_reports(kind=ReportKind.DAILY)) == 1
    assert event_log.find_unarchived(start=day, end=day) == []


def test_weekly_requires_sunday(engine):
    with pytest.raises(ValidationError):
        engine.aggregate_weekly(date(2026, 10, 16), generated_by=ACTOR)


def test_weekly_without_dailies_is_skipped(engine, report_repo):
    with pytest.raises(AggregationSkipped):
        engine.aggregate_weekly(date(2026, 10, 18), generated_by=ACTOR)

    assert report_repo.list_reports(kind=ReportKind.WEEKLY) == []


@pytest.mark.parametrize("days_with_data", [1, 3, 7])
def test_weekly_equals_sum_of_its_dailies(engine, add_records, days_with_data):
    week_end = date(2026, 10, 18)
    monday = week_end - timedelta(days=6)
    dailies = []
    for offset in range(days_with_data):
        day = monday + timedelta(days=offset)
        add_records(day, [V] * (offset + 1) + [P, R], location_ref="room-a")
        if offset % 2:
            add_records(day, [V], location_ref=f"room-{offset}")
        dailies.append(engine.aggregate_daily(day, generated_by=ACTOR))

    weekly = engine.aggregate_weekly(week_end, generated_by=ACTOR)

    assert weekly.period == Period(monday, week_end)
    assert weekly.title == "Weekly Report - Oct 12 to Oct 18, 2026"
    assert weekly.statistics == Statistics.sum(d.statistics for d in dailies)
    assert weekly.source_refs == tuple(d.report_id for d in dailies)
    assert weekly.location_breakdown == merge_breakdowns(d.location_breakdown for d in dailies)
    assert sum(b.statistics.total for b in weekly.location_breakdown) == weekly.statistics.total


def test_weekly_ignores_dailies_outside_the_window(engine, add_records):
    add_records(date(2026, 10, 11), [V, V])
    engine.aggregate_daily(date(2026, 10, 11), generated_by=ACTOR)
    add_records(date(2026, 10, 12), [P])
    engine.aggregate_daily(date(2026, 10, 12), generated_by=ACTOR)

    weekly = engine.aggregate_weekly(date(2026, 10, 18), generated_by=ACTOR)

    assert weekly.statistics == Statistics(total=1, pending=1)


def test_weekly_rerun_is_skipped(engine, report_repo, add_records):
    add_records(date(2026, 10, 14), [V])
    engine.aggregate_daily(date(2026, 10, 14), generated_by=ACTOR)
    engine.aggregate_weekly(date(2026, 10, 18), generated_by=ACTOR)

    with pytest.raises(AggregationSkipped):
        engine.aggregate_weekly(date(2026, 10, 18), generated_by=ACTOR)

    assert len(report_repo.list_reports(kind=ReportKind.WEEKLY)) == 1


def test_monthly_requires_month_end(engine):
    with pytest.raises(ValidationError):
        engine.aggregate_monthly(date(2026, 10, 30), generated_by=ACTOR)


def test_monthly_matches_raw_records_when_weeks_straddle_the_month(engine, report_repo, add_records):
    # October 2026 starts on a Thursday and ends on a Saturday, so the weeks
    # Sep 28..Oct 4 and Oct 26..Nov 1 each belong partly to another month.
    day = date(2026, 9, 28)
    raw = Statistics()
    while day <= date(2026, 11, 1):
        statuses = [V] * (day.day % 3 + 1) + [P] * (day.day % 2) + [R] * (day.day % 4 == 0)
        add_records(day, statuses, location_ref="room-a" if day.day % 2 else "room-b")
        if day.month == 10:
            raw = raw + Statistics.from_statuses(statuses)

        engine.aggregate_daily(day, generated_by=ACTOR)
        if day.isoweekday() == 7:
            engine.aggregate_weekly(day, generated_by=ACTOR)
        if day == date(2026, 10, 31):
            monthly = engine.aggregate_monthly(day, generated_by=ACTOR)
        day += timedelta(days=1)

    assert monthly.period == Period(date(2026, 10, 1), date(2026, 10, 31))
    assert monthly.title == "Monthly Report - October 2026"
    assert monthly.statistics == raw
    assert sum(b.statistics.total for b in monthly.location_breakdown) == raw.total

    # three full weeks plus the loose days Oct 1..4 and Oct 26..31
    children = [report_repo.get(ref) for ref in monthly.source_refs]
    kinds = [c.kind for c in children]
    assert kinds.count(ReportKind.WEEKLY) == 3
    assert kinds.count(ReportKind.DAILY) == 10
    assert all(monthly.period.contains(c.period) for c in children)


def test_monthly_without_reports_is_skipped(engine):
    with pytest.raises(AggregationSkipped):
        engine.aggregate_monthly(date(2026, 10, 31), generated_by=ACTOR)


def test_failed_report_does_not_block_a_later_completed_one(engine, report_repo, add_records):
    day = date(2026, 10, 16)
    failed = engine.record_failure(ReportKind.DAILY, day, generated_by=ACTOR, error=RuntimeError("disk full"))
    assert failed.status == ReportStatus.FAILED
    assert failed.error == "RuntimeError: disk full"

    add_records(day, [V])
    completed = engine.aggregate_daily(day, generated_by=ACTOR)

    assert completed.status == ReportStatus.COMPLETED
    assert report_repo.find_completed(kind=ReportKind.DAILY, period=Period(day, day)) == completed


@pytest.mark.parametrize(
    "verified,total,expected",
    [(0, 0, 0), (6, 10, 60), (1, 8, 13), (1, 3, 33), (2, 3, 67), (1, 200, 1), (5, 5, 100)],
)
def test_verification_rate_rounds_half_up(verified, total, expected):
    assert verification_rate(verified, total) == expected


def test_merge_breakdowns_sums_shared_locations_and_appends_new_ones():
    a = Statistics(total=2, verified=1, pending=1)
    b = Statistics(total=3, verified=3)

    merged = merge_breakdowns(
        [
            [LocationBreakdown("room-a", a), LocationBreakdown("room-b", b)],
            [LocationBreakdown("room-c", a), LocationBreakdown("room-a", b)],
        ]
    )

    assert [m.location_ref for m in merged] == ["room-a", "room-b", "room-c"]
    assert merged[0].statistics == Statistics(total=5, verified=4, pending=1)


def test_titles():
    assert report_title(ReportKind.WEEKLY, Period(date(2026, 9, 28), date(2026, 10, 4))) == (
        "Weekly Report - Sep 28 to Oct 4, 2026"
    )
    assert report_title(ReportKind.DAILY, Period(date(2026, 1, 5), date(2026, 1, 5))) == "Daily Report - January 5, 2026"

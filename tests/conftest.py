from __future__ import annotations

import itertools
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

import pytest

from classroom_usage.core.enums import EventStatus
from classroom_usage.entities.memory_repository import InMemoryVersionedRepository
from classroom_usage.entities.service import VersionedRecordService
from classroom_usage.reports.aggregator import AggregationEngine
from classroom_usage.reports.memory_repository import InMemoryReportRepository
from classroom_usage.timein.memory_repository import InMemoryEventRecordLog
from classroom_usage.timein.model import EventRecord

UTC = timezone.utc


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def sequential_ids(prefix: str):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter):04d}"


@pytest.fixture
def make_ids():
    return sequential_ids


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 10, 16, 9, 30, tzinfo=UTC)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def entity_repo() -> InMemoryVersionedRepository:
    return InMemoryVersionedRepository()


@pytest.fixture
def entity_service(entity_repo, clock) -> VersionedRecordService:
    return VersionedRecordService(entity_repo, clock=clock, id_factory=sequential_ids("ent"))


@pytest.fixture
def event_log() -> InMemoryEventRecordLog:
    return InMemoryEventRecordLog()


@pytest.fixture
def report_repo() -> InMemoryReportRepository:
    return InMemoryReportRepository()


@pytest.fixture
def engine(event_log, report_repo, clock) -> AggregationEngine:
    return AggregationEngine(event_log, report_repo, clock=clock, id_factory=sequential_ids("rep"))


_record_ids = itertools.count(1)


@pytest.fixture
def add_records(event_log):
    """Append records for one day: ``add_records(day, [statuses], location_ref="room-a")``."""

    def _add(day: date, statuses: Iterable[EventStatus], *, location_ref: str = "room-a") -> list[EventRecord]:
        created = []
        for i, status in enumerate(statuses):
            record = EventRecord(
                record_id=f"rec{next(_record_ids):05d}",
                occurred_on=day,
                timestamp_in=datetime(day.year, day.month, day.day, 8, 0, tzinfo=UTC) + timedelta(minutes=i),
                subject_ref=f"student-{i}",
                location_ref=location_ref,
                status=status,
            )
            event_log.append(record)
            created.append(record)
        return created

    return _add

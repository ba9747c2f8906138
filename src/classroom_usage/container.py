from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from .archival.scheduler import ArchivalScheduler
from .common.datetime_utils import get_timezone
from .core.constants import DEFAULT_ARCHIVE_ACTOR, DEFAULT_ARCHIVE_TIMEZONE
from .database.connection import DBConfig, DatabaseConnection
from .entities.memory_repository import InMemoryVersionedRepository
from .entities.mysql_entity_repository import MySQLVersionedRepository
from .entities.repository import VersionedRepository
from .entities.service import VersionedRecordService
from .reports.aggregator import AggregationEngine
from .reports.memory_repository import InMemoryReportRepository
from .reports.mysql_report_repository import MySQLReportRepository
from .reports.repository import ReportRepository
from .reports.service import ReportService
from .timein.memory_repository import InMemoryEventRecordLog
from .timein.mysql_timein_repository import MySQLEventRecordLog
from .timein.repository import EventRecordLog
from .timein.service import EventLogService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    entities_repo: VersionedRepository
    events_repo: EventRecordLog
    reports_repo: ReportRepository

    entity_service: VersionedRecordService
    event_log_service: EventLogService
    report_service: ReportService
    aggregation_engine: AggregationEngine
    scheduler: ArchivalScheduler


def build_container(
    *,
    db_config: Optional[dict] = None,
    backend: str = "mysql",
    timezone_name: str = DEFAULT_ARCHIVE_TIMEZONE,
    fire_at: time = time(0, 0),
    actor: str = DEFAULT_ARCHIVE_ACTOR,
) -> Container:
    tz = get_timezone(timezone_name)

    conn: Optional[DatabaseConnection] = None
    if backend == "memory":
        entities_repo = InMemoryVersionedRepository()
        events_repo = InMemoryEventRecordLog()
        reports_repo = InMemoryReportRepository()
    elif backend == "mysql":
        if not db_config:
            raise ValueError("db_config is required for the mysql backend")
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
        entities_repo = MySQLVersionedRepository(conn)
        events_repo = MySQLEventRecordLog(conn)
        reports_repo = MySQLReportRepository(conn)
    else:
        raise ValueError(f"Unknown storage backend: {backend!r}")

    engine = AggregationEngine(events_repo, reports_repo)

    return Container(
        conn=conn,
        entities_repo=entities_repo,
        events_repo=events_repo,
        reports_repo=reports_repo,
        entity_service=VersionedRecordService(entities_repo),
        event_log_service=EventLogService(events_repo, tz=tz),
        report_service=ReportService(reports_repo),
        aggregation_engine=engine,
        scheduler=ArchivalScheduler(engine, tz=tz, fire_at=fire_at, actor=actor),
    )

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..core.constants import TIMEIN_LABEL
from ..core.enums import EventStatus
from ..core.exceptions import ConflictError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, placeholders, to_db_datetime
from .model import EventRecord
from .repository import EventRecordLog

_COLUMNS = """
    record_id, occurred_on, timestamp_in, timestamp_out, status, subject_ref, location_ref,
    instructor_name, remarks, verified_by, verified_at, archived, version
"""

# Keep IN (...) lists well below max_allowed_packet.
_ARCHIVE_CHUNK = 500


class MySQLEventRecordLog(EventRecordLog):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_record(r: dict) -> EventRecord:
        return EventRecord(
            record_id=str(r["record_id"]),
            occurred_on=r["occurred_on"],
            timestamp_in=from_db_datetime(r["timestamp_in"]),
            timestamp_out=from_db_datetime(r.get("timestamp_out")),
            status=EventStatus(r["status"]),
            subject_ref=str(r["subject_ref"]),
            location_ref=str(r["location_ref"]),
            instructor_name=r.get("instructor_name"),
            remarks=r.get("remarks"),
            verified_by=r.get("verified_by"),
            verified_at=from_db_datetime(r.get("verified_at")),
            archived=bool(r.get("archived")),
            version=int(r["version"]),
        )

    def append(self, record: EventRecord) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO time_in_records(
                    record_id, occurred_on, timestamp_in, timestamp_out, status, subject_ref, location_ref,
                    instructor_name, remarks, verified_by, verified_at, archived, version
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    record.record_id,
                    record.occurred_on,
                    to_db_datetime(record.timestamp_in),
                    to_db_datetime(record.timestamp_out),
                    record.status.value,
                    record.subject_ref,
                    record.location_ref,
                    record.instructor_name,
                    record.remarks,
                    record.verified_by,
                    to_db_datetime(record.verified_at),
                    int(record.archived),
                    int(record.version),
                ),
            )

    def get(self, record_id: str) -> Optional[EventRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM time_in_records WHERE record_id=%s", (record_id,))
            r = fetchone(cur)
            return self._to_record(r) if r else None

    def find_unarchived(self, *, start: date, end: date) -> Sequence[EventRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_in_records
                WHERE occurred_on BETWEEN %s AND %s AND archived=0
                ORDER BY timestamp_in ASC
                """,
                (start, end),
            )
            return [self._to_record(r) for r in fetchall(cur)]

    def mark_archived(self, record_ids: Iterable[str]) -> int:
        ids = sorted(set(record_ids))
        if not ids:
            return 0

        flipped = 0
        with db_cursor(self._conn_factory) as (_, cur):
            for i in range(0, len(ids), _ARCHIVE_CHUNK):
                chunk = ids[i : i + _ARCHIVE_CHUNK]
                cur.execute(
                    f"UPDATE time_in_records SET archived=1 WHERE archived=0 AND record_id IN ({placeholders(len(chunk))})",
                    tuple(chunk),
                )
                flipped += max(cur.rowcount, 0)
        return flipped

    def set_status(
        self,
        *,
        record_id: str,
        expected_version: int,
        status: EventStatus,
        verified_by: Optional[str],
        verified_at: Optional[datetime],
        remarks: Optional[str] = None,
    ) -> EventRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_in_records
                SET status=%s, verified_by=%s, verified_at=%s, remarks=COALESCE(%s, remarks), version=version + 1
                WHERE record_id=%s AND version=%s
                """,
                (status.value, verified_by, to_db_datetime(verified_at), remarks, record_id, int(expected_version)),
            )
            if cur.rowcount == 0:
                cur.execute("SELECT version FROM time_in_records WHERE record_id=%s", (record_id,))
                if not fetchone(cur):
                    raise NotFoundError(TIMEIN_LABEL, record_id)
                raise ConflictError(TIMEIN_LABEL, record_id)

            cur.execute(f"SELECT {_COLUMNS} FROM time_in_records WHERE record_id=%s", (record_id,))
            return self._to_record(fetchone(cur))

    def set_time_out(self, *, record_id: str, timestamp_out: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE time_in_records SET timestamp_out=%s WHERE record_id=%s AND timestamp_out IS NULL",
                (to_db_datetime(timestamp_out), record_id),
            )
            return cur.rowcount > 0

    def list_records(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[EventStatus] = None,
        location_ref: Optional[str] = None,
        include_archived: bool = False,
        limit: int = 200,
    ) -> Sequence[EventRecord]:
        clauses: list[str] = []
        params: list[object] = []

        if not include_archived:
            clauses.append("archived=0")
        if start is not None:
            clauses.append("occurred_on >= %s")
            params.append(start)
        if end is not None:
            clauses.append("occurred_on <= %s")
            params.append(end)
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if location_ref is not None:
            clauses.append("location_ref=%s")
            params.append(location_ref)

        where = " AND ".join(clauses) or "1=1"
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_in_records
                WHERE {where}
                ORDER BY timestamp_in DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [self._to_record(r) for r in fetchall(cur)]

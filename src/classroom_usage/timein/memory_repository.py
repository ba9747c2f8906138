from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..core.constants import TIMEIN_LABEL
from ..core.enums import EventStatus
from ..core.exceptions import ConflictError, NotFoundError
from .model import EventRecord
from .repository import EventRecordLog


class InMemoryEventRecordLog(EventRecordLog):
    def __init__(self):
        self._lock = threading.Lock()
        self._rows: dict[str, EventRecord] = {}

    def append(self, record: EventRecord) -> None:
        with self._lock:
            if record.record_id in self._rows:
                raise ValueError(f"Duplicate record id: {record.record_id}")
            self._rows[record.record_id] = record

    def get(self, record_id: str) -> Optional[EventRecord]:
        return self._rows.get(record_id)

    def find_unarchived(self, *, start: date, end: date) -> Sequence[EventRecord]:
        items = [r for r in list(self._rows.values()) if not r.archived and start <= r.occurred_on <= end]
        items.sort(key=lambda r: r.timestamp_in)
        return items

    def mark_archived(self, record_ids: Iterable[str]) -> int:
        flipped = 0
        with self._lock:
            for rid in set(record_ids):
                row = self._rows.get(rid)
                if row is None or row.archived:
                    continue
                self._rows[rid] = replace(row, archived=True)
                flipped += 1
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
        with self._lock:
            row = self._rows.get(record_id)
            if row is None:
                raise NotFoundError(TIMEIN_LABEL, record_id)
            if row.version != expected_version:
                raise ConflictError(TIMEIN_LABEL, record_id)
            updated = replace(
                row,
                status=status,
                verified_by=verified_by,
                verified_at=verified_at,
                remarks=remarks if remarks is not None else row.remarks,
                version=row.version + 1,
            )
            self._rows[record_id] = updated
            return updated

    def set_time_out(self, *, record_id: str, timestamp_out: datetime) -> bool:
        with self._lock:
            row = self._rows.get(record_id)
            if row is None or row.timestamp_out is not None:
                return False
            self._rows[record_id] = replace(row, timestamp_out=timestamp_out)
            return True

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
        items = []
        for r in list(self._rows.values()):
            if r.archived and not include_archived:
                continue
            if start is not None and r.occurred_on < start:
                continue
            if end is not None and r.occurred_on > end:
                continue
            if status is not None and r.status != status:
                continue
            if location_ref is not None and r.location_ref != location_ref:
                continue
            items.append(r)
        items.sort(key=lambda r: r.timestamp_in, reverse=True)
        return items[: int(limit)]

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import EventStatus
from .model import EventRecord


class EventRecordLog(Protocol):
    def append(self, record: EventRecord) -> None:
        raise NotImplementedError

    def get(self, record_id: str) -> Optional[EventRecord]:
        raise NotImplementedError

    def find_unarchived(self, *, start: date, end: date) -> Sequence[EventRecord]:
        """Records with ``start <= occurred_on <= end`` and ``archived`` false."""

        raise NotImplementedError

    def mark_archived(self, record_ids: Iterable[str]) -> int:
        """Bulk, idempotent. Returns how many records were newly archived."""

        raise NotImplementedError

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
        """Compare-and-swap on ``version``; raises NotFoundError / ConflictError."""

        raise NotImplementedError

    def set_time_out(self, *, record_id: str, timestamp_out: datetime) -> bool:
        """Sets ``timestamp_out`` only while it is still empty."""

        raise NotImplementedError

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
        raise NotImplementedError

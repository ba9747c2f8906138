from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, tzinfo
from typing import Any, Callable, Optional, Sequence

from ..common.datetime_utils import local_date, now_in
from ..common.validators import require_limit, require_non_empty, require_version
from ..core.constants import DEFAULT_LIST_LIMIT, TIMEIN_LABEL
from ..core.enums import EventStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import EventRecord
from .repository import EventRecordLog

logger = logging.getLogger(__name__)

REVIEW_STATUSES = (EventStatus.VERIFIED, EventStatus.REJECTED)


def _parse_status(value: Any, *, allowed: Sequence[EventStatus] = tuple(EventStatus)) -> EventStatus:
    try:
        status = EventStatus(str(value).strip().lower())
    except ValueError:
        status = None
    if status not in allowed:
        names = " or ".join(s.value for s in allowed)
        raise ValidationError(f"Status must be {names}")
    return status


class EventLogService:
    def __init__(
        self,
        log: EventRecordLog,
        *,
        tz: tzinfo,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._log = log
        self._tz = tz
        self._clock = clock or (lambda: now_in(tz))
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)

    def record_time_in(
        self,
        subject_ref: str,
        location_ref: str,
        *,
        instructor_name: Optional[str] = None,
        remarks: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> EventRecord:
        now = now or self._clock()
        record = EventRecord(
            record_id=self._new_id(),
            occurred_on=local_date(now, self._tz),
            timestamp_in=now,
            subject_ref=require_non_empty(subject_ref, "subject_ref"),
            location_ref=require_non_empty(location_ref, "location_ref"),
            instructor_name=(instructor_name or "").strip() or None,
            remarks=(remarks or "").strip() or None,
        )
        self._log.append(record)
        logger.info("Time-in %s recorded for %s at %s", record.record_id, record.subject_ref, record.location_ref)
        return record

    def record_time_out(self, record_id: str, *, now: Optional[datetime] = None) -> EventRecord:
        now = now or self._clock()
        record = self.get(record_id)
        if record.timestamp_out is not None:
            raise ValidationError("Time-out already recorded")
        if now < record.timestamp_in:
            raise ValidationError("Time-out cannot be earlier than time-in")

        if not self._log.set_time_out(record_id=record.record_id, timestamp_out=now):
            raise ValidationError("Time-out already recorded")
        return self.get(record_id)

    def verify(
        self,
        record_id: str,
        expected_version: Any,
        status: Any,
        *,
        reviewer: str,
        remarks: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> EventRecord:
        version = require_version(expected_version)
        new_status = _parse_status(status, allowed=REVIEW_STATUSES)
        reviewer = require_non_empty(reviewer, "reviewer")

        try:
            record = self._log.set_status(
                record_id=str(record_id),
                expected_version=version,
                status=new_status,
                verified_by=reviewer,
                verified_at=now or self._clock(),
                remarks=remarks,
            )
        except ConflictError:
            logger.warning("Version conflict verifying time-in %s (expected v%s)", record_id, version)
            raise

        logger.info("Time-in %s %s by %s", record_id, new_status.value, reviewer)
        return record

    def get(self, record_id: str) -> EventRecord:
        record = self._log.get(str(record_id))
        if not record:
            raise NotFoundError(TIMEIN_LABEL, str(record_id))
        return record

    def list_records(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Any = None,
        location_ref: Optional[str] = None,
        include_archived: bool = False,
        limit: int | str | None = DEFAULT_LIST_LIMIT,
    ) -> Sequence[EventRecord]:
        if start and end and end < start:
            raise ValidationError("End date cannot be earlier than start date")
        return self._log.list_records(
            start=start,
            end=end,
            status=_parse_status(status) if status else None,
            location_ref=location_ref or None,
            include_archived=include_archived,
            limit=require_limit(limit),
        )

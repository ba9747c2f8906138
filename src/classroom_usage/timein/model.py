from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import EventStatus


@dataclass(frozen=True)
class EventRecord:
    """Domain entity: one time-in entry.

    Two writers touch it, on disjoint fields: reviewers change ``status``
    (versioned), the archival job flips ``archived`` (not versioned).
    """

    record_id: str
    occurred_on: date
    timestamp_in: datetime
    subject_ref: str
    location_ref: str
    status: EventStatus = EventStatus.PENDING
    timestamp_out: Optional[datetime] = None
    instructor_name: Optional[str] = None
    remarks: Optional[str] = None
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    archived: bool = False
    version: int = 1

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "occurred_on": self.occurred_on.isoformat(),
            "timestamp_in": self.timestamp_in.isoformat(),
            "timestamp_out": self.timestamp_out.isoformat() if self.timestamp_out else None,
            "status": self.status.value,
            "subject_ref": self.subject_ref,
            "location_ref": self.location_ref,
            "instructor_name": self.instructor_name,
            "remarks": self.remarks,
            "verified_by": self.verified_by,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "archived": self.archived,
            "version": self.version,
        }

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, Optional

from ..common.datetime_utils import END_OF_DAY
from ..core.enums import EventStatus, ReportKind, ReportStatus


def verification_rate(verified: int, total: int) -> int:
    """Integer percentage, rounded half-up, 0 when there is nothing to rate."""
    if total <= 0:
        return 0
    return (200 * verified + total) // (2 * total)


@dataclass(frozen=True)
class Statistics:
    total: int = 0
    verified: int = 0
    pending: int = 0
    rejected: int = 0

    @property
    def verification_rate(self) -> int:
        return verification_rate(self.verified, self.total)

    def __add__(self, other: "Statistics") -> "Statistics":
        if not isinstance(other, Statistics):
            return NotImplemented
        return Statistics(
            total=self.total + other.total,
            verified=self.verified + other.verified,
            pending=self.pending + other.pending,
            rejected=self.rejected + other.rejected,
        )

    @classmethod
    def from_statuses(cls, statuses: Iterable[EventStatus]) -> "Statistics":
        counts = {s: 0 for s in EventStatus}
        total = 0
        for s in statuses:
            counts[s] += 1
            total += 1
        return cls(
            total=total,
            verified=counts[EventStatus.VERIFIED],
            pending=counts[EventStatus.PENDING],
            rejected=counts[EventStatus.REJECTED],
        )

    @classmethod
    def sum(cls, items: Iterable["Statistics"]) -> "Statistics":
        result = cls()
        for s in items:
            result = result + s
        return result

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "verified": self.verified,
            "pending": self.pending,
            "rejected": self.rejected,
            "verification_rate": self.verification_rate,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Statistics":
        return cls(
            total=int(data.get("total", 0)),
            verified=int(data.get("verified", 0)),
            pending=int(data.get("pending", 0)),
            rejected=int(data.get("rejected", 0)),
        )


@dataclass(frozen=True)
class LocationBreakdown:
    location_ref: str
    statistics: Statistics

    def to_dict(self) -> dict:
        return {"location_ref": self.location_ref, **self.statistics.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> "LocationBreakdown":
        return cls(location_ref=str(data["location_ref"]), statistics=Statistics.from_dict(data))


def merge_breakdowns(groups: Iterable[Iterable[LocationBreakdown]]) -> tuple[LocationBreakdown, ...]:
    """Sum entries sharing a location_ref; new locations keep first-seen order."""
    merged: dict[str, Statistics] = {}
    for group in groups:
        for entry in group:
            merged[entry.location_ref] = merged.get(entry.location_ref, Statistics()) + entry.statistics
    return tuple(LocationBreakdown(location_ref=ref, statistics=stats) for ref, stats in merged.items())


@dataclass(frozen=True)
class Period:
    """Inclusive calendar range."""

    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError("Period end precedes its start")

    def contains(self, other: "Period") -> bool:
        return self.start <= other.start and other.end <= self.end

    def starts_at(self) -> datetime:
        return datetime.combine(self.start, time.min)

    def ends_at(self) -> datetime:
        return datetime.combine(self.end, END_OF_DAY)

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "starts_at": self.starts_at().isoformat(timespec="milliseconds"),
            "ends_at": self.ends_at().isoformat(timespec="milliseconds"),
        }


@dataclass(frozen=True)
class Report:
    """Immutable rollup. Once completed it is never edited in place."""

    report_id: str
    kind: ReportKind
    period: Period
    title: str
    status: ReportStatus
    generated_by: str
    created_at: datetime
    statistics: Statistics = field(default_factory=Statistics)
    location_breakdown: tuple[LocationBreakdown, ...] = ()
    source_refs: tuple[str, ...] = ()
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.report_id,
            "kind": self.kind.value,
            "title": self.title,
            "period": self.period.to_dict(),
            "source_refs": list(self.source_refs),
            "statistics": self.statistics.to_dict(),
            "location_breakdown": [b.to_dict() for b in self.location_breakdown],
            "status": self.status.value,
            "generated_by": self.generated_by,
            "created_at": self.created_at.isoformat(),
            "error": self.error,
        }


def report_title(kind: ReportKind, period: Period) -> str:
    if kind == ReportKind.DAILY:
        d = period.start
        return f"Daily Report - {d:%B} {d.day}, {d.year}"
    if kind == ReportKind.WEEKLY:
        s, e = period.start, period.end
        return f"Weekly Report - {s:%b} {s.day} to {e:%b} {e.day}, {e.year}"
    return f"Monthly Report - {period.start:%B %Y}"

from __future__ import annotations

from enum import Enum


class EntityKind(str, Enum):
    """Kinds of entity held in the versioned record store."""

    CLASSROOM = "classroom"
    USER = "user"
    INSTRUCTOR = "instructor"
    USAGE = "usage"

    @property
    def label(self) -> str:
        return {
            EntityKind.CLASSROOM: "Classroom",
            EntityKind.USER: "User",
            EntityKind.INSTRUCTOR: "Instructor",
            EntityKind.USAGE: "Usage record",
        }[self]


class EventStatus(str, Enum):
    """Lifecycle of a time-in record."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class ReportKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ReportStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class StepOutcome(str, Enum):
    """Result of one aggregation level inside an archival pass."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    INCOMPLETE = "incomplete"
    NOT_DUE = "not_due"

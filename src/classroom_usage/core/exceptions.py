from __future__ import annotations

from datetime import date
from typing import Iterable, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when the requested id does not exist."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found")


class ConflictError(DomainError):
    """Raised when the caller's version token no longer matches the stored one.

    This is an expected outcome of concurrent editing, not a system failure:
    the caller should re-fetch the record and let the user decide whether to
    apply the change again.
    """

    def __init__(self, kind: str, record_id: Optional[str] = None, message: Optional[str] = None):
        self.kind = kind
        self.record_id = record_id
        super().__init__(message or f"{kind} was updated by someone else. Refresh and try again.")


class AggregationSkipped(DomainError):
    """Raised when an aggregation pass has nothing to do. Not a failure."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class AggregationFailed(DomainError):
    """Raised when an aggregation level hits an unexpected fault."""

    def __init__(self, level: str, cause: BaseException):
        self.level = level
        self.cause = cause
        super().__init__(f"{level} aggregation failed: {cause}")


class UnreportedRecords(DomainError):
    """Raised when a day already has its daily report but still holds unarchived records."""

    def __init__(self, day: date, record_ids: Iterable[str]):
        self.day = day
        self.record_ids = tuple(record_ids)
        super().__init__(
            f"{len(self.record_ids)} records for {day} are not in its daily report: {', '.join(self.record_ids)}"
        )

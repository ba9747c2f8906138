from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import ReportKind, StepOutcome


@dataclass(frozen=True)
class LevelResult:
    kind: ReportKind
    outcome: StepOutcome
    report_id: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "outcome": self.outcome.value,
            "report_id": self.report_id,
            "message": self.message,
        }


@dataclass(frozen=True)
class ArchivalRun:
    """Outcome of one archival pass (daily, then weekly/monthly when due)."""

    target: date
    actor: str
    started_at: datetime
    finished_at: datetime
    results: tuple[LevelResult, ...]

    @property
    def ok(self) -> bool:
        return not any(r.outcome in (StepOutcome.FAILED, StepOutcome.INCOMPLETE) for r in self.results)

    @property
    def failed(self) -> bool:
        return any(r.outcome == StepOutcome.FAILED for r in self.results)

    def result_for(self, kind: ReportKind) -> Optional[LevelResult]:
        for r in self.results:
            if r.kind == kind:
                return r
        return None

    def to_dict(self) -> dict:
        return {
            "target": self.target.isoformat(),
            "actor": self.actor,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "ok": self.ok,
            "results": [r.to_dict() for r in self.results],
        }

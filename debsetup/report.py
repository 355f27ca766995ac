from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, List, Optional

from .step import ProbeResult


class StepResult(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


class StepState(str, Enum):
    NOT_STARTED = "not-started"
    PROBED = "probed"
    SKIPPED = "skipped"
    ACTING = "acting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class StepRecord:
    name: str
    prior: Optional[ProbeResult]
    acted: bool
    result: StepResult
    tolerant: bool = False
    error: Optional[str] = None
    output: str = ""
    timestamp: str = field(default_factory=_now)


@dataclass
class RunReport:
    """Append-only outcome log for one run. Never persisted."""

    records: List[StepRecord] = field(default_factory=list)

    def add(self, record: StepRecord) -> StepRecord:
        self.records.append(record)
        return record

    def __iter__(self) -> Iterator[StepRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def get(self, name: str) -> Optional[StepRecord]:
        for r in self.records:
            if r.name == name:
                return r
        return None

    @property
    def changed(self) -> List[str]:
        return [r.name for r in self.records if r.result is StepResult.SUCCESS and r.acted]

    @property
    def unchanged(self) -> List[str]:
        return [r.name for r in self.records if r.result is StepResult.SKIPPED]

    @property
    def failed(self) -> List[str]:
        return [r.name for r in self.records if r.result is StepResult.FAILURE]

    @property
    def tolerated_failures(self) -> List[str]:
        return [r.name for r in self.records if r.result is StepResult.FAILURE and r.tolerant]

    def summary_line(self, status: RunStatus) -> str:
        verdict = "PASS" if status is RunStatus.COMPLETED else "FAIL"
        line = (
            f"{verdict}: run {status.value}; {len(self.records)} step(s) resolved, "
            f"{len(self.changed)} changed, {len(self.unchanged)} already satisfied, "
            f"{len(self.failed)} failed"
        )
        if self.failed:
            line += f" ({', '.join(self.failed)})"
        return line

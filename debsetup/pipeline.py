from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .errors import ProvisioningError
from .reconcile import reconcile
from .report import RunReport, RunStatus, StepState
from .step import ProvisioningStep

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    status: RunStatus
    report: RunReport
    states: Dict[str, StepState] = field(default_factory=dict)
    error: Optional[ProvisioningError] = None

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.COMPLETED

    def summary_line(self) -> str:
        return self.report.summary_line(self.status)


def check_unique_names(steps: Sequence[ProvisioningStep]) -> None:
    seen: List[str] = []
    for s in steps:
        if s.name in seen:
            raise ValueError(f"Duplicate step name: {s.name}")
        seen.append(s.name)


def run_pipeline(
    *,
    steps: Sequence[ProvisioningStep],
    report: Optional[RunReport] = None,
) -> PipelineResult:
    """Run steps front to back, one at a time.

    The order is taken as given: steps creating a precondition must already
    come before the steps depending on it. A fail-fast failure, a privilege
    failure or malformed on-disk state aborts the run; nothing already applied
    is rolled back.
    """

    check_unique_names(steps)
    report = report if report is not None else RunReport()
    states: Dict[str, StepState] = {s.name: StepState.NOT_STARTED for s in steps}
    result = PipelineResult(status=RunStatus.PENDING, report=report, states=states)

    result.status = RunStatus.RUNNING
    logger.info("Run started (%d steps)", len(steps))

    for idx, step in enumerate(steps, start=1):
        logger.info("--- [%d/%d] %s ---", idx, len(steps), step.name)
        try:
            reconcile(step, report=report, states=states)
        except ProvisioningError as e:
            result.status = RunStatus.ABORTED
            result.error = e
            logger.error("Run aborted at %s: %s", step.name, e)
            break
    else:
        result.status = RunStatus.COMPLETED
        if report.tolerated_failures:
            logger.warning("Tolerated failures: %s", ", ".join(report.tolerated_failures))

    logger.info(result.summary_line())
    return result

"""Probe, decide, act.

The reconciler does not re-probe after a successful action unless the step
asks for it with `verify=True`. By default it trusts the action's own
idempotence contract: this keeps a converged rerun to one probe per step, but
it means a command that exits 0 without producing the desired state is
reported as a success.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from .errors import ActionError, CommandError, MalformedStateError, PrivilegeError, ProbeError
from .lib.context import Invocation
from .report import RunReport, StepRecord, StepResult, StepState
from .step import ProbeResult, ProvisioningStep

logger = logging.getLogger(__name__)


def probe_step(step: ProvisioningStep) -> ProbeResult:
    """Run the step's probe; an inspection failure counts as a divergence.

    PrivilegeError and MalformedStateError propagate. Anything else a probe
    raises is an inspection failure.
    """

    inv = Invocation.start(step.context, step.timeout_s)
    try:
        return step.probe(inv)
    except (PrivilegeError, MalformedStateError):
        raise
    except ProbeError as e:
        logger.warning("[%s] probe failed, assuming divergent: %s", step.name, e)
        return ProbeResult.DIVERGENT
    except Exception as e:
        err = ProbeError(f"{type(e).__name__}: {e}")
        logger.warning("[%s] probe failed, assuming divergent: %s", step.name, err)
        return ProbeResult.DIVERGENT


def reconcile(
    step: ProvisioningStep,
    *,
    report: RunReport,
    states: Optional[Dict[str, StepState]] = None,
) -> StepRecord:
    """Converge one step and append its outcome to `report`.

    Raises PrivilegeError and MalformedStateError regardless of criticality,
    and ActionError when a fail-fast step's action fails.
    """

    states = {} if states is None else states
    states[step.name] = StepState.NOT_STARTED

    try:
        prior = probe_step(step)
    except (PrivilegeError, MalformedStateError) as e:
        states[step.name] = StepState.FAILED
        report.add(StepRecord(name=step.name, prior=None, acted=False, result=StepResult.FAILURE,
                              tolerant=step.tolerant, error=str(e)))
        logger.error("[%s] %s", step.name, e)
        raise
    states[step.name] = StepState.PROBED

    if prior is ProbeResult.SATISFIED:
        states[step.name] = StepState.SKIPPED
        logger.info("[%s] already satisfied: %s", step.name, step.title)
        return report.add(StepRecord(name=step.name, prior=prior, acted=False, result=StepResult.SKIPPED,
                                     tolerant=step.tolerant))

    logger.info("[%s] divergent, applying (%s): %s", step.name, step.context.label, step.title)
    states[step.name] = StepState.ACTING
    try:
        step.action(Invocation.start(step.context, step.timeout_s))
        if step.verify and probe_step(step) is not ProbeResult.SATISFIED:
            raise ActionError(step.name, "action completed but the step is still divergent")
    except (PrivilegeError, MalformedStateError) as e:
        states[step.name] = StepState.FAILED
        report.add(StepRecord(name=step.name, prior=prior, acted=True, result=StepResult.FAILURE,
                              tolerant=step.tolerant, error=str(e)))
        logger.error("[%s] %s", step.name, e)
        raise
    except Exception as e:
        states[step.name] = StepState.FAILED
        output = e.output if isinstance(e, (CommandError, ActionError)) else ""
        record = report.add(StepRecord(name=step.name, prior=prior, acted=True, result=StepResult.FAILURE,
                                       tolerant=step.tolerant, error=str(e), output=output))
        if output:
            logger.error("[%s] failed: %s\n%s", step.name, e, output)
        else:
            logger.error("[%s] failed: %s", step.name, e)
        if step.tolerant:
            logger.warning("[%s] tolerant step, continuing", step.name)
            return record
        if isinstance(e, ActionError):
            raise
        raise ActionError(step.name, str(e), output=output) from e

    states[step.name] = StepState.SUCCEEDED
    logger.info("[%s] applied", step.name)
    return report.add(StepRecord(name=step.name, prior=prior, acted=True, result=StepResult.SUCCESS,
                                 tolerant=step.tolerant))

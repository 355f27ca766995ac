from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from .lib.context import ExecutionContext, Invocation


class ProbeResult(str, Enum):
    SATISFIED = "satisfied"
    DIVERGENT = "divergent"

    @classmethod
    def of(cls, satisfied: bool) -> "ProbeResult":
        return cls.SATISFIED if satisfied else cls.DIVERGENT


class Criticality(str, Enum):
    FAIL_FAST = "fail-fast"
    TOLERANT = "tolerant"


@dataclass(frozen=True)
class ProvisioningStep:
    """A named, idempotent unit of convergence.

    `probe` must not change the host. `action` runs only when the probe reports
    a divergence, and running it against an already-converged host must be a
    no-op.
    """

    name: str
    probe: Callable[[Invocation], ProbeResult]
    action: Callable[[Invocation], None]
    context: ExecutionContext = field(default_factory=ExecutionContext)
    criticality: Criticality = Criticality.FAIL_FAST
    timeout_s: Optional[float] = None
    verify: bool = False
    description: str = ""

    @property
    def tolerant(self) -> bool:
        return self.criticality is Criticality.TOLERANT

    @property
    def title(self) -> str:
        return self.description or self.name

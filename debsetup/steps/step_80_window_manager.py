from __future__ import annotations

from typing import List

from ..config import HostConfig
from ..lib import identity, probes
from ..lib.context import Contexts, Invocation
from ..lib.textblock import upsert_line
from ..step import ProvisioningStep


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    i3_config = identity.expected_home(cfg.username) / ".config" / "i3" / "config"
    steps: List[ProvisioningStep] = []
    for idx, line in enumerate(cfg.i3_lines, start=1):

        def add(inv: Invocation, line: str = line) -> None:
            upsert_line(i3_config, line, owner=inv.owner)

        steps.append(
            ProvisioningStep(
                name=f"i3-line:{idx}",
                description=f"i3 config has {line!r}",
                probe=probes.line_present(i3_config, line),
                action=add,
                context=ctx.user,
            )
        )
    return steps

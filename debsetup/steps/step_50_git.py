from __future__ import annotations

from typing import List

from ..config import HostConfig
from ..lib import probes
from ..lib.context import Contexts, Invocation
from ..step import ProvisioningStep


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    steps: List[ProvisioningStep] = []
    for key, value in cfg.git_settings.items():

        def set_value(inv: Invocation, key: str = key, value: str = value) -> None:
            inv.run(["git", "config", "--global", key, value])

        steps.append(
            ProvisioningStep(
                name=f"git-config:{key}",
                description=f"git {key} = {value!r}",
                probe=probes.git_config(key, value),
                action=set_value,
                context=ctx.user,
            )
        )
    return steps

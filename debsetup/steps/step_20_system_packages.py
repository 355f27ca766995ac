from __future__ import annotations

from typing import List, Sequence

from ..config import HostConfig
from ..lib import probes
from ..lib.context import Contexts, ExecutionContext, Invocation
from ..lib.pkg import AptManager
from ..step import ProvisioningStep

APT = AptManager()


def apt_package_steps(packages: Sequence[str], context: ExecutionContext) -> List[ProvisioningStep]:
    steps: List[ProvisioningStep] = []
    for pkg in packages:

        def install(inv: Invocation, pkg: str = pkg) -> None:
            APT.install(inv, pkg)

        steps.append(
            ProvisioningStep(
                name=f"apt:{pkg}",
                description=f"apt package {pkg} installed",
                probe=probes.apt_installed(pkg, APT),
                action=install,
                context=context,
            )
        )
    return steps


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    steps = [
        ProvisioningStep(
            name="apt-lists",
            description="apt package lists are fresh",
            probe=probes.apt_lists_fresh(cfg.apt_lists_max_age_s),
            action=APT.update,
            context=ctx.root,
        )
    ]

    seen: List[str] = []
    for pkg in [*cfg.apt_bootstrap, *cfg.apt_packages]:
        if pkg not in seen:
            seen.append(pkg)
    return steps + apt_package_steps(seen, ctx.root)

from __future__ import annotations

from typing import List

from ..config import HostConfig
from ..lib import probes
from ..lib.context import Contexts, Invocation
from ..step import ProvisioningStep


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    url = str(cfg.section("rust").get("installer_url") or "https://sh.rustup.rs")

    def install(inv: Invocation) -> None:
        # rustup adds ~/.cargo/env to ~/.profile itself.
        inv.run(["sh", "-c", 'curl --proto "=https" --tlsv1.2 -sSf "$1" | sh -s -- -y', "sh", url])

    return [
        ProvisioningStep(
            name="rustup",
            description="cargo reachable from the user's login shell",
            probe=probes.command_available("cargo"),
            action=install,
            context=ctx.user_login,
        )
    ]

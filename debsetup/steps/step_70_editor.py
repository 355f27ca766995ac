from __future__ import annotations

from typing import List

from ..config import HostConfig
from ..lib import identity, probes
from ..lib.context import Contexts, Invocation
from ..lib.textblock import sync_block
from ..step import ProvisioningStep


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    section = cfg.section("vim")
    if not section.get("content"):
        return []
    vimrc = identity.expected_home(cfg.username) / ".vimrc"
    start = str(section["start_marker"])
    end = str(section["end_marker"])
    content = str(section["content"])

    def sync(inv: Invocation) -> None:
        sync_block(vimrc, start, end, content, owner=inv.owner)

    return [
        ProvisioningStep(
            name="vimrc",
            description="managed block in .vimrc is current",
            probe=probes.block_matches(vimrc, start, end, content),
            action=sync,
            context=ctx.user,
        )
    ]

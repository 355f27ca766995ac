from __future__ import annotations

import logging
import socket
from typing import List

from ..config import HostConfig
from ..lib import identity, probes
from ..lib.context import Contexts, Invocation
from ..lib.textblock import ensure_dir
from ..step import Criticality, ProvisioningStep

logger = logging.getLogger(__name__)


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    user = cfg.username
    section = cfg.section("ssh")
    key_type = str(section.get("key_type") or "ed25519")
    comment = str(section.get("comment") or f"{user}@{socket.gethostname()}")
    ssh_dir = identity.expected_home(user) / ".ssh"
    key_file = ssh_dir / f"id_{key_type}"

    def generate(inv: Invocation) -> None:
        ensure_dir(ssh_dir, owner=inv.owner, mode=0o700)
        inv.run(["ssh-keygen", "-t", key_type, "-C", comment, "-N", "", "-f", str(key_file)])
        pub = key_file.with_name(key_file.name + ".pub").read_text(encoding="utf-8").strip()
        logger.info("Public SSH key for %s:\n%s", user, pub)

    steps = [
        ProvisioningStep(
            name="ssh-key",
            description=f"SSH key pair {key_file}",
            probe=probes.path_exists(key_file, "file"),
            action=generate,
            context=ctx.user,
        )
    ]

    unit = section.get("service")
    if unit:

        def enable(inv: Invocation) -> None:
            inv.run(["systemctl", "enable", "--now", str(unit)])

        steps.append(
            ProvisioningStep(
                name=f"service:{unit}",
                description=f"{unit} enabled at boot",
                probe=probes.service_enabled(str(unit)),
                action=enable,
                context=ctx.root,
                criticality=Criticality.TOLERANT,
            )
        )
    return steps

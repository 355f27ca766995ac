from __future__ import annotations

import logging
from typing import List

from ..config import HostConfig
from ..lib import identity, probes
from ..lib.context import Contexts, Invocation
from ..step import Criticality, ProvisioningStep

logger = logging.getLogger(__name__)


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    user = cfg.username

    def create(inv: Invocation) -> None:
        identity.create_user(inv, user)

    def set_password(inv: Invocation) -> None:
        logger.info("Please create a password for the new user '%s'", user)
        identity.set_password(inv, user)

    steps = [
        ProvisioningStep(
            name="account",
            description=f"user account '{user}' exists",
            probe=probes.account_exists(user),
            action=create,
            context=ctx.root,
            verify=True,
        )
    ]
    if cfg.prompt_password:
        steps.append(
            ProvisioningStep(
                name="account-password",
                description=f"'{user}' has a usable password",
                probe=probes.password_set(user),
                action=set_password,
                context=ctx.root,
                criticality=Criticality.TOLERANT,
            )
        )
    return steps


def build_groups(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    """Group membership; sequenced after the packages that create the groups."""

    user = cfg.username
    steps: List[ProvisioningStep] = []
    for group in cfg.user_groups:

        def add(inv: Invocation, group: str = group) -> None:
            identity.add_to_group(inv, user, group)

        steps.append(
            ProvisioningStep(
                name=f"group:{group}",
                description=f"'{user}' is a member of '{group}'",
                probe=probes.in_group(user, group),
                action=add,
                context=ctx.root,
                verify=True,
            )
        )
    return steps

from __future__ import annotations

from typing import List

from ..config import HostConfig
from ..lib import identity, probes
from ..lib.context import Contexts, Invocation
from ..lib.textblock import write_managed_file
from ..step import ProvisioningStep
from .step_20_system_packages import apt_package_steps


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    section = cfg.section("alacritty")
    already = set(cfg.apt_bootstrap) | set(cfg.apt_packages)
    build_deps = [str(p) for p in (section.get("build_deps") or []) if str(p) not in already]
    config_file = identity.expected_home(cfg.username) / ".config" / "alacritty" / "alacritty.toml"

    def cargo_install(inv: Invocation) -> None:
        inv.run(["cargo", "install", "alacritty"])

    steps = apt_package_steps(build_deps, ctx.root)
    steps.append(
        ProvisioningStep(
            name="alacritty",
            description="alacritty reachable from the user's login shell",
            probe=probes.command_available("alacritty"),
            action=cargo_install,
            context=ctx.user_login,
        )
    )

    rendered = section.get("config")
    if rendered:

        def write_config(inv: Invocation) -> None:
            write_managed_file(config_file, str(rendered), owner=inv.owner)

        steps.append(
            ProvisioningStep(
                name="alacritty-config",
                description=f"{config_file} matches the managed config",
                probe=probes.file_content_equals(config_file, str(rendered)),
                action=write_config,
                context=ctx.user,
            )
        )
    return steps

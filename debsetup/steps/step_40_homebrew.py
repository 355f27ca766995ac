from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import List

from ..config import HostConfig
from ..lib import identity, probes
from ..lib.context import Contexts, Invocation
from ..lib.pkg import BrewManager
from ..lib.textblock import ensure_dir, upsert_line
from ..step import Criticality, ProbeResult, ProvisioningStep

logger = logging.getLogger(__name__)

BREW = BrewManager()


def shellenv_line(prefix: str) -> str:
    return f'eval "$({prefix}/bin/brew shellenv)"'


def chown_targets(prefix: Path) -> List[Path]:
    """Paths handed to the user after unpacking; never a shared parent like /opt."""

    if prefix.parent.name == "linuxbrew":
        return [prefix.parent]
    return [prefix]


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    user = cfg.username
    section = cfg.section("homebrew")
    prefix = Path(cfg.brew_prefix)
    url = str(section.get("tarball_url") or "https://github.com/Homebrew/brew/tarball/master")
    header = str(section.get("shellenv_header") or "# Add Homebrew to PATH")
    profile = identity.expected_home(user) / ".profile"

    unpacked = probes.path_exists(prefix / "bin" / "brew", "executable")

    def install(inv: Invocation) -> None:
        # A previous run may have unpacked the tree and then failed to chown it.
        if unpacked(inv) is ProbeResult.DIVERGENT:
            ensure_dir(prefix)
            inv.run(
                [
                    "bash",
                    "-o",
                    "pipefail",
                    "-c",
                    f"curl -fsSL {shlex.quote(url)} | tar xz --strip 1 -C {shlex.quote(str(prefix))}",
                ]
            )
        # Brew refuses to run as root; the whole tree belongs to the user.
        inv.run(["chown", "-R", f"{user}:", *(str(p) for p in chown_targets(prefix))])

    def add_shellenv(inv: Invocation) -> None:
        upsert_line(profile, shellenv_line(str(prefix)), header=header, owner=inv.owner)

    steps = [
        ProvisioningStep(
            name="homebrew",
            description=f"Homebrew unpacked in {prefix}",
            probe=probes.all_of(
                unpacked,
                probes.owned_by(prefix, user),
            ),
            action=install,
            context=ctx.root,
        ),
        ProvisioningStep(
            name="homebrew-profile",
            description="~/.profile puts Homebrew on PATH for login shells",
            probe=probes.line_present(profile, shellenv_line(str(prefix))),
            action=add_shellenv,
            context=ctx.user,
        ),
    ]

    for pkg in cfg.brew_packages:

        def install_pkg(inv: Invocation, pkg: str = pkg) -> None:
            BREW.install(inv, pkg)

        # One tool failing must not block the others.
        steps.append(
            ProvisioningStep(
                name=f"brew:{pkg}",
                description=f"brew formula {pkg} installed",
                probe=probes.brew_installed(pkg, BREW),
                action=install_pkg,
                context=ctx.user_login,
                criticality=Criticality.TOLERANT,
            )
        )
    return steps

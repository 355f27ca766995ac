from __future__ import annotations

import os
from pathlib import Path
from typing import List

from ..config import HostConfig
from ..lib import probes
from ..lib.context import Contexts, Invocation
from ..lib.pkg import AptManager
from ..lib.textblock import write_managed_file
from ..step import Criticality, ProvisioningStep

APT = AptManager()


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    section = cfg.section("github_cli")
    if not section:
        return []
    keyring = Path(str(section.get("keyring") or "/usr/share/keyrings/githubcli-archive-keyring.gpg"))
    keyring_url = str(section.get("keyring_url") or "https://cli.github.com/packages/githubcli-archive-keyring.gpg")
    sources_file = Path(str(section.get("sources_file") or "/etc/apt/sources.list.d/github-cli.list"))
    repo_url = str(section.get("repo_url") or "https://cli.github.com/packages")

    def fetch_keyring(inv: Invocation) -> None:
        inv.run(["curl", "-fsSL", "-o", str(keyring), keyring_url])
        os.chmod(keyring, 0o644)

    def add_source(inv: Invocation) -> None:
        arch = inv.run(["dpkg", "--print-architecture"]).stdout.strip()
        write_managed_file(
            sources_file,
            f"deb [arch={arch} signed-by={keyring}] {repo_url} stable main\n",
        )

    def install_gh(inv: Invocation) -> None:
        # The new source has to be indexed before gh is visible.
        APT.update(inv)
        APT.install(inv, "gh")

    steps = [
        ProvisioningStep(
            name="gh-keyring",
            description=f"GitHub CLI archive key in {keyring}",
            probe=probes.path_exists(keyring, "file"),
            action=fetch_keyring,
            context=ctx.root,
        ),
        ProvisioningStep(
            name="gh-apt-source",
            description=f"GitHub CLI apt source in {sources_file}",
            probe=probes.path_exists(sources_file, "file"),
            action=add_source,
            context=ctx.root,
        ),
        ProvisioningStep(
            name="apt:gh",
            description="apt package gh installed",
            probe=probes.apt_installed("gh", APT),
            action=install_gh,
            context=ctx.root,
        ),
    ]

    if section.get("authenticate", True):

        def login(inv: Invocation) -> None:
            inv.run(["gh", "auth", "login"], interactive=True)

        steps.append(
            ProvisioningStep(
                name="gh-auth",
                description="GitHub CLI authenticated",
                probe=probes.command_succeeds(["gh", "auth", "status"]),
                action=login,
                context=ctx.user_login,
                criticality=Criticality.TOLERANT,
            )
        )
    return steps

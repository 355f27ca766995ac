from __future__ import annotations

import logging
from typing import List

from ..config import HostConfig
from ..lib import identity, probes
from ..lib.context import Contexts, Invocation
from ..lib.textblock import substitute_line, sync_block, upsert_line
from ..step import Criticality, ProvisioningStep
from .step_40_homebrew import shellenv_line

logger = logging.getLogger(__name__)

DEFAULT_OMZ_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    user = cfg.username
    section = cfg.section("zsh")
    home = identity.expected_home(user)
    zshrc = home / ".zshrc"
    omz_dir = home / ".oh-my-zsh"
    custom_dir = omz_dir / "custom"
    omz_url = str(section.get("oh_my_zsh_url") or DEFAULT_OMZ_URL)

    def install_omz(inv: Invocation) -> None:
        # --unattended: no chsh, no exec into zsh; an existing .zshrc is backed up.
        inv.run(["sh", "-c", 'curl -fsSL "$1" | sh -s -- --unattended', "sh", omz_url])

    steps = [
        ProvisioningStep(
            name="oh-my-zsh",
            description=f"Oh My Zsh in {omz_dir}",
            probe=probes.path_exists(omz_dir, "dir"),
            action=install_omz,
            context=ctx.user,
        )
    ]

    for rel, repo in (section.get("clones") or {}).items():
        dest = custom_dir / str(rel)

        def clone(inv: Invocation, repo: str = str(repo), dest=dest) -> None:
            inv.run(["git", "clone", "--depth=1", repo, str(dest)])

        steps.append(
            ProvisioningStep(
                name=f"zsh-clone:{rel}",
                description=f"{repo} cloned into {dest}",
                probe=probes.path_exists(dest, "dir"),
                action=clone,
                context=ctx.user,
            )
        )

    brew_line = shellenv_line(cfg.brew_prefix)
    brew_header = str(cfg.section("homebrew").get("shellenv_header") or "# Add Homebrew to PATH")

    def add_brew(inv: Invocation) -> None:
        upsert_line(zshrc, brew_line, header=brew_header, owner=inv.owner)

    steps.append(
        ProvisioningStep(
            name="zshrc-homebrew",
            description="interactive zsh puts Homebrew on PATH",
            probe=probes.line_present(zshrc, brew_line),
            action=add_brew,
            context=ctx.user,
        )
    )

    # The placeholders come from the Oh My Zsh .zshrc template.
    for name, pattern, key in (
        ("zshrc-theme", r"^ZSH_THEME=", "theme_line"),
        ("zshrc-plugins", r"^plugins=\(.*\)", "plugins_line"),
    ):
        line = section.get(key)
        if not line:
            continue

        def rewrite(inv: Invocation, pattern: str = pattern, line: str = str(line)) -> None:
            substitute_line(zshrc, pattern, line, owner=inv.owner)

        steps.append(
            ProvisioningStep(
                name=name,
                description=f".zshrc has {line}",
                probe=probes.line_present(zshrc, str(line)),
                action=rewrite,
                context=ctx.user,
                criticality=Criticality.TOLERANT,
                verify=True,
            )
        )

    aliases = section.get("aliases") or {}
    if aliases.get("content"):
        start = str(aliases["start_marker"])
        end = str(aliases["end_marker"])
        content = str(aliases["content"])

        def sync_aliases(inv: Invocation) -> None:
            sync_block(zshrc, start, end, content, owner=inv.owner)

        steps.append(
            ProvisioningStep(
                name="zshrc-aliases",
                description="managed alias block in .zshrc is current",
                probe=probes.block_matches(zshrc, start, end, content),
                action=sync_aliases,
                context=ctx.user,
            )
        )

    shell = cfg.login_shell

    def chsh(inv: Invocation) -> None:
        identity.set_login_shell(inv, user, shell)

    steps.append(
        ProvisioningStep(
            name="login-shell",
            description=f"{shell} is the login shell of '{user}'",
            probe=probes.default_shell(user, shell),
            action=chsh,
            context=ctx.root,
        )
    )
    return steps

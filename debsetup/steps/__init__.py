from __future__ import annotations

from dataclasses import replace
from typing import List

from ..config import HostConfig
from ..lib.context import contexts_for
from ..step import ProvisioningStep
from . import (
    step_10_account,
    step_20_system_packages,
    step_30_rust,
    step_40_homebrew,
    step_50_git,
    step_55_ssh,
    step_60_zsh,
    step_70_editor,
    step_75_terminal,
    step_80_window_manager,
    step_85_github_cli,
    step_90_ide,
)


def build_steps(cfg: HostConfig) -> List[ProvisioningStep]:
    """The whole plan, already in dependency order.

    Account and system packages come first: every user-scoped step needs the
    account, and Homebrew needs the compiler toolchain.
    """

    ctx = contexts_for(cfg.username)
    steps = [
        *step_10_account.build(cfg, ctx),
        *step_20_system_packages.build(cfg, ctx),
        *step_10_account.build_groups(cfg, ctx),
        *step_30_rust.build(cfg, ctx),
        *step_40_homebrew.build(cfg, ctx),
        *step_50_git.build(cfg, ctx),
        *step_55_ssh.build(cfg, ctx),
        *step_60_zsh.build(cfg, ctx),
        *step_70_editor.build(cfg, ctx),
        *step_75_terminal.build(cfg, ctx),
        *step_80_window_manager.build(cfg, ctx),
        *step_85_github_cli.build(cfg, ctx),
        *step_90_ide.build(cfg, ctx),
    ]
    timeout = cfg.step_timeout_s
    if timeout is None:
        return steps
    return [s if s.timeout_s is not None else replace(s, timeout_s=timeout) for s in steps]


__all__ = ["build_steps"]

from __future__ import annotations

import grp
import logging
import pwd
import shutil
from pathlib import Path
from typing import Optional, Set

from .context import Invocation

logger = logging.getLogger(__name__)


def user_exists(name: str) -> bool:
    try:
        pwd.getpwnam(name)
    except KeyError:
        return False
    return True


def home_of(name: str) -> Path:
    return Path(pwd.getpwnam(name).pw_dir)


def uid_of(name: str) -> int:
    return pwd.getpwnam(name).pw_uid


def groups_of(name: str) -> Set[str]:
    """Supplementary groups listing `name`, plus its primary group."""

    out = {g.gr_name for g in grp.getgrall() if name in g.gr_mem}
    try:
        primary = pwd.getpwnam(name).pw_gid
        out.add(grp.getgrgid(primary).gr_name)
    except KeyError:
        pass
    return out


def login_shell_of(name: str) -> str:
    return pwd.getpwnam(name).pw_shell


def resolve_shell(shell: str) -> Optional[str]:
    if shell.startswith("/"):
        return shell if Path(shell).exists() else None
    return shutil.which(shell)


def create_user(inv: Invocation, name: str, *, shell: Optional[str] = None) -> None:
    argv = ["useradd", "-m"]
    if shell:
        argv += ["-s", shell]
    inv.run([*argv, name])
    logger.info("Created user %s", name)


def add_to_group(inv: Invocation, name: str, group: str) -> None:
    inv.run(["usermod", "-aG", group, name])
    logger.info("Added %s to group %s", name, group)


def set_login_shell(inv: Invocation, name: str, shell: str) -> None:
    path = resolve_shell(shell)
    if not path:
        raise RuntimeError(f"Shell not found: {shell}")
    inv.run(["chsh", "-s", path, name])
    logger.info("Login shell of %s set to %s", name, path)


def set_password(inv: Invocation, name: str) -> None:
    """Prompt on the terminal for a new password."""

    inv.run(["passwd", name], interactive=True)


def expected_home(name: str) -> Path:
    """Home of `name`, or where `useradd -m` will put it if the account is not there yet."""

    try:
        return home_of(name)
    except KeyError:
        return Path("/home") / name

from __future__ import annotations

import logging
import os
import pwd
import shlex
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Tuple

from ..errors import CommandError, CommandTimeout, PrivilegeError, ProbeError
from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

ROOT = "root"


class ShellMode(str, Enum):
    LOGIN = "login"
    NON_LOGIN = "non-login"


@dataclass(frozen=True)
class ExecutionContext:
    """Which identity a command runs as, and whether its profile is sourced.

    Stateless: one instance per (principal, shell_mode) pair is enough for a
    whole run.
    """

    principal: str = ROOT
    shell_mode: ShellMode = ShellMode.NON_LOGIN

    @property
    def is_root(self) -> bool:
        return self.principal == ROOT

    @property
    def label(self) -> str:
        return f"{self.principal}/{self.shell_mode.value}"

    def account(self) -> pwd.struct_passwd:
        try:
            return pwd.getpwnam(self.principal)
        except KeyError as e:
            raise PrivilegeError(f"Unknown principal: {self.principal}") from e

    def command_argv(self, argv: Sequence[str], *, euid: Optional[int] = None) -> list[str]:
        """Rewrite argv so that it runs as this context's principal.

        Login mode wraps the command in `bash -lc` so ~/.profile is sourced
        before the command resolves its executable.
        """

        euid = os.geteuid() if euid is None else euid
        cmd = list(argv)
        if not cmd:
            raise ValueError("empty command")
        if self.shell_mode is ShellMode.LOGIN:
            cmd = ["bash", "-lc", shlex.join(cmd)]

        if self.is_root:
            if euid != 0:
                raise PrivilegeError("root context requires running as root")
            return cmd

        self.account()
        if euid == 0:
            return ["runuser", "-u", self.principal, "--", *cmd]

        try:
            current = pwd.getpwuid(euid).pw_name
        except KeyError as e:
            raise PrivilegeError(f"Cannot resolve current uid {euid}") from e
        if current != self.principal:
            raise PrivilegeError(f"Cannot run as {self.principal} from uid {euid} ({current})")
        return cmd

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        input_text: str | None = None,
        timeout_s: float | None = None,
        interactive: bool = False,
    ) -> CmdResult:
        cwd = None
        if not self.is_root:
            home = self.account().pw_dir
            if home and os.path.isdir(home):
                cwd = home
        return run_cmd(
            self.command_argv(argv),
            check=check,
            cwd=cwd,
            input_text=input_text,
            timeout_s=timeout_s,
            interactive=interactive,
        )

    def owner_ids(self) -> Optional[Tuple[int, int]]:
        """uid/gid that files written on behalf of this context must carry.

        None when no ownership change is needed (root context, or the process
        already runs as the principal).
        """

        if self.is_root or os.geteuid() != 0:
            return None
        acct = self.account()
        return acct.pw_uid, acct.pw_gid

    def home(self) -> Path:
        return Path(self.account().pw_dir)


@dataclass(frozen=True)
class Contexts:
    root: ExecutionContext
    user: ExecutionContext
    user_login: ExecutionContext


def contexts_for(username: str) -> Contexts:
    return Contexts(
        root=ExecutionContext(ROOT, ShellMode.NON_LOGIN),
        user=ExecutionContext(username, ShellMode.NON_LOGIN),
        user_login=ExecutionContext(username, ShellMode.LOGIN),
    )


@dataclass(frozen=True)
class Invocation:
    """One probe or action call of a step: its context plus the step deadline."""

    context: ExecutionContext
    deadline: Optional[float] = None

    @classmethod
    def start(cls, context: ExecutionContext, timeout_s: Optional[float]) -> "Invocation":
        deadline = None if timeout_s is None else time.monotonic() + float(timeout_s)
        return cls(context=context, deadline=deadline)

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        input_text: str | None = None,
        interactive: bool = False,
    ) -> CmdResult:
        timeout = self.remaining()
        if timeout is not None and timeout <= 0:
            raise CommandTimeout(list(argv), -1, message="Step time budget exhausted before command start")
        return self.context.run(
            argv,
            check=check,
            input_text=input_text,
            timeout_s=timeout,
            interactive=interactive,
        )

    @property
    def owner(self) -> Optional[Tuple[int, int]]:
        return self.context.owner_ids()

    def inspect(self, argv: Sequence[str]) -> CmdResult:
        """Run a read-only check command without raising on a non-zero exit.

        Only failing to run the command at all (missing binary, timeout)
        raises, as ProbeError.
        """

        try:
            return self.run(argv, check=False)
        except CommandError as e:
            raise ProbeError(str(e)) from e

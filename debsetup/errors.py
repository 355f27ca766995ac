from __future__ import annotations

from typing import Sequence


class ProvisioningError(Exception):
    """Base class for errors the sequencer knows how to classify."""


class PrivilegeError(ProvisioningError):
    """Not running with the required elevation, or cannot assume the target identity."""


class ProbeError(ProvisioningError):
    """The inspection itself failed (as opposed to reporting a divergence)."""


class ActionError(ProvisioningError):
    def __init__(self, step: str, message: str, *, output: str = "") -> None:
        super().__init__(f"[{step}] {message}")
        self.step = step
        self.output = output


class MalformedStateError(ProvisioningError):
    """On-disk state the engine refuses to touch automatically."""


class CommandError(RuntimeError):
    def __init__(
        self,
        argv: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
        *,
        message: str | None = None,
    ) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        super().__init__(message or f"Command failed ({returncode}): {' '.join(self.argv)}")

    @property
    def output(self) -> str:
        return "\n".join(s.strip() for s in (self.stdout, self.stderr) if s.strip())


class CommandTimeout(CommandError):
    pass

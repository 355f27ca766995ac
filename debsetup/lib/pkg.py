from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Sequence

from ..errors import ProbeError
from .context import Invocation

logger = logging.getLogger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


@dataclass(frozen=True)
class AptManager:
    """System package manager (dpkg status + apt-get)."""

    install_args: Sequence[str] = ("-y",)

    def is_installed(self, inv: Invocation, name: str) -> bool:
        r = inv.inspect(["dpkg-query", "-W", "-f=${Status}", name])
        if r.returncode == 0:
            return r.stdout.strip() == "install ok installed"
        # dpkg-query exits 1 for packages it has never heard of.
        if r.returncode == 1:
            return False
        raise ProbeError(f"dpkg-query failed ({r.returncode}) for {name}: {r.stderr.strip()}")

    def update(self, inv: Invocation) -> None:
        inv.run(["env", *_env_args(APT_ENV), "apt-get", "update"])

    def install(self, inv: Invocation, *names: str) -> None:
        if not names:
            return
        inv.run(["env", *_env_args(APT_ENV), "apt-get", "install", *self.install_args, *names])
        logger.info("apt installed: %s", " ".join(names))


@dataclass(frozen=True)
class BrewManager:
    """User-level Homebrew; its invocations need the brew shellenv (login shell)."""

    env: Dict[str, str] = field(default_factory=lambda: {"HOMEBREW_NO_AUTO_UPDATE": "1"})

    def is_installed(self, inv: Invocation, name: str) -> bool:
        r = inv.inspect(["brew", "list", name])
        return r.returncode == 0

    def install(self, inv: Invocation, name: str) -> None:
        inv.run(["env", *_env_args(self.env), "brew", "install", name])
        logger.info("brew installed: %s", name)


def _env_args(env: Dict[str, str]) -> list[str]:
    return [f"{k}={v}" for k, v in sorted(env.items())]

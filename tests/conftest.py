"""
Shared test fixtures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from debsetup.lib.command import CmdResult
from debsetup.lib.context import ExecutionContext


@dataclass
class FakeInvocation:
    """Stands in for debsetup.lib.context.Invocation without running anything.

    `responses` maps an argv tuple to (returncode, stdout, stderr).
    """

    responses: Dict[Tuple[str, ...], Tuple[int, str, str]] = field(default_factory=dict)
    calls: List[List[str]] = field(default_factory=list)
    context: ExecutionContext = field(default_factory=ExecutionContext)
    owner: Optional[Tuple[int, int]] = None

    def run(self, argv: Sequence[str], *, check: bool = True, input_text=None, interactive: bool = False) -> CmdResult:
        self.calls.append(list(argv))
        code, out, err = self.responses.get(tuple(argv), (0, "", ""))
        return CmdResult(argv=list(argv), returncode=code, stdout=out, stderr=err)

    def inspect(self, argv: Sequence[str]) -> CmdResult:
        return self.run(argv, check=False)


@pytest.fixture
def fake_inv() -> Callable[..., FakeInvocation]:
    def make(responses=None, **kwargs) -> FakeInvocation:
        return FakeInvocation(responses=dict(responses or {}), **kwargs)

    return make


@pytest.fixture
def rc_file(tmp_path):
    """A user-owned-looking dotfile path inside tmp_path."""
    return tmp_path / "home" / ".zshrc"

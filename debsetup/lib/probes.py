"""Read-only state probes.

Each factory returns a callable `probe(inv) -> ProbeResult`. Probes never
mutate the host; an inspection that cannot be carried out raises ProbeError,
which the reconciler treats as a divergence.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Callable, Sequence

from ..errors import ProbeError
from ..step import ProbeResult
from . import identity
from .context import Invocation
from .pkg import AptManager, BrewManager
from .textblock import block_body, find_blocks

logger = logging.getLogger(__name__)

Probe = Callable[[Invocation], ProbeResult]

PATH_KINDS = {"any", "dir", "file", "executable"}


def account_exists(name: str) -> Probe:
    def probe(inv: Invocation) -> ProbeResult:
        return ProbeResult.of(identity.user_exists(name))

    return probe


def in_group(user: str, group: str) -> Probe:
    def probe(inv: Invocation) -> ProbeResult:
        if not identity.user_exists(user):
            return ProbeResult.DIVERGENT
        return ProbeResult.of(group in identity.groups_of(user))

    return probe


def password_set(user: str) -> Probe:
    def probe(inv: Invocation) -> ProbeResult:
        r = inv.inspect(["passwd", "-S", user])
        if r.returncode != 0:
            raise ProbeError(f"passwd -S {user} failed: {r.stderr.strip()}")
        fields = r.stdout.split()
        return ProbeResult.of(len(fields) > 1 and fields[1] == "P")

    return probe


def apt_installed(name: str, manager: AptManager | None = None) -> Probe:
    mgr = manager or AptManager()

    def probe(inv: Invocation) -> ProbeResult:
        return ProbeResult.of(mgr.is_installed(inv, name))

    return probe


def apt_lists_fresh(max_age_s: float, lists_dir: str = "/var/lib/apt/lists") -> Probe:
    def probe(inv: Invocation) -> ProbeResult:
        p = Path(lists_dir)
        if not p.is_dir():
            return ProbeResult.DIVERGENT
        newest = max((f.stat().st_mtime for f in p.iterdir() if f.is_file()), default=None)
        if newest is None:
            return ProbeResult.DIVERGENT
        return ProbeResult.of(time.time() - newest <= max_age_s)

    return probe


def brew_installed(name: str, manager: BrewManager | None = None) -> Probe:
    mgr = manager or BrewManager()

    def probe(inv: Invocation) -> ProbeResult:
        return ProbeResult.of(mgr.is_installed(inv, name))

    return probe


def path_exists(path: str | Path, kind: str = "any") -> Probe:
    if kind not in PATH_KINDS:
        raise ValueError(f"kind must be one of {sorted(PATH_KINDS)}")
    p = Path(path)

    def probe(inv: Invocation) -> ProbeResult:
        if kind == "dir":
            return ProbeResult.of(p.is_dir())
        if kind == "file":
            return ProbeResult.of(p.is_file())
        if kind == "executable":
            return ProbeResult.of(p.is_file() and os.access(p, os.X_OK))
        return ProbeResult.of(p.exists() or p.is_symlink())

    return probe


def command_available(name: str) -> Probe:
    """`command -v` in the invocation's context (login shells see profile PATH)."""

    def probe(inv: Invocation) -> ProbeResult:
        r = inv.inspect(["sh", "-c", 'command -v "$1"', "sh", name])
        return ProbeResult.of(r.returncode == 0 and bool(r.stdout.strip()))

    return probe


def command_succeeds(argv: Sequence[str]) -> Probe:
    def probe(inv: Invocation) -> ProbeResult:
        return ProbeResult.of(inv.inspect(argv).returncode == 0)

    return probe


def config_value(argv: Sequence[str], expected: str, *, unset_codes: Sequence[int] = (1,)) -> Probe:
    """Satisfied iff the query prints exactly `expected`.

    Exit codes in `unset_codes` mean the key is not set (divergent); any other
    non-zero exit means the query failed.
    """

    def probe(inv: Invocation) -> ProbeResult:
        r = inv.inspect(argv)
        if r.returncode in unset_codes:
            return ProbeResult.DIVERGENT
        if r.returncode != 0:
            raise ProbeError(f"query failed ({r.returncode}): {' '.join(argv)}: {r.stderr.strip()}")
        return ProbeResult.of(r.stdout.strip() == expected)

    return probe


def git_config(key: str, expected: str) -> Probe:
    return config_value(["git", "config", "--global", key], expected)


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise ProbeError(f"cannot read {path}: {e}") from e


def text_contains(path: str | Path, literal: str) -> Probe:
    p = Path(path)

    def probe(inv: Invocation) -> ProbeResult:
        text = _read(p)
        return ProbeResult.of(text is not None and literal in text)

    return probe


def line_present(path: str | Path, line: str) -> Probe:
    p = Path(path)

    def probe(inv: Invocation) -> ProbeResult:
        text = _read(p)
        if text is None:
            return ProbeResult.DIVERGENT
        return ProbeResult.of(line in (x.rstrip("\r") for x in text.splitlines()))

    return probe


def block_matches(path: str | Path, start: str, end: str, content: str) -> Probe:
    """Satisfied iff exactly one start..end block exists and its body equals `content`."""

    p = Path(path)

    def probe(inv: Invocation) -> ProbeResult:
        text = _read(p)
        if text is None:
            return ProbeResult.DIVERGENT
        # MalformedStateError propagates: a half-open block must stop the run.
        spans = find_blocks(text.splitlines(keepends=True), start, end)
        if len(spans) != 1:
            return ProbeResult.DIVERGENT
        a, b = spans[0]
        lines = text.splitlines(keepends=True)
        return ProbeResult.of("".join(lines[a + 1 : b]) == block_body(content))

    return probe


def owned_by(path: str | Path, user: str) -> Probe:
    p = Path(path)

    def probe(inv: Invocation) -> ProbeResult:
        if not identity.user_exists(user):
            return ProbeResult.DIVERGENT
        try:
            uid = p.stat().st_uid
        except FileNotFoundError:
            return ProbeResult.DIVERGENT
        except OSError as e:
            raise ProbeError(f"cannot stat {p}: {e}") from e
        return ProbeResult.of(uid == identity.uid_of(user))

    return probe


def file_content_equals(path: str | Path, content: str) -> Probe:
    p = Path(path)

    def probe(inv: Invocation) -> ProbeResult:
        return ProbeResult.of(_read(p) == content)

    return probe


def service_enabled(unit: str) -> Probe:
    def probe(inv: Invocation) -> ProbeResult:
        r = inv.inspect(["systemctl", "is-enabled", unit])
        state = r.stdout.strip()
        if not state and r.returncode != 0:
            raise ProbeError(f"systemctl is-enabled {unit} failed: {r.stderr.strip()}")
        return ProbeResult.of(state == "enabled")

    return probe


def default_shell(user: str, shell: str) -> Probe:
    def probe(inv: Invocation) -> ProbeResult:
        target = identity.resolve_shell(shell)
        if not target:
            raise ProbeError(f"shell {shell!r} not found")
        if not identity.user_exists(user):
            return ProbeResult.DIVERGENT
        return ProbeResult.of(identity.login_shell_of(user) == target)

    return probe


def all_of(*probes: Probe) -> Probe:
    def probe(inv: Invocation) -> ProbeResult:
        for p in probes:
            if p(inv) is ProbeResult.DIVERGENT:
                return ProbeResult.DIVERGENT
        return ProbeResult.SATISFIED

    return probe

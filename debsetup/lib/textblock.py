"""Idempotent edits of text files that users also edit by hand.

Three primitives with different strengths:

- sync_block: a marker-delimited section owned entirely by us. Always
  delete-then-append, so a changed body replaces the old one and never merges.
- upsert_line: make sure one literal line exists somewhere. Never replaces.
- substitute_line: rewrite the first line matching a pattern. No-op when
  nothing matches (the line is expected to come from an earlier install step).

Files written here are chowned to `owner` (uid, gid) when given, so that
user-scoped steps do not leave root-owned files behind.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..errors import MalformedStateError

logger = logging.getLogger(__name__)

Owner = Optional[Tuple[int, int]]
PathLike = Union[str, Path]


def ensure_dir(path: PathLike, *, owner: Owner = None, mode: Optional[int] = None) -> Path:
    """mkdir -p, chowning every directory this call creates."""

    p = Path(path)
    missing: List[Path] = []
    cur = p
    while not cur.exists():
        missing.append(cur)
        if cur.parent == cur:
            break
        cur = cur.parent

    for d in reversed(missing):
        d.mkdir(exist_ok=True)
        if owner is not None:
            os.chown(d, owner[0], owner[1])

    if mode is not None:
        os.chmod(p, mode)
    return p


def ensure_file(path: PathLike, *, owner: Owner = None) -> Path:
    p = Path(path)
    if not p.exists():
        ensure_dir(p.parent, owner=owner)
        p.write_text("", encoding="utf-8")
        if owner is not None:
            os.chown(p, owner[0], owner[1])
        logger.info("Created empty %s", p)
    return p


def _read_lines(p: Path) -> List[str]:
    return p.read_text(encoding="utf-8").splitlines(keepends=True)


def _write(p: Path, text: str, *, owner: Owner) -> None:
    existed = p.exists()
    p.write_text(text, encoding="utf-8")
    if owner is not None and not existed:
        os.chown(p, owner[0], owner[1])


def _bare(line: str) -> str:
    return line.rstrip("\r\n")


def find_blocks(lines: List[str], start: str, end: str) -> List[Tuple[int, int]]:
    """Return (first, last) index pairs, inclusive, for each start..end span.

    A start marker with no end marker after it is refused.
    """

    spans: List[Tuple[int, int]] = []
    i = 0
    while i < len(lines):
        if _bare(lines[i]) == start:
            j = i + 1
            while j < len(lines) and _bare(lines[j]) != end:
                j += 1
            if j >= len(lines):
                raise MalformedStateError(
                    f"start marker {start!r} on line {i + 1} has no matching end marker {end!r}"
                )
            spans.append((i, j))
            i = j + 1
        else:
            i += 1
    return spans


def block_body(content: str) -> str:
    """Body lines as they appear between the markers."""
    return (content[:-1] if content.endswith("\n") else content) + "\n"


def render_block(start: str, end: str, content: str) -> str:
    return f"\n{start}\n{block_body(content)}{end}\n"


def read_block_bodies(path: PathLike, start: str, end: str) -> List[str]:
    p = Path(path)
    if not p.exists():
        return []
    lines = _read_lines(p)
    return ["".join(lines[a + 1 : b]) for a, b in find_blocks(lines, start, end)]


def sync_block(
    path: PathLike,
    start: str,
    end: str,
    content: str,
    *,
    owner: Owner = None,
) -> Path:
    """Delete any existing start..end block(s) and append a fresh one.

    The blank line written ahead of the block is part of the block and goes
    with it, so syncing unchanged content leaves the file byte-identical.
    Content with a line equal to either marker is refused with ValueError.
    """

    body = block_body(content)
    if any(_bare(line) in (start, end) for line in body.splitlines()):
        raise ValueError(f"block content for {path} must not contain a {start!r} or {end!r} line")

    p = ensure_file(path, owner=owner)
    lines = _read_lines(p)
    spans = find_blocks(lines, start, end)

    drop = set()
    for a, b in spans:
        drop.update(range(a, b + 1))
        if a > 0 and _bare(lines[a - 1]) == "" and (a - 1) not in drop:
            drop.add(a - 1)

    kept = "".join(line for idx, line in enumerate(lines) if idx not in drop)
    if kept and not kept.endswith("\n"):
        kept += "\n"

    _write(p, kept + render_block(start, end, content), owner=owner)
    logger.info("Synced block %s in %s (%d old block(s) replaced)", start, p, len(spans))
    return p


def upsert_line(
    path: PathLike,
    line: str,
    *,
    header: Optional[str] = None,
    owner: Owner = None,
) -> bool:
    """Append `line` unless it is already present verbatim. Returns True if appended."""

    p = ensure_file(path, owner=owner)
    text = p.read_text(encoding="utf-8")
    if line in (_bare(x) for x in text.splitlines()):
        return False

    if text and not text.endswith("\n"):
        text += "\n"
    if header:
        text += f"\n{header}\n"
    text += line + "\n"
    _write(p, text, owner=owner)
    logger.info("Appended line to %s: %s", p, line)
    return True


def substitute_line(
    path: PathLike,
    pattern: str,
    replacement: str,
    *,
    owner: Owner = None,
) -> bool:
    """Rewrite the first line matching `pattern` to `replacement`.

    Returns False, changing nothing, when the file is missing or no line matches.
    """

    p = Path(path)
    if not p.exists():
        logger.warning("Not substituting %r: %s does not exist", pattern, p)
        return False

    rx = re.compile(pattern)
    lines = _read_lines(p)
    for idx, line in enumerate(lines):
        if rx.search(_bare(line)):
            ending = line[len(_bare(line)) :] or "\n"
            lines[idx] = replacement + ending
            _write(p, "".join(lines), owner=owner)
            logger.info("Rewrote line %d of %s", idx + 1, p)
            return True

    logger.warning("No line in %s matches %r", p, pattern)
    return False


def write_managed_file(
    path: PathLike,
    content: str,
    *,
    owner: Owner = None,
    mode: Optional[int] = None,
) -> Path:
    """Own a whole generated file: replace its content unconditionally."""

    p = Path(path)
    ensure_dir(p.parent, owner=owner)
    _write(p, content, owner=owner)
    if mode is not None:
        os.chmod(p, mode)
    logger.info("Wrote %s (%d bytes)", p, len(content.encode("utf-8")))
    return p

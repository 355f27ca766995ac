import pytest

from debsetup.errors import MalformedStateError
from debsetup.lib import textblock
from debsetup.lib.textblock import (
    ensure_dir,
    read_block_bodies,
    substitute_line,
    sync_block,
    upsert_line,
    write_managed_file,
)


def test_sync_block_scenario(tmp_path):
    rc = tmp_path / "rc"
    rc.write_text("", encoding="utf-8")

    sync_block(rc, "# BEGIN", "# END", "alias x=1")
    assert rc.read_text(encoding="utf-8") == "\n# BEGIN\nalias x=1\n# END\n"

    sync_block(rc, "# BEGIN", "# END", "alias x=2")
    text = rc.read_text(encoding="utf-8")
    assert text.count("# BEGIN") == 1
    assert read_block_bodies(rc, "# BEGIN", "# END") == ["alias x=2\n"]
    assert "alias x=1" not in text


def test_sync_block_creates_missing_file_and_parents(tmp_path):
    rc = tmp_path / "a" / "b" / "rc"
    sync_block(rc, "# BEGIN", "# END", "x")
    assert rc.read_text(encoding="utf-8") == "\n# BEGIN\nx\n# END\n"


def test_sync_block_replaces_not_merges_and_keeps_outside_content(tmp_path):
    rc = tmp_path / "rc"
    before = "export A=1\n# user stuff\n"
    after = "alias mine=true\n"
    rc.write_text(before + "# BEGIN\nold\n# END\n" + after, encoding="utf-8")

    sync_block(rc, "# BEGIN", "# END", "new")

    text = rc.read_text(encoding="utf-8")
    assert text == before + after + "\n# BEGIN\nnew\n# END\n"
    assert read_block_bodies(rc, "# BEGIN", "# END") == ["new\n"]


def test_sync_block_unchanged_content_is_byte_identical(tmp_path):
    rc = tmp_path / "rc"
    rc.write_text("line one\nline two", encoding="utf-8")

    sync_block(rc, "# BEGIN", "# END", "body\nmore\n")
    first = rc.read_bytes()
    sync_block(rc, "# BEGIN", "# END", "body\nmore\n")
    sync_block(rc, "# BEGIN", "# END", "body\nmore\n")

    assert rc.read_bytes() == first
    assert first.startswith(b"line one\nline two\n")


def test_sync_block_collapses_duplicate_blocks(tmp_path):
    rc = tmp_path / "rc"
    rc.write_text("# BEGIN\na\n# END\nkeep\n# BEGIN\nb\n# END\n", encoding="utf-8")

    sync_block(rc, "# BEGIN", "# END", "c")

    assert read_block_bodies(rc, "# BEGIN", "# END") == ["c\n"]
    assert rc.read_text(encoding="utf-8").startswith("keep\n")


def test_sync_block_refuses_start_without_end(tmp_path):
    rc = tmp_path / "rc"
    original = "top\n# BEGIN\nhalf a block\nuser line\n"
    rc.write_text(original, encoding="utf-8")

    with pytest.raises(MalformedStateError):
        sync_block(rc, "# BEGIN", "# END", "x")

    assert rc.read_text(encoding="utf-8") == original


def test_markers_must_match_whole_lines(tmp_path):
    rc = tmp_path / "rc"
    rc.write_text("echo '# BEGIN'\n", encoding="utf-8")

    sync_block(rc, "# BEGIN", "# END", "x")

    assert rc.read_text(encoding="utf-8") == "echo '# BEGIN'\n\n# BEGIN\nx\n# END\n"


def test_upsert_line_twice_leaves_one_occurrence(tmp_path):
    rc = tmp_path / "rc"
    rc.write_text("existing", encoding="utf-8")
    line = 'eval "$(/home/linuxbrew/.linuxbrew/bin/brew shellenv)"'

    assert upsert_line(rc, line, header="# Add Homebrew to PATH") is True
    assert upsert_line(rc, line, header="# Add Homebrew to PATH") is False

    text = rc.read_text(encoding="utf-8")
    assert text.splitlines().count(line) == 1
    assert text == f"existing\n\n# Add Homebrew to PATH\n{line}\n"


def test_upsert_line_does_not_match_substrings(tmp_path):
    rc = tmp_path / "rc"
    rc.write_text("# exec --no-startup-id xset -b\n", encoding="utf-8")

    assert upsert_line(rc, "exec --no-startup-id xset -b") is True
    assert rc.read_text(encoding="utf-8").splitlines()[-1] == "exec --no-startup-id xset -b"


def test_substitute_line_rewrites_first_match_only(tmp_path):
    rc = tmp_path / ".zshrc"
    rc.write_text('export ZSH=x\nZSH_THEME="robbyrussell"\nZSH_THEME="other"\n', encoding="utf-8")

    changed = substitute_line(rc, r"^ZSH_THEME=", 'ZSH_THEME="powerlevel10k/powerlevel10k"')

    assert changed is True
    assert rc.read_text(encoding="utf-8") == (
        'export ZSH=x\nZSH_THEME="powerlevel10k/powerlevel10k"\nZSH_THEME="other"\n'
    )


def test_substitute_line_without_placeholder_is_a_noop(tmp_path):
    rc = tmp_path / ".zshrc"
    rc.write_text("export ZSH=x\n", encoding="utf-8")

    assert substitute_line(rc, r"^plugins=\(.*\)", "plugins=(git)") is False
    assert rc.read_text(encoding="utf-8") == "export ZSH=x\n"
    assert substitute_line(tmp_path / "missing", r"^x", "y") is False
    assert not (tmp_path / "missing").exists()


def test_write_managed_file(tmp_path):
    target = tmp_path / ".config" / "alacritty" / "alacritty.toml"
    write_managed_file(target, "[env]\n")
    write_managed_file(target, "[window]\n")
    assert target.read_text(encoding="utf-8") == "[window]\n"


def test_new_files_and_dirs_are_chowned_to_owner(tmp_path, monkeypatch):
    chowned = []
    monkeypatch.setattr(textblock.os, "chown", lambda p, uid, gid: chowned.append((str(p), uid, gid)))

    rc = tmp_path / "home" / ".config" / "i3" / "config"
    upsert_line(rc, "bindsym $mod+Return exec alacritty", owner=(1000, 1000))

    paths = {p for p, _, _ in chowned}
    assert str(tmp_path / "home") in paths
    assert str(tmp_path / "home" / ".config") in paths
    assert str(tmp_path / "home" / ".config" / "i3") in paths
    assert str(rc) in paths
    assert all((uid, gid) == (1000, 1000) for _, uid, gid in chowned)
    assert str(tmp_path) not in paths

    chowned.clear()
    upsert_line(rc, "exec --no-startup-id xset -b", owner=(1000, 1000))
    assert chowned == []


def test_ensure_dir_mode(tmp_path):
    d = ensure_dir(tmp_path / ".ssh", mode=0o700)
    assert d.is_dir()
    assert (d.stat().st_mode & 0o777) == 0o700


@pytest.mark.parametrize("content", ["a\n# END\nb", "# BEGIN\nx"])
def test_sync_block_refuses_content_containing_a_marker(tmp_path, content):
    rc = tmp_path / "rc"
    rc.write_text("keep\n", encoding="utf-8")

    with pytest.raises(ValueError):
        sync_block(rc, "# BEGIN", "# END", content)

    assert rc.read_text(encoding="utf-8") == "keep\n"

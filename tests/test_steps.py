from pathlib import Path

from debsetup.config import HostConfig
from debsetup.lib import identity
from debsetup.lib.context import contexts_for
from debsetup.step import ProbeResult
from debsetup.steps import step_40_homebrew
from debsetup.steps.step_40_homebrew import chown_targets


def test_chown_targets_never_reach_a_shared_parent():
    assert chown_targets(Path("/home/linuxbrew/.linuxbrew")) == [Path("/home/linuxbrew")]
    assert chown_targets(Path("/opt/homebrew")) == [Path("/opt/homebrew")]
    assert chown_targets(Path("/usr/local/homebrew")) == [Path("/usr/local/homebrew")]


def _homebrew_step(prefix):
    cfg = HostConfig(raw={"user": {"name": "dev"}, "homebrew": {"prefix": str(prefix)}})
    return step_40_homebrew.build(cfg, contexts_for("dev"))[0]


def test_unpacked_but_root_owned_homebrew_is_reclaimed(tmp_path, fake_inv, monkeypatch):
    prefix = tmp_path / "opt" / "homebrew"
    brew = prefix / "bin" / "brew"
    brew.parent.mkdir(parents=True)
    brew.write_text("#!/bin/sh\n", encoding="utf-8")
    brew.chmod(0o755)
    monkeypatch.setattr(identity, "user_exists", lambda name: True)
    monkeypatch.setattr(identity, "uid_of", lambda name: 4242)

    step = _homebrew_step(prefix)
    inv = fake_inv()

    assert step.name == "homebrew"
    assert step.probe(inv) is ProbeResult.DIVERGENT

    step.action(inv)

    assert inv.calls == [["chown", "-R", "dev:", str(prefix)]]

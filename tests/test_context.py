from types import SimpleNamespace

import pytest

from debsetup.errors import CommandError, PrivilegeError, ProbeError
from debsetup.lib import context
from debsetup.lib.command import CmdResult
from debsetup.lib.context import ExecutionContext, Invocation, ShellMode, contexts_for


def _account(name, uid, gid, home="/home/dev"):
    return SimpleNamespace(pw_name=name, pw_uid=uid, pw_gid=gid, pw_dir=home, pw_shell="/bin/bash")


@pytest.fixture
def fake_accounts(monkeypatch):
    accounts = {"root": _account("root", 0, 0, "/root"), "dev": _account("dev", 1000, 1000)}

    def getpwnam(name):
        return accounts[name]

    def getpwuid(uid):
        for acct in accounts.values():
            if acct.pw_uid == uid:
                return acct
        raise KeyError(uid)

    monkeypatch.setattr(context.pwd, "getpwnam", getpwnam)
    monkeypatch.setattr(context.pwd, "getpwuid", getpwuid)
    return accounts


def test_root_context_runs_argv_unchanged_as_root():
    assert ExecutionContext().command_argv(["apt-get", "update"], euid=0) == ["apt-get", "update"]


def test_root_context_requires_root():
    with pytest.raises(PrivilegeError):
        ExecutionContext().command_argv(["apt-get", "update"], euid=1000)


def test_user_context_switches_identity_from_root(fake_accounts):
    ctx = ExecutionContext("dev")
    assert ctx.command_argv(["git", "config", "--global", "core.pager", "delta"], euid=0) == [
        "runuser", "-u", "dev", "--", "git", "config", "--global", "core.pager", "delta",
    ]


def test_login_mode_wraps_in_login_shell(fake_accounts):
    ctx = ExecutionContext("dev", ShellMode.LOGIN)
    assert ctx.command_argv(["brew", "install", "git-delta"], euid=0) == [
        "runuser", "-u", "dev", "--", "bash", "-lc", "brew install git-delta",
    ]


def test_login_mode_quotes_arguments(fake_accounts):
    ctx = ExecutionContext("dev", ShellMode.LOGIN)
    argv = ctx.command_argv(["sh", "-c", "echo $HOME"], euid=1000)
    assert argv == ["bash", "-lc", "sh -c 'echo $HOME'"]


def test_user_context_as_same_user_needs_no_switch(fake_accounts):
    assert ExecutionContext("dev").command_argv(["true"], euid=1000) == ["true"]


def test_user_context_as_other_user_is_refused(fake_accounts):
    fake_accounts["eve"] = _account("eve", 1001, 1001)
    with pytest.raises(PrivilegeError):
        ExecutionContext("dev").command_argv(["true"], euid=1001)


def test_unknown_principal_is_a_privilege_error(fake_accounts):
    with pytest.raises(PrivilegeError):
        ExecutionContext("ghost").command_argv(["true"], euid=0)


def test_empty_command_is_rejected():
    with pytest.raises(ValueError):
        ExecutionContext().command_argv([], euid=0)


def test_owner_ids(fake_accounts, monkeypatch):
    monkeypatch.setattr(context.os, "geteuid", lambda: 0)
    assert ExecutionContext().owner_ids() is None
    assert ExecutionContext("dev").owner_ids() == (1000, 1000)

    monkeypatch.setattr(context.os, "geteuid", lambda: 1000)
    assert ExecutionContext("dev").owner_ids() is None


def test_contexts_for():
    ctx = contexts_for("dev")
    assert ctx.root.is_root
    assert ctx.user.principal == "dev" and ctx.user.shell_mode is ShellMode.NON_LOGIN
    assert ctx.user_login.label == "dev/login"


def test_invocation_passes_remaining_budget(monkeypatch):
    seen = {}

    def fake_run_cmd(argv, **kwargs):
        seen["argv"] = argv
        seen["timeout_s"] = kwargs["timeout_s"]
        return CmdResult(argv=list(argv), returncode=0, stdout="", stderr="")

    monkeypatch.setattr(context.os, "geteuid", lambda: 0)
    monkeypatch.setattr(context, "run_cmd", fake_run_cmd)

    Invocation.start(ExecutionContext(), 60).run(["apt-get", "update"])

    assert seen["argv"] == ["apt-get", "update"]
    assert 0 < seen["timeout_s"] <= 60

    Invocation.start(ExecutionContext(), None).run(["true"])
    assert seen["timeout_s"] is None


def test_inspect_turns_launch_failures_into_probe_errors(monkeypatch):
    def missing(argv, **kwargs):
        raise CommandError(argv, 127, message="Command not found: dpkg-query")

    monkeypatch.setattr(context.os, "geteuid", lambda: 0)
    monkeypatch.setattr(context, "run_cmd", missing)

    with pytest.raises(ProbeError):
        Invocation.start(ExecutionContext(), None).inspect(["dpkg-query", "-W", "git"])

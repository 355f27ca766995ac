import pytest

from debsetup import config
from debsetup.config import HostConfig, load_host_config, merge_config


@pytest.fixture
def no_host_file(tmp_path, monkeypatch):
    monkeypatch.delenv(config.CONFIG_PATH_ENV, raising=False)
    monkeypatch.setattr(config, "DEFAULT_HOST_CONFIG", str(tmp_path / "absent.yaml"))


def test_defaults_load_without_host_file(no_host_file):
    cfg = load_host_config()

    assert cfg.username == "dev"
    assert cfg.user_groups == ["sudo"]
    assert cfg.login_shell == "zsh"
    assert cfg.step_timeout_s == 3600.0
    assert "build-essential" in cfg.apt_packages
    assert cfg.git_settings == {"core.pager": "delta", "interactive.diffFilter": "delta --color-only"}
    assert cfg.i3_lines == ["bindsym $mod+Return exec alacritty", "exec --no-startup-id xset -b"]


def test_host_file_merges_one_level_deep(no_host_file, tmp_path, monkeypatch):
    host = tmp_path / "config.yaml"
    host.write_text("user:\n  name: alice\napt:\n  packages: [git]\nclion:\n  enabled: false\n", encoding="utf-8")
    monkeypatch.setenv(config.CONFIG_PATH_ENV, str(host))

    cfg = load_host_config()

    assert cfg.username == "alice"
    assert cfg.user_groups == ["sudo"]
    assert cfg.apt_packages == ["git"]
    assert cfg.apt_bootstrap == ["sudo"]
    assert cfg.section("clion")["enabled"] is False
    assert cfg.section("clion")["install_dir"] == "/opt"


def test_explicit_missing_file_is_an_error(no_host_file, tmp_path):
    with pytest.raises(FileNotFoundError):
        load_host_config(str(tmp_path / "missing.yaml"))


def test_host_file_must_be_a_mapping(no_host_file, tmp_path):
    host = tmp_path / "config.yaml"
    host.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_host_config(str(host))


def test_host_file_must_be_yaml(no_host_file, tmp_path):
    host = tmp_path / "config.json"
    host.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError):
        load_host_config(str(host))


@pytest.mark.parametrize("name", ["", "root"])
def test_username_must_be_a_regular_account(name):
    with pytest.raises(ValueError):
        HostConfig(raw={"user": {"name": name}}).username


def test_merge_config_replaces_scalars_and_lists():
    base = {"a": {"x": 1, "y": 2}, "b": [1, 2], "c": 1}
    merged = merge_config(base, {"a": {"y": 3}, "b": [9], "c": {"k": "v"}})

    assert merged == {"a": {"x": 1, "y": 3}, "b": [9], "c": {"k": "v"}}
    assert base == {"a": {"x": 1, "y": 2}, "b": [1, 2], "c": 1}


def test_missing_timeout_means_no_budget():
    assert HostConfig(raw={"defaults": {"step_timeout_s": 0}}).step_timeout_s is None

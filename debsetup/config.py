from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .lib.manifests import load_default_manifest

DEFAULT_HOST_CONFIG = "/etc/debsetup/config.yaml"
CONFIG_PATH_ENV = "DEBSETUP_CONFIG"


@dataclass(frozen=True)
class HostConfig:
    raw: Dict[str, Any]

    def section(self, name: str) -> Dict[str, Any]:
        return dict(self.raw.get(name) or {})

    @property
    def username(self) -> str:
        name = str(self.section("user").get("name") or "").strip()
        if not name or name == "root":
            raise ValueError("user.name must name a non-root account")
        return name

    @property
    def user_groups(self) -> List[str]:
        return [str(g) for g in (self.section("user").get("groups") or [])]

    @property
    def login_shell(self) -> str:
        return str(self.section("user").get("shell") or "zsh")

    @property
    def prompt_password(self) -> bool:
        return bool(self.section("user").get("prompt_password", True))

    @property
    def step_timeout_s(self) -> Optional[float]:
        v = self.section("defaults").get("step_timeout_s")
        return float(v) if v else None

    @property
    def apt_lists_max_age_s(self) -> float:
        return float(self.section("defaults").get("apt_lists_max_age_s") or 86400)

    @property
    def apt_bootstrap(self) -> List[str]:
        return [str(p) for p in (self.section("apt").get("bootstrap") or [])]

    @property
    def apt_packages(self) -> List[str]:
        return [str(p) for p in (self.section("apt").get("packages") or [])]

    @property
    def brew_prefix(self) -> str:
        return str(self.section("homebrew").get("prefix") or "/home/linuxbrew/.linuxbrew")

    @property
    def brew_packages(self) -> List[str]:
        return [str(p) for p in (self.section("homebrew").get("packages") or [])]

    @property
    def git_settings(self) -> Dict[str, str]:
        return {str(k): str(v) for k, v in (self.section("git").get("config") or {}).items()}

    @property
    def i3_lines(self) -> List[str]:
        return [str(x) for x in (self.section("i3").get("lines") or [])]


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Top-level mappings are merged one level deep; other values are replaced."""

    out = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            merged = dict(out[key])
            merged.update(value)
            out[key] = merged
        else:
            out[key] = value
    return out


def load_host_config(path: Optional[str] = None) -> HostConfig:
    """Load the shipped defaults, then merge the host file over them if present.

    An explicitly requested file ($DEBSETUP_CONFIG or `path`) must exist.
    """

    raw = load_default_manifest()

    explicit = path or os.environ.get(CONFIG_PATH_ENV)
    p = Path(explicit or DEFAULT_HOST_CONFIG)
    if not p.exists():
        if explicit:
            raise FileNotFoundError(str(p))
        return HostConfig(raw=raw)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("host config must be YAML")

    override = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(override, dict):
        raise ValueError(f"{p} must contain a mapping/object")

    return HostConfig(raw=merge_config(raw, override))

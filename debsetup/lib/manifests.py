from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml


def _manifests_dir() -> Path:
    # debsetup/lib/manifests.py -> debsetup/manifests
    return Path(__file__).resolve().parents[1] / "manifests"


def load_yaml_rel(rel_path: str) -> Dict[str, Any]:
    """Load a YAML file shipped in debsetup/manifests/."""

    p = _manifests_dir() / rel_path.lstrip("/")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {p}")
    return data


def load_default_manifest() -> Dict[str, Any]:
    return load_yaml_rel("default.yaml")

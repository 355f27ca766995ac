from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List

from ..config import HostConfig
from ..lib import probes
from ..lib.context import Contexts, Invocation
from ..step import Criticality, ProvisioningStep

logger = logging.getLogger(__name__)


def latest_download_url(releases_json: str) -> str:
    try:
        url = json.loads(releases_json)["CL"][0]["downloads"]["linux"]["link"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise RuntimeError("Could not find the CLion download URL in the release feed") from e
    if not url:
        raise RuntimeError("Release feed has an empty CLion download URL")
    return str(url)


def build(cfg: HostConfig, ctx: Contexts) -> List[ProvisioningStep]:
    section = cfg.section("clion")
    if not section.get("enabled", False):
        return []
    releases_url = str(section["releases_url"])
    install_dir = Path(str(section.get("install_dir") or "/opt"))
    link = Path(str(section.get("link") or "/usr/local/bin/clion"))

    def install(inv: Invocation) -> None:
        url = latest_download_url(inv.run(["curl", "-fsSL", releases_url]).stdout)
        logger.info("Downloading CLion from %s", url)
        work = tempfile.mkdtemp(prefix="debsetup-clion-")
        try:
            tarball = os.path.join(work, "clion.tar.gz")
            inv.run(["curl", "-fsSL", "-o", tarball, url])
            listing = inv.run(["tar", "-tzf", tarball]).stdout.splitlines()
            top = listing[0].split("/")[0] if listing else ""
            if not top:
                raise RuntimeError("CLion archive is empty")
            inv.run(["tar", "-xzf", tarball, "-C", str(install_dir)])
        finally:
            shutil.rmtree(work, ignore_errors=True)
        link.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(install_dir / top / "bin" / "clion.sh", link)
        logger.info("CLion linked at %s", link)

    return [
        ProvisioningStep(
            name="clion",
            description=f"CLion launcher at {link}",
            probe=probes.path_exists(link),
            action=install,
            context=ctx.root,
            criticality=Criticality.TOLERANT,
        )
    ]

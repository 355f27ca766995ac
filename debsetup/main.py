from __future__ import annotations

import argparse
import logging
import os
from typing import Optional

from .config import load_host_config
from .errors import PrivilegeError
from .logging_utils import configure_logging
from .pipeline import PipelineResult, run_pipeline
from .steps import build_steps

logger = logging.getLogger(__name__)


def require_root() -> None:
    if os.geteuid() != 0:
        raise PrivilegeError("debsetup must be run as root (sudo debsetup)")


def run() -> PipelineResult:
    """Converge this host once. Safe to run again at any time."""

    require_root()
    cfg = load_host_config()
    steps = build_steps(cfg)
    logger.info("Provisioning for user '%s' (%d steps)", cfg.username, len(steps))
    return run_pipeline(steps=steps)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="debsetup",
        description=(
            "Bring this Debian host to its configured state. Must run as root. "
            "Configuration is read from $DEBSETUP_CONFIG or /etc/debsetup/config.yaml."
        ),
    )
    p.parse_args(argv)

    configure_logging()
    try:
        result = run()
    except PrivilegeError as e:
        logger.error("%s", e)
        logger.error("FAIL: run aborted before the first step")
        return 1
    except Exception:
        logger.exception("debsetup failed")
        raise

    return 0 if result.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())

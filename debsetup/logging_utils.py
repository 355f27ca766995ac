from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

DEFAULT_LOG_PATH = "/var/log/debsetup.log"
LOG_PATH_ENV = "DEBSETUP_LOG"


def configure_logging(
    log_path: Optional[str] = None,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging for a run.

    Every probe decision and command goes to the log file. The file defaults
    to $DEBSETUP_LOG or /var/log/debsetup.log; if that cannot be opened we fall
    back to ./debsetup.log.

    The file always records DEBUG (command output included) so a failed run
    can be diagnosed afterwards; the console stays at `level` so an interactive
    run only shows step decisions and results.

    Returns the actual file path being used.
    """

    log_path = log_path or os.environ.get(LOG_PATH_ENV) or DEFAULT_LOG_PATH

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_debsetup_configured", False):
        return getattr(logger, "_debsetup_log_path", log_path)

    chosen_path = log_path
    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: Optional[logging.Handler] = None
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
    except OSError:
        chosen_path = str(Path.cwd() / "debsetup.log")
        file_handler = logging.FileHandler(chosen_path)
    # Command output is logged at DEBUG; keep it in the file only.
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(fmt)
        handlers.append(console)

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_debsetup_configured", True)
    setattr(logger, "_debsetup_log_path", chosen_path)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path

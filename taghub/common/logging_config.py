# taghub/common/logging_config.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class LogDefaults:
    level: int = logging.INFO
    fmt: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


DEFAULTS = LogDefaults()


def configure_logging(*, verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Console logging on the root logger, plus an optional file handler.
    Safe to call more than once.
    """
    root = logging.getLogger()
    level = logging.DEBUG if verbose else DEFAULTS.level

    if not any(getattr(h, "_taghub_console", False) for h in root.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter(DEFAULTS.fmt))
        sh._taghub_console = True  # type: ignore[attr-defined]
        root.addHandler(sh)

    root.setLevel(level)

    if log_file is not None:
        configure_file_logging(log_file)


def configure_file_logging(app_log_path: Path) -> None:
    """
    Add a file handler to the root logger (idempotent).
    """
    root = logging.getLogger()
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(app_log_path.resolve())

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(app_log_path, encoding="utf-8", delay=True)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(DEFAULTS.fmt))
    root.addHandler(fh)

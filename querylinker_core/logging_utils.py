"""Logging setup for the API process and the CLI entrypoints."""
from __future__ import annotations

import logging
from pathlib import Path

from querylinker_core.config import settings


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Configure the root logger once (console, plus a file when LOG_FILE is set)."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    level_name = (level or settings.LOG_LEVEL).upper()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    log_file = log_file or settings.LOG_FILE
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

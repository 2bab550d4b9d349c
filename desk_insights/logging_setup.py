"""Logging configuration for the service desk insights tools."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict

from rich.logging import RichHandler

from .config import resolve_path

FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(config: Dict[str, Any], *, base_dir: Path | None = None) -> None:
    """Configure logging sinks based on YAML configuration."""
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    logging_config = config.get("logging", {})
    console_cfg = logging_config.get("console", {})
    file_cfg = logging_config.get("file", {})

    if console_cfg.get("enabled", True):
        level = console_cfg.get("level", "INFO")
        if console_cfg.get("rich_format", True):
            handler: logging.Handler = RichHandler(level=level, rich_tracebacks=True)
            formatter = logging.Formatter("%(message)s")
        else:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(level)
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt=DATE_FORMAT,
            )
        handler.setFormatter(formatter)
        root.addHandler(handler)

    if file_cfg.get("enabled", True):
        file_path = resolve_path(file_cfg.get("path", "logs/desk_insights.log"), base=base_dir)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(file_path, mode="a", encoding="utf-8")
        handler.setLevel(file_cfg.get("level", "DEBUG"))
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)

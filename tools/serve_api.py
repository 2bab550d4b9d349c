#!/usr/bin/env python3
"""Run the issue insights web service."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable

BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = BASE_DIR / "config" / "config.yaml"
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from desk_insights.config import load_config  # type: ignore  # pylint: disable=import-error
from desk_insights.logging_setup import configure_logging  # type: ignore  # pylint: disable=import-error
from desk_insights.server import create_app  # type: ignore  # pylint: disable=import-error

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve /api/analyze and /api/issues over HTTP.")
    parser.add_argument(
        "--config",
        help=(
            "Path to configuration YAML file. Defaults to "
            f"{DEFAULT_CONFIG_PATH} or config/config.yaml if present."
        ),
    )
    parser.add_argument("--host", help="Interface to bind. Overrides server.host.")
    parser.add_argument("--port", type=int, help="Port to listen on. Overrides server.port.")
    parser.add_argument("--debug", action="store_true", help="Enable the Flask debugger and reloader.")
    return parser


def main(argv: Iterable[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(args.config)
    configure_logging(config, base_dir=BASE_DIR)

    server_cfg = config.get("server", {})
    host = args.host or server_cfg.get("host", "127.0.0.1")
    port = args.port or int(server_cfg.get("port", 5000))
    LOGGER.info("Starting issue insights service on %s:%s", host, port)
    create_app(config).run(host=host, port=port, debug=args.debug)


if __name__ == "__main__":
    main()

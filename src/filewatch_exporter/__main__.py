"""Command-line entry point for the file watch exporter."""
from __future__ import annotations

import argparse
import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import List, Optional

from .config import ConfigError, load_config
from .exporter import serve

DISTRIBUTION = "filewatch-exporter"


def package_version() -> str:
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return "development"


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Export file and directory state as Prometheus metrics")
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to the YAML configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version information and exit",
    )
    args = parser.parse_args(argv)

    if args.version:
        print(f"filewatch_exporter version {package_version()}")
        raise SystemExit(0)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    config_path = Path(args.config)
    logging.info("Using configuration file %s", config_path)
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        logging.error("%s", exc)
        raise SystemExit(2) from exc

    try:
        serve(config)
    except OSError as exc:
        logging.error("Unable to listen on %s: %s", config.server.listen_address, exc)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()

"""Command line entry point: ``deploy-agent --config PATH``."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

import structlog

from deploy_agent.core.config import DEFAULT_CONFIG_PATH, load_settings
from deploy_agent.core.exceptions import ConfigError
from deploy_agent.utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="deploy-agent", description="Deploy dashboard host agent")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to config file (JSON or YAML, default: {DEFAULT_CONFIG_PATH})",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    # Console output until the configured format is known
    setup_logging("INFO", "console")
    logger = structlog.get_logger()

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        logger.error("Failed to load config", path=args.config, error=str(exc), code=exc.code)
        sys.exit(1)

    from deploy_agent.main import run

    run(settings)


if __name__ == "__main__":
    main()

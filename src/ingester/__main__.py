"""Native ingester entry point. Use --help for usage."""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from config.collections import load_collections_config
from config.config import DEFAULT_CONFIG_FILE, IngesterConfig, load_config
from core.errors import ConfigurationError
from core.logging import log_exception, setup_logging
from core.utils import generate_worker_id
from ingester.app import IngesterApp
from ingester.common.metrics import start_metrics_server

# Project root directory (where .env file is located)
# __main__.py is at src/ingester/__main__.py, so root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ingest native content publication events into the native store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with the default config (src/config/config.yaml)
  python -m ingester

  # Custom config and routing file, plain console logs
  python -m ingester --config /etc/ingester.yaml --collections-config /etc/collections.json --no-json-logs
        """,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help="Path to config.yaml (default: src/config/config.yaml)",
    )
    parser.add_argument(
        "--collections-config",
        type=str,
        default=None,
        help="Path to the origin system to collection routing JSON (overrides native_writer.collections_config)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the health/ops endpoints (overrides app.port)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Console log level (overrides logging.level)",
    )
    parser.add_argument(
        "--log-to-stdout",
        action="store_true",
        help="Send all log output to stdout only, skipping file handlers",
    )
    parser.add_argument(
        "--no-json-logs",
        action="store_true",
        help="Human-readable logs instead of JSON",
    )
    return parser.parse_args(argv)


def apply_cli_overrides(config: IngesterConfig, args: argparse.Namespace) -> IngesterConfig:
    """Return ``config`` with any values given on the command line applied."""
    sections = {}
    if args.collections_config:
        sections["native_writer"] = replace(config.native_writer, collections_config=args.collections_config)
    if args.port is not None:
        sections["app"] = replace(config.app, port=args.port)

    log_overrides = {}
    if args.log_level:
        log_overrides["level"] = args.log_level
    if args.log_to_stdout:
        log_overrides["log_to_stdout"] = True
    if args.no_json_logs:
        log_overrides["json_format"] = False
    if log_overrides:
        sections["logging"] = replace(config.logging, **log_overrides)

    return config.with_overrides(**sections) if sections else config


def _setup_logging(config: IngesterConfig) -> None:
    log_config = config.logging
    setup_logging(
        name=config.app.name,
        stage="ingester",
        log_dir=Path(log_config.log_dir),
        json_format=log_config.json_format,
        console_level=getattr(logging, log_config.level, logging.INFO),
        worker_id=generate_worker_id(config.app.name),
        log_to_stdout=log_config.log_to_stdout,
    )


def main(argv: list[str] | None = None) -> int:
    global logger

    args = parse_args(argv)
    load_dotenv(PROJECT_ROOT / ".env")

    try:
        config = apply_cli_overrides(load_config(args.config), args)
    except ConfigurationError as e:
        setup_logging(log_to_stdout=True, json_format=not args.no_json_logs)
        logger = logging.getLogger(__name__)
        log_exception(logger, e, "Invalid configuration", include_traceback=False)
        return 1

    _setup_logging(config)
    logger = logging.getLogger(__name__)

    try:
        collections = load_collections_config(Path(config.native_writer.collections_config))
    except ConfigurationError as e:
        log_exception(logger, e, "Invalid collections configuration", include_traceback=False)
        return 1

    start_metrics_server(config.app.metrics_port)

    app = IngesterApp(config, collections)
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
    logger.info("Native ingester shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())

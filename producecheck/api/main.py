from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from .config_loader import load_config
from .server import create_app

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/producecheck.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the ProduceCheck API server",
        epilog=f"Configuration is loaded from {DEFAULT_CONFIG_PATH}. "
        "CLI arguments override config file settings.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to JSON configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--host", type=str, default=None, help="Override server host (default: from config file)"
    )
    parser.add_argument(
        "--port", type=int, default=None, help="Override server port (default: from config file)"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s"
        )
    args = build_parser().parse_args(argv)

    config_path = Path(args.config)
    try:
        cfg = load_config(config_path if config_path.exists() else None)
    except ValueError as exc:
        logger.error("Failed to load configuration: %s", exc)
        sys.exit(1)
    if not config_path.exists():
        logger.info("Configuration file %s not found; using defaults", config_path)

    if args.host:
        cfg.server.host = args.host
    if args.port:
        cfg.server.port = args.port

    logger.info("Server configuration: %s:%d", cfg.server.host, cfg.server.port)
    logger.info("State directory: %s", cfg.storage.state_dir)
    logger.info("Label file: %s", cfg.classifier.labels_path or "<defaults>")

    app = create_app(config=cfg)
    uvicorn.run(app, host=cfg.server.host, port=cfg.server.port)


if __name__ == "__main__":
    main()

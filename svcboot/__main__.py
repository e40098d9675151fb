"""
Command-line entrypoint: boot the app and serve it until SIGINT/SIGTERM.

    python -m svcboot --port 9100 --log-format console
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from svcboot.app import init_app
from svcboot.config import ConfigError, load_config
from svcboot.lifecycle import LifecycleError
from svcboot.observability.logging import LOG_FORMATS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="svcboot",
        description="Serve the metrics endpoint with graceful shutdown on SIGINT/SIGTERM.",
    )
    parser.add_argument("--config", help="Path to a svcboot.toml file")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="dotenv file loaded into the environment before configuration (default: .env)",
    )
    parser.add_argument("--host", help="Interface to bind")
    parser.add_argument("--port", type=int, help="Listening port (0 for ephemeral)")
    parser.add_argument(
        "--shutdown-timeout",
        type=float,
        help="Seconds allowed for graceful shutdown",
    )
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    parser.add_argument("--log-format", choices=LOG_FORMATS, help="Log renderer")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run the service and return a process exit code.

    Returns:
        0 on graceful shutdown, 1 on configuration or lifecycle errors
    """
    args = build_parser().parse_args(argv)
    load_dotenv(args.env_file, override=False)

    try:
        config = load_config(
            args.config,
            host=args.host,
            port=args.port,
            shutdown_timeout=args.shutdown_timeout,
            log_level=args.log_level,
            log_format=args.log_format,
        )
    except ConfigError as exc:
        print(f"svcboot: {exc}", file=sys.stderr)
        return 1

    app = init_app(config)
    try:
        app.run_server_with_graceful_shutdown()
    except LifecycleError as exc:
        app.logger.error("service_exited_with_error", error=str(exc))
        app.sync()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""
Server script for running the karma SSO session API.
"""

import argparse
import logging
import os

import uvicorn

from karma_sso.config.loader import get_bool_env

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the karma SSO session API server")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload (default: False)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Host to bind the server to (default: localhost)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind the server to (default: 8000)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging for the session package (default: False)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )
    args = parser.parse_args()

    if args.debug or args.log_level == "debug" or get_bool_env("KARMA_SSO_DEBUG", False):
        # reload workers are fresh processes and only see the environment
        os.environ["KARMA_SSO_DEBUG"] = "true"
        logging.getLogger("karma_sso").setLevel(logging.DEBUG)

    logger.info("Starting karma SSO session API server on %s:%s", args.host, args.port)
    try:
        uvicorn.run(
            "karma_sso.app:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level,
        )
    except Exception as e:
        logger.error("Failed to start server: %s", e)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()

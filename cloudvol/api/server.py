"""
Uvicorn server entrypoint for the cloudvol volume plugin.
"""

from __future__ import annotations

import argparse
import logging
import os

import uvicorn

from cloudvol.api.main import app
from cloudvol.cli.lib.config import load_config
from cloudvol.driver.exceptions import CloudvolException
from cloudvol.driver.factory import DRIVERS, create_driver

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cloudvol-plugin", description="cloudvol Docker volume plugin")
    parser.add_argument("--driver", choices=DRIVERS, default=None, help="Storage driver (default: from config or gce)")
    parser.add_argument("--host", default=None, help="Bind host (default: from config or 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Bind port, ignored with --sock (default: 8080)")
    parser.add_argument("--sock", action="store_true", help="Listen on the plugin unix socket instead of TCP")
    parser.add_argument("--log-level", default="info", help="Log level (default: info)")
    return parser


def main(argv: list[str] | None = None) -> int:
    cfg = load_config()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("*** STARTED cloudvol volume driver (pid=%s) ***", os.getpid())

    try:
        app.state.driver = create_driver(cfg, args.driver)
    except (CloudvolException, ValueError) as e:
        logger.error("Stopping due to driver setup error: %s", e)
        return 1

    if args.sock:
        socket_dir = os.path.dirname(cfg.socket_path)
        if socket_dir:
            os.makedirs(socket_dir, exist_ok=True)
        logger.info("Listening on socket file %s", cfg.socket_path)
        uvicorn.run(app, uds=cfg.socket_path, log_level=args.log_level)
    else:
        host = args.host or cfg.api_host
        port = args.port or cfg.api_port
        logger.info("Listening on %s:%d", host, port)
        uvicorn.run(app, host=host, port=port, log_level=args.log_level)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

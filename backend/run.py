#!/usr/bin/env python3
"""
Docs Preview Server Runner

Serves the pre-built documentation site on a local port.

Usage:
    python run.py                      # http://127.0.0.1:8000/docs/
    python run.py --port 9000
    python run.py --site-dir path/to/site
"""

import argparse
import socket
import sys
from pathlib import Path

import uvicorn
from loguru import logger

from core.config import Settings, settings
from core.errors import BindError
from main import configure_logging, create_app


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Serve the pre-built documentation site for local preview.")
    parser.add_argument("--host", help=f"Interface to listen on (default: {settings.HOST})")
    parser.add_argument("--port", type=int, help=f"Port to listen on (default: {settings.PORT})")
    parser.add_argument("--site-dir", type=Path, help="Directory of the built site")
    parser.add_argument("--assets-dir", type=Path, help="Directory mounted under the assets path (default: site dir)")
    parser.add_argument("--log-level", help=f"Log level (default: {settings.LOG_LEVEL})")
    return parser.parse_args(argv)


def settings_from_args(args, base: Settings = settings) -> Settings:
    """Return a copy of the base settings with the given command line flags applied."""
    overrides = {
        "HOST": args.host,
        "PORT": args.port,
        "SITE_DIR": args.site_dir,
        "ASSETS_DIR": args.assets_dir,
        "LOG_LEVEL": args.log_level,
    }
    return base.model_copy(update={key: value for key, value in overrides.items() if value is not None})


def format_url(host: str, port: int, path: str = "/") -> str:
    """Build a browsable URL, bracketing IPv6 literals."""
    if ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{port}{path}"


def bind_listener(settings: Settings) -> socket.socket:
    """
    Bind and listen on the configured address.

    Raises:
        BindError: If the port is taken or cannot be bound
    """
    family = socket.AF_INET6 if ":" in settings.HOST else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    try:
        sock.bind((settings.HOST, settings.PORT))
        sock.listen()
    except OSError as e:
        sock.close()
        raise BindError(settings.HOST, settings.PORT, e.strerror or str(e)) from e

    return sock


def main(argv=None):
    """Main entry point for the preview server."""
    settings = settings_from_args(parse_args(argv))
    configure_logging(settings)

    try:
        sock = bind_listener(settings)
    except BindError as e:
        logger.error(f"Server failed to start: {e}")
        sys.exit(1)

    host, port = sock.getsockname()[:2]
    print(f"Serving {settings.site_root} at {format_url(host, port, settings.INDEX_PATH)}", flush=True)

    config = uvicorn.Config(
        create_app(settings),
        log_level=settings.LOG_LEVEL.lower(),
        access_log=settings.ACCESS_LOG,
    )
    server = uvicorn.Server(config)

    try:
        server.run(sockets=[sock])
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    finally:
        sock.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env -S uv run --script

import argparse
import contextlib
import logging

import uvicorn

from wiki.bus.http import create_bus_app
from wiki.bus.local import LocalBus
from wiki.config import Config
from wiki.db.deployment import WikiDbDeployment
from wiki.setup import setup_logging

logger = logging.getLogger("wiki.serve")


def create_app(config: Config):
    """
    Create the FastAPI app that serves the page store bus.

    The store is deployed in the app lifespan, before the first request is
    accepted, and the health endpoint reports ready only after that.
    """
    bus = LocalBus()
    deployment = WikiDbDeployment(bus, config)

    @contextlib.asynccontextmanager
    async def lifespan(app):
        await deployment.start()
        try:
            yield
        finally:
            await deployment.stop()
            await bus.close()

    return create_bus_app(bus, ready=lambda: deployment.ready, lifespan=lifespan)


def parse_args():
    """
    Parse the arguments.
    """
    parser = argparse.ArgumentParser(
        description="Serve the wiki page store over HTTP."
    )
    parser.add_argument(
        "--config",
        help="Path to the config file",
        default=None,
    )
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument("--log-level", default="info", help="Log level, debug when the config sets debug")
    return parser.parse_args()


def get_log_level(config: Config, requested: str) -> str:
    """
    The log level name to run with. `debug: true` in the config wins.
    """
    return "debug" if config.debug else requested


def main():
    opts = parse_args()
    config = Config.read(opts.config) if opts.config else Config()
    log_level = get_log_level(config, opts.log_level)
    setup_logging(getattr(logging, log_level.upper(), logging.INFO))

    host = opts.host or config.server.host
    port = opts.port or config.server.port
    logger.info("Starting page store on %s:%s", host, port)

    uvicorn.run(create_app(config), host=host, port=port, log_level=log_level)


if __name__ == "__main__":
    main()

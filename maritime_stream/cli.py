"""Command line entry points: run the stream server or watch one."""

import argparse
import asyncio
import logging
import sys

from .client import ConnectionManager
from .config import DEFAULT_PORT, StreamConfig, setup_logging
from .server import DistributionServer

logger = logging.getLogger("maritime_stream")


def summarize(envelope):
    """One-line description of an envelope for the watch log."""
    data = envelope.payload
    size = f"{len(data)} records" if isinstance(data, list) else "snapshot"
    return f"{envelope.category.value} ({size}) at {envelope.generated_at}"


async def serve(config):
    server = DistributionServer(config)
    await server.run_forever()


async def watch(url, config):
    manager = ConnectionManager(url, config)
    manager.on_message(lambda envelope: logger.info("Received %s", summarize(envelope)))
    manager.on_status(lambda status: logger.info("Connection %s", status.value))
    await manager.run()


def build_parser():
    ap = argparse.ArgumentParser(prog="maritime-stream", description="Maritime telemetry WebSocket stream")
    ap.add_argument("--log-level", default=None, help="Logging level (default: $LOG_LEVEL or INFO)")
    sub = ap.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("serve", help="Run the telemetry push server")
    sp.add_argument("--host", default=None, help="Listen address (default: $HOST or 0.0.0.0)")
    sp.add_argument("--port", type=int, default=None, help=f"Listen port (default: $PORT or {DEFAULT_PORT})")
    sp.add_argument("--interval", type=float, default=None, help="Seconds between periodic pushes")
    sp.add_argument("--seed", type=int, default=None, help="Seed for reproducible telemetry")

    wp = sub.add_parser("watch", help="Connect to a server and log what it pushes")
    wp.add_argument("--url", default=f"ws://localhost:{DEFAULT_PORT}", help="Server URL")
    return ap


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        if args.command == "serve":
            config = StreamConfig.from_env(
                host=args.host, port=args.port, push_interval=args.interval,
                seed=args.seed, log_level=args.log_level,
            )
        else:
            config = StreamConfig.from_env(log_level=args.log_level)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    setup_logging(config.log_level)

    try:
        if args.command == "serve":
            asyncio.run(serve(config))
        else:
            asyncio.run(watch(args.url, config))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except OSError as e:
        logger.error("Could not start server: %s", e)
        return 1
    return 0

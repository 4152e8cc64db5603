"""
Main entry point for crescent-dashboard.

Starts one refresh thread per data domain and serves the snapshot on
/metrics until interrupted.

Usage:
    crescent-dashboard NODE_ADDRESS API_BASE_URL [--insecure] [--port N]
                       [--address ADDR ...] [--config PATH]
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from crescent_dashboard.collector.exporter import serve_metrics
from crescent_dashboard.collector.refresh import Refresher, build_refresh_tasks
from crescent_dashboard.connectors.node_client import NodeClient
from crescent_dashboard.connectors.price_feed import PriceFeedClient
from crescent_dashboard.core.config import Config, ExporterSettings
from crescent_dashboard.core.errors import FetchError
from crescent_dashboard.core.scheduler import Scheduler
from crescent_dashboard.core.store import SnapshotStore


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="crescent-dashboard",
        description="Export Crescent liquidity, liquid staking and balance state as Prometheus metrics",
    )
    parser.add_argument("node_address", nargs="?", help="Node REST gateway address (host:port or URL)")
    parser.add_argument("api_base_url", nargs="?", help="Price feed API base URL")
    parser.add_argument("--insecure", action="store_true", default=None,
                        help="Use plain HTTP for the node instead of TLS")
    parser.add_argument("--port", type=int, dest="listen_port", help="Metrics listen port (default: 2112)")
    parser.add_argument("--address", action="append", dest="tracked_addresses",
                        help="Address whose balances are exported (repeatable)")
    parser.add_argument("--config", type=Path, help="YAML settings file")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> ExporterSettings:
    """Resolve effective settings: CLI arguments over --config file (or Config)."""
    overrides = {
        "node_address": args.node_address,
        "price_api_base_url": args.api_base_url,
        "insecure": args.insecure,
        "listen_port": args.listen_port,
        "tracked_addresses": args.tracked_addresses,
    }

    if args.config is None:
        return ExporterSettings.from_config(**overrides)

    settings = ExporterSettings.load(args.config)
    for name, value in overrides.items():
        if value is not None:
            setattr(settings, name, value)
    return settings


def setup_logging() -> None:
    logger.remove()
    logger.add(
        Config.LOG_FILE,
        rotation="10 MB",
        level=Config.LOG_LEVEL,
    )
    logger.add(
        sys.stderr,
        level=Config.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
               "<cyan>{extra[context]}</cyan> | <level>{message}</level>",
    )
    logger.configure(extra={"context": "main"})


def run(settings: ExporterSettings) -> int:
    """
    Start the service and block until interrupted.

    Returns:
        Process exit status
    """
    errors = settings.validate()
    if errors:
        for error in errors:
            logger.error(f"Invalid configuration: {error}")
        return 1

    logger.info(f"Starting crescent-dashboard: {settings.describe()}")

    try:
        node = NodeClient(settings.node_address, insecure=settings.insecure, timeout=settings.request_timeout)
        price_feed = PriceFeedClient(settings.price_api_base_url, timeout=settings.request_timeout)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    try:
        node.check_connection()
    except FetchError as e:
        logger.error(f"Failed to connect to node: {e}")
        node.close()
        return 1

    store = SnapshotStore()
    refresher = Refresher(store, node, price_feed, settings.tracked_addresses)

    scheduler = Scheduler()
    for task in build_refresh_tasks(refresher, settings.intervals):
        scheduler.add_task(task.name, task.interval, task.run_once)

    try:
        serve_metrics(store, settings.listen_port)
    except OSError as e:
        logger.error(f"Failed to serve metrics on port {settings.listen_port}: {e}")
        node.close()
        return 1

    scheduler.start()

    try:
        scheduler.wait()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        scheduler.stop(timeout=settings.request_timeout)
        node.close()
        price_feed.close()

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Console script entry point."""
    args = parse_args(argv)
    setup_logging()
    return run(build_settings(args))


if __name__ == "__main__":
    sys.exit(main())

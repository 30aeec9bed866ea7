"""Main entry point for the remote write forwarder."""
import argparse
import logging
import signal
import sys
import threading

from promforward.config import load_config
from promforward.control_api import ControlAPI
from promforward.scheduler import ForwarderScheduler


def setup_logging(log_level: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Reduce noise from some libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main(argv=None):
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Scrape local Prometheus metrics and forward them via remote write"
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Path to configuration YAML file (remote write settings may come from the environment)"
    )

    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(config.global_.log_level)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("Prometheus Remote Write Forwarder")
    logger.info("=" * 60)
    if args.config:
        logger.info(f"Configuration loaded from: {args.config}")
    logger.info(f"Tick interval: {config.global_.tick_interval_s}s")
    logger.info(f"Node name: {config.global_.node_name}")

    scheduler = ForwarderScheduler.from_config(config)

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        scheduler.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if not config.control_api.enabled:
        scheduler.run()
        return

    # Start scheduler in separate thread
    scheduler_thread = threading.Thread(target=scheduler.run, name="forwarder", daemon=True)
    scheduler_thread.start()

    control_api = ControlAPI(scheduler)

    # Run control API (blocking)
    logger.info(f"Starting control API on port {config.global_.control_api_port}")
    try:
        control_api.run(
            host=config.control_api.bind_address,
            port=config.global_.control_api_port
        )
    except Exception as e:
        logger.error(f"Control API error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        scheduler.stop()
        scheduler_thread.join(timeout=config.global_.tick_interval_s)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
drone-pilot server - Entry Point

Runs the simulated drone's tick loop and exposes it over the websocket
bridge and the REST API.
"""

import argparse
import signal
import sys
import time
import logging

from ..config import Config, set_config
from ..drone import Drone
from ..bridge.ws_bridge import DroneWsBridge
from ..utils.logger import setup_logging, FlightDataLogger

# Global instances for signal handling
_drone: Drone = None
_bridge: DroneWsBridge = None
_api_server = None


def shutdown():
    """Stop every running component"""
    global _drone, _bridge, _api_server

    if _bridge:
        _bridge.stop()
        _bridge = None

    if _api_server:
        _api_server.stop()
        _api_server = None

    if _drone:
        with _drone.lock:
            if _drone.control.is_active():
                logging.warning("Cancelling active commands on shutdown...")
            _drone.control.cancel()
        _drone.stop()
        if _drone.data_logger:
            _drone.data_logger.stop()
        _drone = None


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully"""
    logging.info(f"Received signal {signum}, shutting down...")
    shutdown()
    sys.exit(0)


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="drone-pilot simulation server",
        prog="dronepilot-server"
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to configuration file (YAML)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="REST API port (default: from config, 8080)"
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="REST API host (default: from config, 0.0.0.0)"
    )

    parser.add_argument(
        "--ws-url",
        type=str,
        default=None,
        help="Remote-control websocket server (default: ws://localhost:8765)"
    )

    parser.add_argument(
        "--no-bridge",
        action="store_true",
        help="Do not connect the websocket bridge"
    )

    parser.add_argument(
        "--no-api",
        action="store_true",
        help="Do not start the REST API"
    )

    parser.add_argument(
        "--record",
        action="store_true",
        help="Write a per-tick CSV flight log"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Log file path"
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for dronepilot-server"""
    global _drone, _bridge, _api_server

    args = parse_args(argv)

    # Load configuration
    config = Config.load(args.config)

    # Override config from command line
    if args.port is not None:
        config.interface.rest_port = args.port
    if args.host is not None:
        config.interface.rest_host = args.host
    if args.ws_url:
        config.bridge.url = args.ws_url
    if args.no_bridge:
        config.bridge.enabled = False
    if args.no_api:
        config.interface.rest_enabled = False
    if args.log_file:
        config.interface.log_file = args.log_file

    set_config(config)

    # Setup logging
    if args.verbose:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, config.interface.log_level.upper(), logging.INFO)
    setup_logging(level=log_level, log_file=config.interface.log_file or None)

    logger = logging.getLogger(__name__)
    logger.info("drone-pilot server starting...")

    # Setup signal handlers
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    data_logger = None
    if args.record:
        data_logger = FlightDataLogger(config.interface.data_log_dir)
        data_logger.start()

    _drone = Drone(config, data_logger=data_logger)

    # Start REST API
    if config.interface.rest_enabled:
        from .api import create_api_server
        try:
            _api_server = create_api_server(
                _drone,
                port=config.interface.rest_port,
                host=config.interface.rest_host,
                command_timeout_s=config.bridge.command_timeout_s,
            )
        except OSError as e:
            logger.error(f"Failed to start REST API: {e}")
            sys.exit(1)

    # Start websocket bridge
    if config.bridge.enabled:
        _bridge = DroneWsBridge(_drone, config.bridge)
        _bridge.start()

    # Start tick loop
    _drone.start()

    logger.info("Server running. Press Ctrl+C to stop.")

    # Main loop - keep alive
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        logger.info("Shutting down...")
        shutdown()


if __name__ == "__main__":
    main()

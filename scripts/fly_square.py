#!/usr/bin/env python3
"""
Fly a square with the high-level API

Runs headless on the simulated vehicle: take off to 1 m, visit the four
corners of a 1 m square, return to the origin and land.

Usage:
    python scripts/fly_square.py [options]

Options:
    --mission       Run the square as one mission instead of step by step
    --size S        Square side in meters (default: 1.0)
    --altitude A    Flight altitude in meters (default: 1.0)
    --realtime      Use the threaded tick loop instead of fixed stepping
"""

import argparse
import logging
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dronepilot.config import Config
from dronepilot.control.outcome import Outcome
from dronepilot.control.types import MotionInstruction
from dronepilot.drone import Drone
from dronepilot.mission import create_full_mission
from dronepilot.utils.logger import setup_logging

logger = logging.getLogger("fly_square")

# Simulated seconds before giving up on one step
STEP_LIMIT_S = 120.0


def square_points(size: float):
    h = size / 2.0
    return [
        {"x": h, "z": h},
        {"x": h, "z": -h},
        {"x": -h, "z": -h},
        {"x": -h, "z": h},
        {"x": 0.0, "z": 0.0},   # back to origin
    ]


def run_until_settled(drone: Drone, outcome: Outcome, realtime: bool):
    """Tick until the outcome settles, then return its value"""
    if realtime:
        return outcome.result(timeout=STEP_LIMIT_S)

    dt = 1.0 / drone.config.simulation.update_rate_hz
    elapsed = 0.0
    while not outcome.done() and elapsed < STEP_LIMIT_S:
        drone.update(dt)
        elapsed += dt
    return outcome.result(timeout=0)


def fly_step_by_step(drone: Drone, points, altitude: float, realtime: bool):
    with drone.lock:
        takeoff = drone.control.take_off(altitude)
    result = run_until_settled(drone, takeoff, realtime)
    logger.info(f"Take-off complete at {result['altitude']:.2f} m")

    # Manual input is ignored while the controller is flying
    accepted = drone.apply_external(MotionInstruction(False, 0.0, 0.2, altitude), source="manual")
    logger.info(f"Manual instruction accepted: {accepted}")

    for i, point in enumerate(points):
        logger.info(f"Flying to waypoint {i + 1}: ({point['x']}, {point['z']})")
        with drone.lock:
            move = drone.control.move_to(point)
        result = run_until_settled(drone, move, realtime)
        pos = result["position"]
        logger.info(f"  arrived at ({pos['x']:.2f}, {pos['y']:.2f}, {pos['z']:.2f})")

    with drone.lock:
        land = drone.control.land()
    run_until_settled(drone, land, realtime)
    logger.info("Mission complete, landed")


def fly_as_mission(drone: Drone, points, altitude: float, realtime: bool):
    def on_progress(current, total, waypoint):
        logger.info(f"Waypoint {current + 1}/{total}: {waypoint.type.value}")

    waypoints = create_full_mission(points, flight_altitude=altitude)
    mission = drone.run_mission(waypoints, on_progress=on_progress)
    report = run_until_settled(drone, mission.outcome, realtime)
    logger.info(
        f"Mission complete: {report['waypointsCompleted']}/{report['waypointsTotal']} "
        f"waypoints in {report['duration'] / 1000.0:.1f}s"
    )


def main():
    parser = argparse.ArgumentParser(description="Fly a square on the simulated drone")
    parser.add_argument("--mission", action="store_true", help="Run as a single mission")
    parser.add_argument("--size", type=float, default=1.0, help="Square side (m)")
    parser.add_argument("--altitude", type=float, default=1.0, help="Flight altitude (m)")
    parser.add_argument("--realtime", action="store_true", help="Use the threaded tick loop")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    config = Config.load()
    drone = Drone(config)
    if args.realtime:
        drone.start()

    try:
        points = square_points(args.size)
        if args.mission:
            fly_as_mission(drone, points, args.altitude, args.realtime)
        else:
            fly_step_by_step(drone, points, args.altitude, args.realtime)
    except Exception as e:
        logger.error(f"Flight failed: {e}")
        return 1
    finally:
        if args.realtime:
            drone.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())

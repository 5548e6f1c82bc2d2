"""
Pytest configuration and fixtures
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dronepilot.config import Config
from dronepilot.control.controller import DroneControl
from dronepilot.drone import Drone
from dronepilot.vehicle.simulated import SimulatedVehicle

# Tick length used by the tests (50 Hz)
DT = 0.02


class FakeClock:
    """Manually advanced monotonic clock (seconds)"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_clock():
    """Fixture for a manually advanced clock"""
    return FakeClock()


@pytest.fixture
def config():
    """Fixture for default configuration (no YAML, no environment)"""
    return Config()


@pytest.fixture
def vehicle(config):
    """Fixture for a simulated vehicle resting on the ground"""
    return SimulatedVehicle(config.simulation)


@pytest.fixture
def control(vehicle, config, fake_clock):
    """Fixture for a controller driving the vehicle"""
    return DroneControl(vehicle, defaults=config.command, clock=fake_clock)


@pytest.fixture
def drone(config, fake_clock):
    """Fixture for a drone host stepped manually"""
    return Drone(config, clock=fake_clock)


@pytest.fixture
def step_control(control, vehicle, fake_clock):
    """Fixture returning step(n): run n controller ticks with vehicle motion"""
    def step(n: int = 1, dt: float = DT):
        active = False
        for _ in range(n):
            fake_clock.advance(dt)
            active = control.update(dt)
            vehicle.update(dt)
        return active
    return step


@pytest.fixture
def run_until(fake_clock):
    """
    Fixture returning run_until(drone, outcome): tick the drone until the
    outcome settles; returns the number of ticks taken
    """
    def run(drone, outcome, max_ticks: int = 5000, dt: float = DT):
        for i in range(max_ticks):
            if outcome.done():
                return i
            fake_clock.advance(dt)
            drone.update(dt)
        raise AssertionError(f"{outcome!r} not settled after {max_ticks} ticks")
    return run


@pytest.fixture
def running_drone(config):
    """Fixture for a drone with its real-time tick loop running"""
    drone = Drone(config)
    drone.start()
    yield drone
    drone.stop()

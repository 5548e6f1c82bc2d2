"""
Tests for the Drone host, its tick loop and flight data logging
"""

import time

import pytest

from dronepilot.control.types import MotionInstruction
from dronepilot.drone import Drone
from dronepilot.errors import MissionCancelled, ValidationError
from dronepilot.mission import MissionState
from dronepilot.utils.logger import FlightDataLogger


class TestDroneHost:
    """Test tick ordering and motion sources"""

    def test_update_reports_activity(self, drone):
        assert drone.update(0.02) is False

        with drone.lock:
            drone.control.take_off(1.0)
        assert drone.update(0.02) is True
        assert drone.vehicle.position.y > 0.05

    def test_external_input_only_when_idle(self, drone, run_until):
        manual = MotionInstruction(hover=False, angle=0.0, speed=0.2, altitude=0.05)
        assert drone.apply_external(manual, source="keyboard") is True

        with drone.lock:
            outcome = drone.control.take_off(0.5)
        drone.update(0.02)
        assert drone.is_controller_active()
        assert drone.apply_external(manual, source="keyboard") is False

        run_until(drone, outcome)
        # Active until the first idle tick
        assert drone.is_controller_active()
        drone.update(0.02)
        assert not drone.is_controller_active()
        assert drone.apply_external(manual, source="keyboard") is True

    def test_get_state(self, drone):
        state = drone.get_state().to_dict()
        assert state["position"] == {"x": 0.0, "y": 0.05, "z": 0.0}
        assert state["state"] == "idle"
        assert state["isActive"] is False
        assert state["headingRad"] == 0.0


class TestDroneMissions:
    """Test mission management on the host"""

    def test_run_mission_replaces_previous(self, drone):
        first = drone.run_mission([{"type": "takeOff", "altitude": 1.0}])
        drone.update(0.02)

        second = drone.run_mission([{"type": "hover", "durationMs": 0}])

        assert first.state == MissionState.CANCELLED
        assert isinstance(first.outcome.exception(timeout=0), MissionCancelled)
        assert drone.active_mission is second

    def test_finished_missions_pruned(self, drone, run_until):
        mission = drone.run_mission([{"type": "hover", "durationMs": 0}])
        run_until(drone, mission.outcome)
        drone.update(0.02)

        assert drone.missions == []
        assert drone.active_mission is None

    def test_wire_options(self, drone):
        mission = drone.run_mission([], {"continueOnError": True, "timeoutMs": 5000})
        assert mission.continue_on_error is True
        assert mission.timeout_ms == 5000.0
        assert mission.hover_duration_ms == 1000.0

    def test_invalid_waypoints(self, drone):
        with pytest.raises(ValidationError, match="waypoints must be an array"):
            drone.run_mission("not a list")


class TestTickLoop:
    """Test the threaded tick loop"""

    def test_start_stop(self, config):
        drone = Drone(config)
        drone.start()
        try:
            assert drone.is_running
            with drone.lock:
                outcome = drone.control.hover()
            assert outcome.result(timeout=2.0)["position"]["y"] == pytest.approx(0.05)
        finally:
            drone.stop()
        assert not drone.is_running

    def test_start_twice_is_noop(self, running_drone):
        thread = running_drone._loop_thread
        running_drone.start()
        assert running_drone._loop_thread is thread


class TestFlightDataLogger:
    """Test per-tick CSV logging"""

    def test_logs_each_tick(self, config, fake_clock, tmp_path):
        data_logger = FlightDataLogger(tmp_path)
        path = data_logger.start("unit test")
        drone = Drone(config, clock=fake_clock, data_logger=data_logger)

        with drone.lock:
            drone.control.take_off(1.0)
        for _ in range(3):
            drone.update(0.02)
        data_logger.stop()

        lines = path.read_text().splitlines()
        assert path.name.endswith("_unit_test.csv")
        assert lines[2] == ",".join(FlightDataLogger.COLUMNS)

        rows = [line for line in lines if not line.startswith("#")][1:]
        assert len(rows) == 3
        fields = rows[0].split(",")
        assert fields[2] == "running"
        assert fields[3] == "take_off"
        assert fields[-1] == "1.0000"
        assert lines[-1] == "# Total ticks: 3"

    def test_not_logging_until_started(self, tmp_path):
        data_logger = FlightDataLogger(tmp_path)
        assert not data_logger.is_logging
        data_logger.stop()
        assert list(tmp_path.iterdir()) == []

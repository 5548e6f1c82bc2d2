"""
Tests for individual commands

Commands are driven directly with hand-built snapshots, without a
controller or vehicle.
"""

import math

import pytest

from dronepilot.config import CommandConfig
from dronepilot.control.commands import (
    CommandState,
    CommandType,
    HoverCommand,
    LandCommand,
    MoveToCommand,
    RotateYawCommand,
    TakeOffCommand,
)
from dronepilot.control.types import (
    CommandOptions,
    ControllerState,
    DroneStateSnapshot,
    MotionInstruction,
    Vec3,
)
from dronepilot.errors import CommandCancelled, CommandTimeout

DT = 0.02


def snapshot(x=0.0, y=0.05, z=0.0, heading=0.0):
    return DroneStateSnapshot(
        position=Vec3(x, y, z),
        heading=heading,
        is_active=True,
        queue_length=0,
        controller_state=ControllerState.RUNNING,
    )


class TestMotionInstruction:
    """Test instruction invariants"""

    def test_hold(self):
        instr = MotionInstruction.hold(1.2)
        assert instr.hover is True
        assert instr.speed == 0
        assert instr.altitude == 1.2

    def test_negative_speed_rejected(self):
        with pytest.raises(ValueError):
            MotionInstruction(hover=False, angle=0.0, speed=-0.1, altitude=1.0)

    def test_missing_altitude_rejected(self):
        with pytest.raises(ValueError):
            MotionInstruction(hover=True, angle=0.0, speed=0.0, altitude=None)

    def test_from_dict(self):
        instr = MotionInstruction.from_dict({"hover": False, "angle": 0.5, "speed": 0.1, "altitude": 1})
        assert instr.to_dict() == {"hover": False, "angle": 0.5, "speed": 0.1, "altitude": 1.0}


class TestCommandOptions:
    """Test option parsing"""

    def test_wire_and_python_names(self):
        opts = CommandOptions.from_dict({"maxSpeed": 0.3, "position_tolerance": 0.1})
        assert opts.max_speed == 0.3
        assert opts.position_tolerance == 0.1
        assert opts.timeout_ms is None

    def test_unknown_keys_ignored(self):
        opts = CommandOptions.from_dict({"color": "red", "timeoutMs": 500})
        assert opts.timeout_ms == 500.0

    def test_defaults_fill_unset(self):
        cmd = MoveToCommand({"x": 1, "z": 1}, {"maxSpeed": 0.5})
        assert cmd.max_speed == 0.5
        assert cmd.min_speed == CommandConfig().min_speed
        assert cmd.timeout_ms == 30000.0


class TestHover:
    """Test HoverCommand"""

    def test_completes_on_start(self):
        cmd = HoverCommand()
        cmd.start(snapshot(y=0.7))

        assert cmd.state == CommandState.COMPLETED
        assert cmd.outcome.result(timeout=0) == {"position": {"x": 0.0, "y": 0.7, "z": 0.0}}

    def test_holds_altitude_at_start(self):
        cmd = HoverCommand()
        cmd.start(snapshot(y=0.7))
        instr = cmd.update(DT, snapshot(y=0.65))

        assert instr.hover is True
        assert instr.altitude == 0.7


class TestTakeOff:
    """Test TakeOffCommand"""

    def test_default_altitude(self):
        cmd = TakeOffCommand(defaults=CommandConfig(default_altitude=1.5))
        assert cmd.target_altitude == 1.5
        assert cmd.command_type == CommandType.TAKE_OFF

    def test_instruction_targets_altitude(self, fake_clock):
        cmd = TakeOffCommand(1.0, clock=fake_clock)
        cmd.start(snapshot(y=0.05))
        instr = cmd.update(DT, snapshot(y=0.05))

        assert instr == MotionInstruction.hold(1.0)
        assert not cmd.settled

    def test_requires_two_stable_ticks(self, fake_clock):
        cmd = TakeOffCommand(1.0, clock=fake_clock)
        cmd.start(snapshot(y=0.05))

        cmd.update(DT, snapshot(y=0.97))
        assert not cmd.settled

        # Leaving the tolerance band resets the count
        cmd.update(DT, snapshot(y=0.90))
        cmd.update(DT, snapshot(y=0.98))
        assert not cmd.settled

        cmd.update(DT, snapshot(y=0.99))
        assert cmd.state == CommandState.COMPLETED
        assert cmd.outcome.result(timeout=0) == {"altitude": 0.99, "target": 1.0}

    def test_timeout(self, fake_clock):
        cmd = TakeOffCommand(1.0, {"timeoutMs": 100}, clock=fake_clock)
        cmd.start(snapshot())

        fake_clock.advance(0.05)
        cmd.update(DT, snapshot())
        assert not cmd.settled

        fake_clock.advance(0.06)
        instr = cmd.update(DT, snapshot(y=0.3))

        assert cmd.state == CommandState.FAILED
        assert instr == MotionInstruction.hold(0.3)
        with pytest.raises(CommandTimeout, match="Command timeout"):
            cmd.outcome.result(timeout=0)


class TestLand:
    """Test LandCommand"""

    def test_ground_altitude_from_options(self):
        cmd = LandCommand({"groundAltitude": 0.1})
        assert cmd.ground_altitude == 0.1

    def test_ground_altitude_default(self):
        cmd = LandCommand()
        assert cmd.ground_altitude == 0.05

    def test_lands(self, fake_clock):
        cmd = LandCommand(clock=fake_clock)
        cmd.start(snapshot(y=1.0))

        assert cmd.update(DT, snapshot(y=1.0)).altitude == 0.05
        cmd.update(DT, snapshot(y=0.06))
        cmd.update(DT, snapshot(y=0.05))

        assert cmd.outcome.result(timeout=0) == {"altitude": 0.05, "landed": True}


class TestMoveTo:
    """Test MoveToCommand speed profile and arrival"""

    def test_first_tick_heading_and_speed(self, fake_clock):
        cmd = MoveToCommand({"x": 1, "y": 1, "z": 1}, clock=fake_clock)
        cmd.start(snapshot(y=1.0))
        instr = cmd.update(DT, snapshot(y=1.0))

        assert instr.hover is False
        assert instr.angle == pytest.approx(math.pi / 4, abs=1e-3)
        assert instr.speed == pytest.approx(0.2)
        assert instr.altitude == 1.0

    def test_missing_y_keeps_start_altitude(self, fake_clock):
        cmd = MoveToCommand({"x": 1, "z": 0}, clock=fake_clock)
        cmd.start(snapshot(y=0.8))
        instr = cmd.update(DT, snapshot(y=0.8))

        assert cmd.target.y == 0.8
        assert instr.altitude == 0.8

    def test_slowdown_zone(self, fake_clock):
        cmd = MoveToCommand({"x": 0.2, "y": 1, "z": 0}, clock=fake_clock)
        cmd.start(snapshot(y=1.0))
        instr = cmd.update(DT, snapshot(y=1.0))

        # Linear between min and max speed: 0.05 + 0.15 * (0.2 / 0.3)
        assert instr.speed == pytest.approx(0.15)

    def test_near_target_uses_min_speed(self, fake_clock):
        cmd = MoveToCommand({"x": 0.1, "y": 1, "z": 0}, clock=fake_clock)
        cmd.start(snapshot(y=1.0))
        instr = cmd.update(DT, snapshot(y=1.0))

        assert instr.speed == pytest.approx(0.05)

    def test_speed_never_below_floor(self, fake_clock):
        cmd = MoveToCommand({"x": 0.09, "y": 1, "z": 0}, clock=fake_clock)
        cmd.start(snapshot(y=1.0))
        # Large tick: overshoot guard would reduce speed, floor keeps 0.8 * min
        instr = cmd.update(5.0, snapshot(y=1.0))

        assert instr.speed == pytest.approx(0.04)

    def test_arrival_needs_stable_ticks(self, fake_clock):
        cmd = MoveToCommand({"x": 1, "y": 1, "z": 0}, clock=fake_clock)
        cmd.start(snapshot(y=1.0))

        cmd.update(DT, snapshot(x=0.95, y=1.0))
        assert not cmd.settled

        instr = cmd.update(DT, snapshot(x=0.96, y=1.0))
        assert cmd.state == CommandState.COMPLETED
        assert instr == MotionInstruction.hold(1.0)

        result = cmd.outcome.result(timeout=0)
        assert result["target"] == {"x": 1.0, "y": 1.0, "z": 0.0}
        assert result["position"]["x"] == 0.96

    def test_altitude_must_also_match(self, fake_clock):
        cmd = MoveToCommand({"x": 0, "y": 1, "z": 0}, clock=fake_clock)
        cmd.start(snapshot(y=0.5))

        for _ in range(3):
            instr = cmd.update(DT, snapshot(y=0.5))
        assert not cmd.settled
        assert instr.altitude == 1.0


class TestRotateYaw:
    """Test RotateYawCommand"""

    def test_completes_immediately(self):
        cmd = RotateYawCommand(1.57)
        cmd.start(snapshot())
        assert cmd.outcome.result(timeout=0) == {"angle": 1.57}


class TestCancel:
    """Test cancellation"""

    def test_cancel_pending(self):
        cmd = MoveToCommand({"x": 1, "z": 1})
        assert cmd.cancel() is True
        assert cmd.state == CommandState.CANCELLED
        with pytest.raises(CommandCancelled, match="Command cancelled"):
            cmd.outcome.result(timeout=0)

    def test_cancel_after_complete_is_noop(self):
        cmd = HoverCommand()
        cmd.start(snapshot())
        assert cmd.cancel() is False
        assert cmd.state == CommandState.COMPLETED
        assert cmd.outcome.succeeded

"""
High-level flight commands

Each command:
- produces one MotionInstruction per tick from the current vehicle state
- decides when it has completed
- fails itself when its timeout expires

The variant set is closed: Hover, TakeOff, Land, MoveTo, RotateYaw.
"""

import logging
import math
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from ..config import CommandConfig
from ..errors import CommandCancelled, CommandTimeout
from .outcome import Outcome
from .types import (
    CommandOptions,
    DroneStateSnapshot,
    MotionInstruction,
    MoveTarget,
    Vec3,
)

logger = logging.getLogger(__name__)

# Consecutive in-tolerance ticks required before an arrival is accepted
STABLE_TICKS_REQUIRED = 2

OptionsLike = Union[CommandOptions, Mapping[str, Any], None]


class CommandType(Enum):
    """Available command types"""
    HOVER = "hover"
    TAKE_OFF = "take_off"
    LAND = "land"
    MOVE_TO = "move_to"
    ROTATE_YAW = "rotate_yaw"


class CommandState(Enum):
    """Command lifecycle"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


SETTLED_STATES = frozenset({
    CommandState.COMPLETED,
    CommandState.FAILED,
    CommandState.CANCELLED,
})


class Command(ABC):
    """Base class for all commands"""

    def __init__(self,
                 options: OptionsLike = None,
                 defaults: Optional[CommandConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize command

        Args:
            options: Per-call overrides (CommandOptions or wire dict)
            defaults: Fallback values for options left unset
            clock: Monotonic time source in seconds
        """
        self.options = CommandOptions.coerce(options)
        self.defaults = defaults or CommandConfig()
        self._clock = clock

        self.state = CommandState.PENDING
        self.start_time: Optional[float] = None
        self.timeout_ms = self._option("timeout_ms")
        self.error: Optional[BaseException] = None
        self.outcome = Outcome(label=self.command_type.value)

    @property
    @abstractmethod
    def command_type(self) -> CommandType:
        """Return the command type"""
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.state.value}>"

    def _option(self, name: str) -> float:
        value = getattr(self.options, name)
        return value if value is not None else getattr(self.defaults, name)

    # ==================== Lifecycle ====================

    @property
    def settled(self) -> bool:
        return self.state in SETTLED_STATES

    @property
    def elapsed_ms(self) -> float:
        if self.start_time is None:
            return 0.0
        return (self._clock() - self.start_time) * 1000.0

    def start(self, snapshot: DroneStateSnapshot):
        """Begin execution from the given vehicle state"""
        self.start_time = self._clock()
        if self.state == CommandState.PENDING:
            self.state = CommandState.RUNNING
        self._on_start(snapshot)

    def _on_start(self, snapshot: DroneStateSnapshot):
        """Variant-specific initialization"""
        pass

    def update(self, delta: float, snapshot: DroneStateSnapshot) -> MotionInstruction:
        """
        Compute this tick's motion instruction

        Args:
            delta: Time since last tick in seconds
            snapshot: Current vehicle/controller state

        Returns:
            MotionInstruction to apply this tick
        """
        if self.state == CommandState.RUNNING and self.elapsed_ms > self.timeout_ms:
            self.fail(CommandTimeout("Command timeout"))
            return MotionInstruction.hold(snapshot.position.y)
        return self._step(delta, snapshot)

    @abstractmethod
    def _step(self, delta: float, snapshot: DroneStateSnapshot) -> MotionInstruction:
        pass

    def complete(self, result: Any = None) -> bool:
        """Mark completed; no-op once settled"""
        if self.settled:
            return False
        self.state = CommandState.COMPLETED
        self.outcome.resolve(result)
        return True

    def fail(self, error: BaseException) -> bool:
        """Mark failed; no-op once settled"""
        if self.settled:
            return False
        if isinstance(error, CommandCancelled):
            self.state = CommandState.CANCELLED
        else:
            self.state = CommandState.FAILED
        self.error = error
        self.outcome.reject(error)
        return True

    def cancel(self) -> bool:
        """Cancel the command; no-op once settled"""
        return self.fail(CommandCancelled("Command cancelled"))


class HoverCommand(Command):
    """Hold the current position; completes as soon as it starts"""

    def __init__(self, options: OptionsLike = None, **kwargs):
        super().__init__(options, **kwargs)
        self.target_altitude: Optional[float] = None

    @property
    def command_type(self) -> CommandType:
        return CommandType.HOVER

    def _on_start(self, snapshot: DroneStateSnapshot):
        self.target_altitude = snapshot.position.y
        self.complete({"position": snapshot.position.to_dict()})

    def _step(self, delta: float, snapshot: DroneStateSnapshot) -> MotionInstruction:
        altitude = self.target_altitude
        if altitude is None:
            altitude = snapshot.position.y
        return MotionInstruction.hold(altitude)


class _VerticalCommand(Command):
    """Shared debounce logic for take-off and landing"""

    def __init__(self, target_altitude: float, options: OptionsLike = None, **kwargs):
        super().__init__(options, **kwargs)
        self.target_altitude = target_altitude
        self.altitude_tolerance = self._option("altitude_tolerance")
        self.stable_ticks = 0

    def _step(self, delta: float, snapshot: DroneStateSnapshot) -> MotionInstruction:
        current_y = snapshot.position.y
        if abs(current_y - self.target_altitude) < self.altitude_tolerance:
            self.stable_ticks += 1
            if self.stable_ticks >= STABLE_TICKS_REQUIRED:
                self.complete(self._result(current_y))
        else:
            self.stable_ticks = 0

        return MotionInstruction.hold(self.target_altitude)

    @abstractmethod
    def _result(self, altitude: float) -> Dict[str, Any]:
        pass


class TakeOffCommand(_VerticalCommand):
    """Climb to the target altitude"""

    def __init__(self, altitude: Optional[float] = None, options: OptionsLike = None, **kwargs):
        defaults = kwargs.get("defaults") or CommandConfig()
        if altitude is None:
            altitude = defaults.default_altitude
        super().__init__(altitude, options, **kwargs)

    @property
    def command_type(self) -> CommandType:
        return CommandType.TAKE_OFF

    def _result(self, altitude: float) -> Dict[str, Any]:
        return {"altitude": altitude, "target": self.target_altitude}


class LandCommand(_VerticalCommand):
    """Descend to ground altitude"""

    def __init__(self, options: OptionsLike = None, **kwargs):
        options = CommandOptions.coerce(options)
        defaults = kwargs.get("defaults") or CommandConfig()
        ground = options.ground_altitude
        if ground is None:
            ground = defaults.ground_altitude
        super().__init__(ground, options, **kwargs)

    @property
    def command_type(self) -> CommandType:
        return CommandType.LAND

    @property
    def ground_altitude(self) -> float:
        return self.target_altitude

    def _result(self, altitude: float) -> Dict[str, Any]:
        return {"altitude": altitude, "landed": True}


class MoveToCommand(Command):
    """Fly to a position with a three-zone speed profile"""

    def __init__(self,
                 target: Union[MoveTarget, Vec3, Mapping[str, Any]],
                 options: OptionsLike = None,
                 **kwargs):
        super().__init__(options, **kwargs)
        self.target = MoveTarget.coerce(target)
        self.max_speed = self._option("max_speed")
        self.min_speed = self._option("min_speed")
        self.position_tolerance = self._option("position_tolerance")
        self.altitude_tolerance = self._option("altitude_tolerance")
        self.slowdown_distance = self._option("slowdown_distance")
        self.stable_ticks = 0

    @property
    def command_type(self) -> CommandType:
        return CommandType.MOVE_TO

    def _on_start(self, snapshot: DroneStateSnapshot):
        # Unspecified altitude means keep the current one
        if self.target.y is None:
            self.target.y = snapshot.position.y

    def _step(self, delta: float, snapshot: DroneStateSnapshot) -> MotionInstruction:
        pos = snapshot.position
        target_y = self.target.y if self.target.y is not None else pos.y
        dx = self.target.x - pos.x
        dz = self.target.z - pos.z
        dy = target_y - pos.y
        distance = math.hypot(dx, dz)

        if distance < self.position_tolerance and abs(dy) < self.altitude_tolerance:
            self.stable_ticks += 1
            if self.stable_ticks >= STABLE_TICKS_REQUIRED:
                self.complete({
                    "position": pos.to_dict(),
                    "target": self.target.to_dict(),
                })
                return MotionInstruction.hold(target_y)
        else:
            self.stable_ticks = 0

        angle = math.atan2(dz, dx)
        speed = self._speed_for(distance)

        # Never step past the target within one tick
        if delta > 0 and speed * delta > distance and distance > self.position_tolerance:
            speed = distance / delta * 0.8

        return MotionInstruction(
            hover=False,
            angle=angle,
            speed=max(speed, self.min_speed * 0.8),
            altitude=target_y,
        )

    def _speed_for(self, distance: float) -> float:
        if distance < self.position_tolerance * 2:
            return self.min_speed
        if distance < self.slowdown_distance:
            t = distance / self.slowdown_distance
            return self.min_speed + (self.max_speed - self.min_speed) * t
        return self.max_speed


class RotateYawCommand(Command):
    """
    Rotate to a heading

    Completes immediately without turning the vehicle; heading control
    is not modelled yet.
    """

    def __init__(self, angle: float, options: OptionsLike = None, **kwargs):
        super().__init__(options, **kwargs)
        self.target_angle = angle

    @property
    def command_type(self) -> CommandType:
        return CommandType.ROTATE_YAW

    def _on_start(self, snapshot: DroneStateSnapshot):
        self.complete({"angle": self.target_angle})

    def _step(self, delta: float, snapshot: DroneStateSnapshot) -> MotionInstruction:
        return MotionInstruction.hold(snapshot.position.y)


COMMAND_CLASSES: Dict[CommandType, type] = {
    CommandType.HOVER: HoverCommand,
    CommandType.TAKE_OFF: TakeOffCommand,
    CommandType.LAND: LandCommand,
    CommandType.MOVE_TO: MoveToCommand,
    CommandType.ROTATE_YAW: RotateYawCommand,
}

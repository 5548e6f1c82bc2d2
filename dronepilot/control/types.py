"""
Core value types shared by commands, controller and vehicle
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    """Controller states"""
    IDLE = "idle"           # No current or queued command
    RUNNING = "running"     # Executing commands
    PAUSED = "paused"       # Command in flight, execution suspended


@dataclass(frozen=True)
class Vec3:
    """Position in the simulation frame (+X right, +Y up, +Z down-screen)"""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}


@dataclass
class MoveTarget:
    """
    Move-to destination

    ``y`` is the target altitude; None means keep the altitude the
    vehicle has when the command starts.
    """
    x: float = 0.0
    z: float = 0.0
    y: Optional[float] = None

    @classmethod
    def coerce(cls, target: Union['MoveTarget', Vec3, Mapping[str, Any]]) -> 'MoveTarget':
        if isinstance(target, MoveTarget):
            return cls(x=target.x, z=target.z, y=target.y)
        if isinstance(target, Vec3):
            return cls(x=target.x, z=target.z, y=target.y)
        y = target.get("y")
        return cls(
            x=float(target.get("x") or 0.0),
            z=float(target.get("z") or 0.0),
            y=float(y) if y is not None else None,
        )

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {"x": self.x, "y": self.y, "z": self.z}


@dataclass(frozen=True)
class MotionInstruction:
    """
    Low-level motion command applied to the vehicle once per tick

    When ``hover`` is set the vehicle holds its horizontal position and
    speed is zero; otherwise ``angle``/``speed`` give the horizontal
    velocity. ``altitude`` is always the vertical target.
    """
    hover: bool
    angle: float
    speed: float
    altitude: float

    def __post_init__(self):
        if self.altitude is None:
            raise ValueError("MotionInstruction altitude must not be None")
        if self.speed < 0:
            raise ValueError(f"MotionInstruction speed must be >= 0, got {self.speed}")
        if self.hover and self.speed != 0:
            raise ValueError("Hover instruction must have zero speed")

    @classmethod
    def hold(cls, altitude: float) -> 'MotionInstruction':
        """Hover in place at the given altitude"""
        return cls(hover=True, angle=0.0, speed=0.0, altitude=altitude)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'MotionInstruction':
        hover = bool(data.get("hover", True))
        return cls(
            hover=hover,
            angle=0.0 if hover else float(data.get("angle", 0.0)),
            speed=0.0 if hover else float(data.get("speed", 0.0)),
            altitude=float(data["altitude"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hover": self.hover,
            "angle": self.angle,
            "speed": self.speed,
            "altitude": self.altitude,
        }


@dataclass(frozen=True)
class DroneStateSnapshot:
    """Read-only view of vehicle and controller state for one tick"""
    position: Vec3
    heading: float
    is_active: bool
    queue_length: int
    controller_state: ControllerState
    current_command: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation used by the bridge and REST API"""
        return {
            "position": self.position.to_dict(),
            "headingRad": self.heading,
            "isActive": self.is_active,
            "queueLength": self.queue_length,
            "state": self.controller_state.value,
            "currentCommand": self.current_command,
        }


# Wire option names -> CommandOptions field names
_OPTION_ALIASES = {
    "timeoutMs": "timeout_ms",
    "maxSpeed": "max_speed",
    "minSpeed": "min_speed",
    "positionTolerance": "position_tolerance",
    "altitudeTolerance": "altitude_tolerance",
    "slowdownDistance": "slowdown_distance",
    "groundAltitude": "ground_altitude",
}


@dataclass
class CommandOptions:
    """Per-call overrides; None falls back to the configured default"""
    timeout_ms: Optional[float] = None
    max_speed: Optional[float] = None
    min_speed: Optional[float] = None
    position_tolerance: Optional[float] = None
    altitude_tolerance: Optional[float] = None
    slowdown_distance: Optional[float] = None
    ground_altitude: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'CommandOptions':
        """
        Create options from a dictionary

        Accepts both the wire names (``timeoutMs``) and the Python
        names (``timeout_ms``). Unknown keys are ignored.
        """
        options = cls()
        if not data:
            return options

        known = {f.name for f in fields(cls)}
        for key, value in data.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                logger.debug(f"Ignoring unknown command option '{key}'")
                continue
            setattr(options, name, float(value) if value is not None else None)
        return options

    @classmethod
    def coerce(cls, options: Union['CommandOptions', Mapping[str, Any], None]) -> 'CommandOptions':
        if isinstance(options, CommandOptions):
            return options
        return cls.from_dict(options)

"""
Command scheduling: commands, deferred outcomes and the controller
"""

from .types import (
    CommandOptions,
    ControllerState,
    DroneStateSnapshot,
    MotionInstruction,
    MoveTarget,
    Vec3,
)
from .outcome import Outcome
from .commands import (
    Command,
    CommandState,
    CommandType,
    HoverCommand,
    TakeOffCommand,
    LandCommand,
    MoveToCommand,
    RotateYawCommand,
)
from .controller import DroneControl, ControlEvent

__all__ = [
    # Types
    'CommandOptions',
    'ControllerState',
    'DroneStateSnapshot',
    'MotionInstruction',
    'MoveTarget',
    'Vec3',
    'Outcome',
    # Commands
    'Command',
    'CommandState',
    'CommandType',
    'HoverCommand',
    'TakeOffCommand',
    'LandCommand',
    'MoveToCommand',
    'RotateYawCommand',
    # Controller
    'DroneControl',
    'ControlEvent',
]

"""
Drone controller

Responsibilities:
- Own the command queue and the current command
- Drive the current command once per tick and write its instruction
  to the vehicle's motion sink
- Expose the high-level intent API (take_off/land/move_to/hover/rotate_yaw)
- Support cancel, pause and resume
"""

import logging
import time
from collections import deque
from enum import Enum, auto
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, TYPE_CHECKING, Union

from ..config import CommandConfig
from ..errors import ExecutionFault
from .commands import (
    COMMAND_CLASSES,
    Command,
    CommandType,
    OptionsLike,
)
from .outcome import Outcome
from .types import (
    ControllerState,
    DroneStateSnapshot,
    MotionInstruction,
    MoveTarget,
    Vec3,
)

if TYPE_CHECKING:
    from ..vehicle.simulated import SimulatedVehicle

logger = logging.getLogger(__name__)


class ControlEvent(Enum):
    """Events emitted by the controller"""
    COMMAND_START = auto()      # callback(command)
    COMMAND_COMPLETE = auto()   # callback(command)
    COMMAND_ERROR = auto()      # callback(command, error)
    STATE_CHANGE = auto()       # callback(new_state, old_state)


class DroneControl:
    """
    Command scheduler for one vehicle

    Single-threaded and tick-driven: all mutation happens inside update()
    or inside the public calls, never in the background. Callers on other
    threads must serialize access (see Drone).
    """

    def __init__(self,
                 vehicle: Optional['SimulatedVehicle'] = None,
                 defaults: Optional[CommandConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize controller

        Args:
            vehicle: Vehicle to drive (may be attached later)
            defaults: Command defaults (speeds, tolerances, timeout)
            clock: Monotonic time source handed to every command
        """
        self.vehicle = vehicle
        self.defaults = defaults or CommandConfig()
        self._clock = clock

        self.state = ControllerState.IDLE
        self.current_command: Optional[Command] = None
        self.queue: Deque[Command] = deque()
        self._paused = False

        self._listeners: Dict[ControlEvent, List[Callable[..., None]]] = {
            event: [] for event in ControlEvent
        }

    # ==================== Vehicle lifecycle ====================

    def attach(self, vehicle: 'SimulatedVehicle'):
        """Attach a vehicle; commands start executing on the next tick"""
        if self.vehicle is not None and self.vehicle is not vehicle:
            self.detach()
        self.vehicle = vehicle
        logger.info("Vehicle attached")

    def detach(self):
        """Cancel everything and release the vehicle"""
        if self.vehicle is None:
            return
        self.cancel()
        self.vehicle.sink.release(self)
        self.vehicle = None
        logger.info("Vehicle detached")

    # ==================== State ====================

    def get_state(self) -> DroneStateSnapshot:
        """Current vehicle and controller state"""
        if self.vehicle is not None:
            position = self.vehicle.position
            heading = self.vehicle.heading
        else:
            position = Vec3()
            heading = 0.0

        return DroneStateSnapshot(
            position=position,
            heading=heading,
            is_active=self.is_active(),
            queue_length=len(self.queue),
            controller_state=self.state,
            current_command=(self.current_command.command_type.value
                             if self.current_command is not None else None),
        )

    def is_active(self) -> bool:
        """True when a command is executing or queued"""
        return self.current_command is not None or len(self.queue) > 0

    @property
    def paused(self) -> bool:
        return self._paused

    # ==================== Tick ====================

    def update(self, delta: float) -> bool:
        """
        Advance one tick

        Args:
            delta: Time since last tick in seconds

        Returns:
            True if a command occupied this tick (controller output has
            priority over any other motion source)
        """
        if self._paused or self.vehicle is None:
            return False

        started = False
        while self.current_command is None and self.queue:
            self._start_next_command()
            started = True

        if self.current_command is None:
            if started:
                # Every queued command faulted on start
                return True
            self._set_state(ControllerState.IDLE)
            self.vehicle.sink.release(self)
            return False

        command = self.current_command
        try:
            instruction = command.update(delta, self.get_state())
            self._write(instruction)
        except Exception as e:
            logger.exception(f"Command execution error in {command!r}")
            self._fault(command, e)
            return True

        if command.settled:
            self._finish(command)

        return True

    # ==================== Queueing ====================

    def enqueue(self, command: Command) -> Outcome:
        """Append a command to the queue (FIFO)"""
        self.queue.append(command)
        logger.debug(f"Enqueued {command!r} (queue length {len(self.queue)})")
        return command.outcome

    def execute_immediate(self, command: Command) -> Outcome:
        """Cancel everything in flight, then enqueue ``command``"""
        self.cancel()
        return self.enqueue(command)

    def _make(self, command_type: CommandType, *args, **kwargs) -> Command:
        command_cls = COMMAND_CLASSES[command_type]
        return command_cls(*args, defaults=self.defaults, clock=self._clock, **kwargs)

    # ==================== Intent API ====================

    def hover(self) -> Outcome:
        """Hover in place, cancelling all current and queued commands"""
        return self.execute_immediate(self._make(CommandType.HOVER))

    def take_off(self, altitude: Optional[float] = None, options: OptionsLike = None) -> Outcome:
        """
        Take off to altitude

        Args:
            altitude: Target altitude in meters (default from config)
            options: Per-call overrides (timeout, altitude tolerance)
        """
        return self.enqueue(self._make(CommandType.TAKE_OFF, altitude, options))

    def land(self, options: OptionsLike = None) -> Outcome:
        """Descend to ground altitude"""
        return self.enqueue(self._make(CommandType.LAND, options))

    def move_to(self,
                target: Union[MoveTarget, Vec3, Mapping[str, Any]],
                options: OptionsLike = None) -> Outcome:
        """
        Fly to a position

        Args:
            target: {x, y?, z}; missing y keeps the altitude at start
            options: Per-call overrides (speeds, tolerances, timeout)
        """
        return self.enqueue(self._make(CommandType.MOVE_TO, target, options))

    def rotate_yaw(self, angle: float, options: OptionsLike = None) -> Outcome:
        """Rotate to heading (radians)"""
        return self.enqueue(self._make(CommandType.ROTATE_YAW, angle, options))

    # ==================== Control ====================

    def cancel(self):
        """Cancel current and queued commands and hover"""
        if self.current_command is not None:
            self.current_command.cancel()
            self.current_command = None

        cancelled = 0
        while self.queue:
            self.queue.popleft().cancel()
            cancelled += 1
        if cancelled:
            logger.info(f"Cancelled {cancelled} queued command(s)")

        self._paused = False
        self._set_state(ControllerState.IDLE)

        if self.vehicle is not None:
            self._write(MotionInstruction.hold(self.vehicle.position.y))
            self.vehicle.sink.release(self)

    def pause(self) -> bool:
        """Suspend execution and hover; only valid while running"""
        if self.state != ControllerState.RUNNING:
            logger.warning(f"Cannot pause: state is {self.state.name}")
            return False

        self._paused = True
        self._set_state(ControllerState.PAUSED)
        if self.vehicle is not None:
            self._write(MotionInstruction.hold(self.vehicle.position.y))
        return True

    def resume(self) -> bool:
        """Resume a paused command where it left off"""
        if self.state != ControllerState.PAUSED:
            logger.warning(f"Cannot resume: state is {self.state.name}")
            return False

        self._paused = False
        self._set_state(ControllerState.RUNNING)
        return True

    # ==================== Events ====================

    def on(self, event: ControlEvent, callback: Callable[..., None] = None):
        """Register a listener for an event (can be used as decorator)"""
        def decorator(func):
            self._listeners[event].append(func)
            return func

        if callback is not None:
            self._listeners[event].append(callback)
            return None
        return decorator

    def off(self, event: ControlEvent, callback: Callable[..., None]):
        """Remove a previously registered listener"""
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def _emit(self, event: ControlEvent, *args):
        for callback in list(self._listeners[event]):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in {event.name} listener: {e}")

    # ==================== Internals ====================

    def _start_next_command(self):
        if not self.queue:
            return

        command = self.queue.popleft()
        self.current_command = command
        self._set_state(ControllerState.RUNNING)
        if self.vehicle is not None:
            self.vehicle.sink.acquire(self)

        snapshot = self.get_state()
        try:
            command.start(snapshot)
        except Exception as e:
            logger.exception(f"Command start error in {command!r}")
            self._fault(command, e)
            return

        logger.debug(f"Command started: {command!r} at {snapshot.position}")
        self._emit(ControlEvent.COMMAND_START, command)

    def _finish(self, command: Command):
        if command.error is not None:
            logger.error(f"Command failed: {command!r}: {command.error}")
            self._emit(ControlEvent.COMMAND_ERROR, command, command.error)
        else:
            logger.debug(f"Command completed: {command!r}")
            self._emit(ControlEvent.COMMAND_COMPLETE, command)

        # Stays RUNNING until the next empty tick so a caller can still
        # enqueue or pause in between
        self.current_command = None
        if self.queue:
            self._start_next_command()

    def _fault(self, command: Command, error: Exception):
        fault = ExecutionFault(f"{type(error).__name__}: {error}")
        fault.__cause__ = error
        command.fail(fault)
        self._emit(ControlEvent.COMMAND_ERROR, command, fault)
        if self.current_command is command:
            self.current_command = None

    def _write(self, instruction: MotionInstruction):
        if self.vehicle is None:
            return
        sink = self.vehicle.sink
        sink.acquire(self)
        sink.write(instruction, source=self)

    def _set_state(self, new_state: ControllerState):
        if self.state != new_state:
            old_state = self.state
            self.state = new_state
            logger.debug(f"Controller state: {old_state.name} -> {new_state.name}")
            self._emit(ControlEvent.STATE_CHANGE, new_state, old_state)

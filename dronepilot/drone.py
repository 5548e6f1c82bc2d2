"""
Drone host

Owns the simulated vehicle, its controller and the running missions, and
drives them from one tick loop. Every call that touches the controller or a
mission takes the host lock, so bridge and API threads serialize with ticks
and their calls take effect before they return.
"""

import logging
import threading
import time
from typing import Any, Callable, List, Mapping, Optional, Sequence

from .config import Config, get_config
from .control.controller import DroneControl
from .control.types import DroneStateSnapshot, MotionInstruction
from .mission.models import Waypoint, parse_waypoints
from .mission.runner import Mission
from .utils.logger import FlightDataLogger
from .vehicle.simulated import SimulatedVehicle

logger = logging.getLogger(__name__)


class Drone:
    """
    Simulated drone with its command/control stack

    Tick order: controller, missions, vehicle integration, data log.
    """

    def __init__(self,
                 config: Optional[Config] = None,
                 vehicle: Optional[SimulatedVehicle] = None,
                 clock: Callable[[], float] = time.monotonic,
                 data_logger: Optional[FlightDataLogger] = None):
        self.config = config or get_config()
        self.lock = threading.RLock()
        self._clock = clock

        self.vehicle = vehicle or SimulatedVehicle(self.config.simulation)
        self.control = DroneControl(self.vehicle, defaults=self.config.command, clock=clock)
        self.missions: List[Mission] = []
        self.data_logger = data_logger

        self._was_active = False

        # Tick loop
        self._running = False
        self._loop_thread: Optional[threading.Thread] = None
        self._update_rate = self.config.simulation.update_rate_hz
        self._last_update_time = 0.0

    # ==================== Tick ====================

    def update(self, delta: float) -> bool:
        """
        Run one tick

        Args:
            delta: Time since last tick in seconds

        Returns:
            True if the controller drove the vehicle this tick
        """
        with self.lock:
            active = self.control.update(delta)

            for mission in list(self.missions):
                mission.update()
            self.missions = [m for m in self.missions if not m.state.is_terminal]

            self.vehicle.update(delta)
            self._was_active = active

            if self.data_logger is not None and self.data_logger.is_logging:
                self.data_logger.log(self.control.get_state(), self.vehicle.sink.instruction, active)

        return active

    def start(self):
        """Start the tick loop"""
        if self._running:
            return

        self._running = True
        self._last_update_time = 0.0
        self._loop_thread = threading.Thread(target=self._tick_loop, daemon=True)
        self._loop_thread.start()
        logger.info(f"Tick loop started at {self._update_rate:.0f} Hz")

    def stop(self):
        """Stop the tick loop"""
        self._running = False
        if self._loop_thread:
            self._loop_thread.join(timeout=2.0)
            self._loop_thread = None
        logger.info("Tick loop stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def _tick_loop(self):
        """Main tick loop"""
        dt = 1.0 / self._update_rate

        while self._running:
            loop_start = time.monotonic()
            delta = loop_start - self._last_update_time if self._last_update_time > 0 else dt
            self._last_update_time = loop_start

            try:
                self.update(delta)
            except Exception as e:
                logger.error(f"Tick loop error: {e}")

            # Maintain update rate
            elapsed = time.monotonic() - loop_start
            sleep_time = dt - elapsed
            if sleep_time > 0:
                time.sleep(sleep_time)

    # ==================== Motion sources ====================

    def apply_external(self, instruction: MotionInstruction, source: Any = None) -> bool:
        """
        Write an instruction from a non-controller source (manual input)

        Returns:
            False if the controller currently owns the vehicle
        """
        with self.lock:
            accepted = self.vehicle.sink.write(instruction, source=source)
        if not accepted:
            logger.debug("External instruction ignored: controller active")
        return accepted

    def is_controller_active(self) -> bool:
        """True if the controller drove the last tick or has work pending"""
        with self.lock:
            return self._was_active or self.control.is_active()

    def get_state(self) -> DroneStateSnapshot:
        with self.lock:
            return self.control.get_state()

    # ==================== Missions ====================

    @property
    def active_mission(self) -> Optional[Mission]:
        """Most recently started mission that has not finished"""
        with self.lock:
            for mission in reversed(self.missions):
                if not mission.state.is_terminal:
                    return mission
            return None

    def run_mission(self,
                    waypoints: Sequence[Any],
                    options: Optional[Mapping[str, Any]] = None,
                    on_progress: Optional[Callable[[int, int, Waypoint], None]] = None) -> Mission:
        """
        Start a mission, cancelling any mission still running

        Args:
            waypoints: Waypoint objects or wire dictionaries
            options: Wire options {continueOnError, timeoutMs, hoverDurationMs}
            on_progress: Called with (index, total, waypoint) before each dispatch

        Raises:
            ValidationError: If the waypoint list is malformed
        """
        parsed = parse_waypoints(waypoints)
        options = options or {}
        defaults = self.config.mission

        with self.lock:
            for mission in self.missions:
                mission.cancel()
            self.missions = []

            mission = Mission(
                parsed,
                continue_on_error=bool(_pick(options, "continueOnError", "continue_on_error",
                                             defaults.continue_on_error)),
                timeout_ms=float(_pick(options, "timeoutMs", "timeout_ms", defaults.timeout_ms)),
                hover_duration_ms=float(_pick(options, "hoverDurationMs", "hover_duration_ms",
                                              defaults.hover_duration_ms)),
                on_progress=on_progress,
                clock=self._clock,
            )
            self.missions.append(mission)
            mission.start(self.control)

        return mission


def _pick(options: Mapping[str, Any], camel: str, snake: str, default: Any) -> Any:
    if options.get(camel) is not None:
        return options[camel]
    if options.get(snake) is not None:
        return options[snake]
    return default

"""
Mission runner

Sequences waypoints into successive controller calls. The runner never
touches the vehicle: it only drives the DroneControl API and waits for
each outcome, one tick at a time.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, TYPE_CHECKING

from ..errors import MissionCancelled, MissionTimeout
from ..control.outcome import Outcome
from .models import Waypoint, WaypointType

if TYPE_CHECKING:
    from ..control.controller import DroneControl

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 300000.0
DEFAULT_HOVER_MS = 1000.0


class MissionState(Enum):
    """Mission lifecycle"""
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (MissionState.COMPLETED, MissionState.CANCELLED, MissionState.FAILED)


@dataclass
class WaypointResult:
    """Outcome of one waypoint"""
    index: int
    success: bool
    result: Any = None
    error: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"index": self.index, "success": self.success}
        if self.success:
            d["result"] = self.result
        else:
            d["error"] = str(self.error)
        return d


@dataclass
class MissionReport:
    """Final result of a completed mission"""
    duration_ms: float
    results: List[WaypointResult] = field(default_factory=list)
    waypoints_total: int = 0

    @property
    def waypoints_completed(self) -> int:
        return sum(1 for r in self.results if r.success)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": self.duration_ms,
            "results": [r.to_dict() for r in self.results],
            "waypointsCompleted": self.waypoints_completed,
            "waypointsTotal": self.waypoints_total,
        }


class Mission:
    """
    Sequential waypoint runner

    Handles:
    - Dispatch of each waypoint to the controller
    - Overall timeout measured from mission start
    - Continue-on-error policy
    - Pause/resume/cancel
    """

    def __init__(self,
                 waypoints: Sequence[Any],
                 continue_on_error: bool = False,
                 timeout_ms: float = DEFAULT_TIMEOUT_MS,
                 hover_duration_ms: float = DEFAULT_HOVER_MS,
                 on_progress: Optional[Callable[[int, int, Waypoint], None]] = None,
                 on_waypoint_complete: Optional[Callable[[int, Any], None]] = None,
                 on_error: Optional[Callable[[BaseException, int], None]] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize mission

        Args:
            waypoints: Waypoint objects or wire dictionaries
            continue_on_error: Keep going after a failed waypoint
            timeout_ms: Overall budget from mission start
            hover_duration_ms: Hold time for hover waypoints without durationMs
            on_progress: Called with (index, total, waypoint) before dispatch
            on_waypoint_complete: Called with (index, result) on success
            on_error: Called with (error, index) on waypoint failure
            clock: Monotonic time source in seconds
        """
        self.waypoints: List[Waypoint] = [Waypoint.coerce(w) for w in waypoints]
        self.continue_on_error = continue_on_error
        self.timeout_ms = timeout_ms
        self.hover_duration_ms = hover_duration_ms
        self._on_progress = on_progress
        self._on_waypoint_complete = on_waypoint_complete
        self._on_error = on_error
        self._clock = clock

        self.state = MissionState.PENDING
        self.current_index = 0
        self.results: List[WaypointResult] = []
        self.control: Optional['DroneControl'] = None
        self.outcome = Outcome(label="mission")

        self._start_time: Optional[float] = None
        self._cancelled = False
        self._pending: Optional[Outcome] = None
        self._hold_until: Optional[float] = None
        self._hold_ms = 0.0

    @property
    def elapsed_ms(self) -> float:
        if self._start_time is None:
            return 0.0
        return (self._clock() - self._start_time) * 1000.0

    # ==================== Lifecycle ====================

    def start(self, control: 'DroneControl') -> Outcome:
        """
        Start executing on a controller

        The first waypoint is dispatched immediately; later ones as
        update() observes each outcome settle.

        Raises:
            RuntimeError: If the mission was already started
        """
        if self.state != MissionState.PENDING:
            raise RuntimeError("Mission already started")

        self.control = control
        self.state = MissionState.RUNNING
        self._start_time = self._clock()
        logger.info(f"Mission started with {len(self.waypoints)} waypoints")

        self._advance()
        return self.outcome

    def update(self):
        """Advance the mission; call once per tick after the controller tick"""
        if self.state != MissionState.RUNNING:
            return
        self._advance()

    def cancel(self):
        """Cancel the mission and everything queued on the controller"""
        if self.state.is_terminal:
            return

        self._cancelled = True
        if self.control is not None:
            self.control.cancel()

        if self._pending is not None and self._pending.done():
            self._record_pending()
        self._finish(MissionState.CANCELLED, MissionCancelled("Mission cancelled"))

    def pause(self) -> bool:
        """Pause mission and controller"""
        if self.state != MissionState.RUNNING:
            return False
        self.state = MissionState.PAUSED
        if self.control is not None:
            self.control.pause()
        logger.info("Mission paused")
        return True

    def resume(self) -> bool:
        """Resume paused mission"""
        if self.state != MissionState.PAUSED:
            return False
        self.state = MissionState.RUNNING
        if self.control is not None:
            self.control.resume()
        logger.info("Mission resumed")
        return True

    def get_progress(self) -> Dict[str, Any]:
        """Progress for API responses"""
        total = len(self.waypoints)
        return {
            "current": self.current_index,
            "total": total,
            "percentage": round(self.current_index / total * 100) if total > 0 else 0,
            "state": self.state.value,
        }

    # ==================== Execution ====================

    def _advance(self):
        """Process as many steps as possible without waiting on a tick"""
        while self.state == MissionState.RUNNING:
            if self._pending is not None:
                if not self._pending_ready():
                    return
                if not self._record_pending():
                    return
                self.current_index += 1

            if self.current_index >= len(self.waypoints):
                self._complete()
                return

            if self._cancelled:
                self._finish(MissionState.CANCELLED, MissionCancelled("Mission cancelled"))
                return

            if self.elapsed_ms > self.timeout_ms:
                self._finish(MissionState.FAILED, MissionTimeout("Mission timeout"))
                return

            waypoint = self.waypoints[self.current_index]
            if self._on_progress:
                try:
                    self._on_progress(self.current_index, len(self.waypoints), waypoint)
                except Exception as e:
                    logger.error(f"Error in progress callback: {e}")

            logger.debug(f"Waypoint {self.current_index}: {waypoint.type.value}")
            self._pending = self._dispatch(waypoint)

    def _dispatch(self, waypoint: Waypoint) -> Outcome:
        control = self.control
        options = waypoint.options

        if waypoint.type == WaypointType.TAKE_OFF:
            return control.take_off(waypoint.altitude, options)

        if waypoint.type == WaypointType.LAND:
            return control.land(options)

        if waypoint.type == WaypointType.HOVER:
            duration = waypoint.duration_ms
            self._hold_ms = duration if duration is not None else self.hover_duration_ms
            self._hold_until = None
            return control.hover()

        if waypoint.type == WaypointType.MOVE_TO:
            target = {
                "x": waypoint.x if waypoint.x is not None else 0.0,
                "y": waypoint.y,
                "z": waypoint.z if waypoint.z is not None else 0.0,
            }
            return control.move_to(target, options)

        raise ValueError(f"Unhandled waypoint type: {waypoint.type}")

    def _is_hover(self) -> bool:
        return self.waypoints[self.current_index].type == WaypointType.HOVER

    def _pending_ready(self) -> bool:
        """True once the in-flight waypoint has a final result"""
        if not self._pending.done():
            return False

        # A successful hover is followed by a hold before the next waypoint
        if self._is_hover() and self._pending.succeeded:
            now = self._clock()
            if self._hold_until is None:
                self._hold_until = now + self._hold_ms / 1000.0
            if now < self._hold_until:
                return False
        return True

    def _record_pending(self) -> bool:
        """
        Record the in-flight waypoint's result

        Returns:
            False if the mission stopped because of it
        """
        index = self.current_index
        pending, self._pending = self._pending, None
        error = pending.exception(timeout=0)

        if error is None:
            result = pending.result(timeout=0)
            if self._is_hover():
                result = {"hovered": True, "duration": self._hold_ms}
            self.results.append(WaypointResult(index=index, success=True, result=result))
            if self._on_waypoint_complete:
                try:
                    self._on_waypoint_complete(index, result)
                except Exception as e:
                    logger.error(f"Error in waypoint callback: {e}")
            return True

        logger.warning(f"Waypoint {index} failed: {error}")
        self.results.append(WaypointResult(index=index, success=False, error=error))
        if self._on_error:
            try:
                self._on_error(error, index)
            except Exception as e:
                logger.error(f"Error in error callback: {e}")

        if self._cancelled:
            return False
        if not self.continue_on_error:
            self._finish(MissionState.FAILED, error)
            return False
        return True

    def _complete(self):
        report = MissionReport(
            duration_ms=self.elapsed_ms,
            results=list(self.results),
            waypoints_total=len(self.waypoints),
        )
        self.state = MissionState.COMPLETED
        logger.info(
            f"Mission completed: {report.waypoints_completed}/{report.waypoints_total} waypoints"
        )
        self.outcome.resolve(report.to_dict())

    def _finish(self, state: MissionState, error: BaseException):
        if self.state.is_terminal:
            return
        self.state = state
        logger.warning(f"Mission {state.value}: {error}")
        self.outcome.reject(error)


def run_mission(control: 'DroneControl', waypoints: Sequence[Any], **options) -> Mission:
    """
    Create and start a mission

    Args:
        control: Controller to drive
        waypoints: Waypoint objects or wire dictionaries
        **options: Mission keyword arguments (continue_on_error, timeout_ms, ...)

    Returns:
        The running Mission (its outcome settles when it ends)
    """
    mission = Mission(waypoints, **options)
    mission.start(control)
    return mission

"""
Remote-control protocol

One JSON message per frame. The dispatcher maps request messages onto
Drone calls and produces exactly one response per request:

    {"type": "ping", "requestId": ...}              -> pong
    {"type": "command", "requestId", "action", "args"} -> response
    {"type": "query", "requestId", "action"}        -> response

Long-running commands block the calling thread until their outcome
settles, so transports should dispatch command messages off their
receive loop.
"""

import json
import logging
import math
from typing import Any, Callable, Dict, Mapping, Optional, TYPE_CHECKING

from ..errors import CommandTimeout, DronePilotError, UnknownAction, ValidationError
from ..control.outcome import Outcome
from ..control.types import Vec3

if TYPE_CHECKING:
    from ..drone import Drone

logger = logging.getLogger(__name__)

# camelCase aliases accepted on the wire
ACTION_ALIASES = {
    "takeOff": "take_off",
    "moveTo": "move_to",
    "moveRelative": "move_relative",
    "rotateYaw": "rotate_yaw",
    "runMission": "run_mission",
    "getState": "get_state",
    "isActive": "is_active",
}

COMMAND_ACTIONS = (
    "hover", "take_off", "land", "move_to", "move_relative", "rotate_yaw",
    "cancel", "pause", "resume", "run_mission",
)
QUERY_ACTIONS = ("get_state", "is_active")

FRAMES = ("world", "body")


def normalize_action(action: Optional[str]) -> Optional[str]:
    """Map a wire action name to its snake_case form"""
    if action is None:
        return None
    return ACTION_ALIASES.get(action, action)


def relative_target(position: Vec3,
                    heading: float,
                    frame: str = "world",
                    forward: float = 0.0,
                    right: float = 0.0,
                    up: float = 0.0) -> Dict[str, float]:
    """
    Absolute target for a relative move

    World frame ignores heading: forward is -Z (up the map), right is +X.
    Body frame: forward along the heading (cos h, sin h), right along the
    heading rotated by +90 degrees.

    Raises:
        ValidationError: If frame is not 'world' or 'body'
    """
    if frame not in FRAMES:
        raise ValidationError(f"Unknown frame: {frame} (expected 'world' or 'body')")

    if frame == "body":
        fx, fz = math.cos(heading), math.sin(heading)
        rx, rz = math.cos(heading + math.pi / 2), math.sin(heading + math.pi / 2)
        return {
            "x": position.x + fx * forward + rx * right,
            "y": position.y + up,
            "z": position.z + fz * forward + rz * right,
        }

    return {
        "x": position.x + right,
        "y": position.y + up,
        "z": position.z - forward,
    }


# ==================== Response builders ====================

def pong(request_id: Any) -> Dict[str, Any]:
    return {"type": "pong", "requestId": request_id}


def success_response(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"type": "response", "requestId": request_id, "ok": True, "result": result}


def error_response(request_id: Any, error: Any) -> Dict[str, Any]:
    message = error if isinstance(error, str) else str(error)
    return {"type": "response", "requestId": request_id, "ok": False, "error": message}


def progress_message(current: int, total: int, waypoint: Any) -> Dict[str, Any]:
    return {
        "type": "progress",
        "action": "mission",
        "current": current,
        "total": total,
        "waypoint": waypoint,
    }


def decode_message(data: Any) -> Optional[Dict[str, Any]]:
    """Parse one frame; returns None (and logs) if it is not a JSON object"""
    try:
        message = json.loads(data)
    except (TypeError, ValueError):
        logger.warning(f"Invalid JSON message: {data!r}")
        return None

    if not isinstance(message, dict):
        logger.warning(f"Ignoring non-object message: {message!r}")
        return None
    return message


def _settled(value: Any) -> Outcome:
    outcome = Outcome(label="immediate")
    outcome.resolve(value)
    return outcome


def _number(args: Mapping[str, Any], key: str, default: Optional[float] = 0.0) -> Optional[float]:
    value = args.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number, got {value!r}")


class BridgeDispatcher:
    """
    Protocol handler bound to one Drone

    Transport-independent: the websocket bridge and the REST API both
    route requests through it.
    """

    def __init__(self,
                 drone: 'Drone',
                 send: Optional[Callable[[Dict[str, Any]], None]] = None,
                 command_timeout_s: float = 600.0):
        """
        Initialize dispatcher

        Args:
            drone: Drone to control
            send: Called with each outgoing message dict
            command_timeout_s: Upper bound on waiting for any outcome
        """
        self.drone = drone
        self.send = send
        self.command_timeout_s = command_timeout_s

    # ==================== Messages ====================

    def handle_raw(self, data: Any):
        """Handle one raw frame; invalid JSON is logged and dropped"""
        message = decode_message(data)
        if message is not None:
            self.handle(message)

    def handle(self, message: Mapping[str, Any]):
        """Handle one decoded message and send the reply"""
        msg_type = message.get("type")
        request_id = message.get("requestId")
        action = message.get("action")
        logger.debug(f"Received {msg_type} {action or ''} ({request_id})")

        if msg_type == "ping":
            self._send(pong(request_id))
        elif msg_type == "command":
            self._respond(request_id, lambda: self.execute_command(action, message.get("args")))
        elif msg_type == "query":
            self._respond(request_id, lambda: self.execute_query(action))
        else:
            self._send(error_response(request_id, f"Unknown message type: {msg_type}"))

    def is_long_running(self, message: Mapping[str, Any]) -> bool:
        """True for messages that may block until an outcome settles"""
        return message.get("type") == "command"

    def _respond(self, request_id: Any, call: Callable[[], Any]):
        try:
            result = call()
        except DronePilotError as e:
            self._send(error_response(request_id, e))
            return
        except Exception as e:
            logger.exception(f"Request {request_id} failed")
            self._send(error_response(request_id, e))
            return
        self._send(success_response(request_id, result))

    def _send(self, message: Dict[str, Any]):
        if self.send is None:
            logger.debug(f"No transport, dropping {message.get('type')} message")
            return
        try:
            self.send(message)
        except Exception as e:
            logger.error(f"Failed to send {message.get('type')} message: {e}")

    # ==================== Commands ====================

    def execute_command(self, action: str, args: Optional[Mapping[str, Any]] = None,
                        timeout: Optional[float] = None) -> Any:
        """
        Run a command action and wait for its result

        Raises:
            UnknownAction: If action is not in the catalogue
            ValidationError: If args are malformed
            CommandTimeout: If no result within the wait bound
            DronePilotError: The error the command or mission failed with
        """
        outcome = self.start_command(action, args)
        wait_s = timeout if timeout is not None else self.command_timeout_s
        try:
            return outcome.result(timeout=wait_s)
        except TimeoutError:
            raise CommandTimeout(f"No result for {action} after {wait_s:.0f}s")

    def start_command(self, action: str, args: Optional[Mapping[str, Any]] = None) -> Outcome:
        """
        Issue a command action without waiting

        Returns:
            Outcome of the command (already settled for cancel/pause/resume)
        """
        name = normalize_action(action)
        if name not in COMMAND_ACTIONS:
            raise UnknownAction(f"Unknown action: {action}")

        args = args or {}
        if not isinstance(args, Mapping):
            raise ValidationError("args must be an object")
        options = args.get("options")

        drone = self.drone
        control = drone.control

        if name == "run_mission":
            return self._run_mission(args)

        with drone.lock:
            if name == "hover":
                return control.hover()

            if name == "take_off":
                return control.take_off(_number(args, "altitude", None), options)

            if name == "land":
                return control.land(options)

            if name == "move_to":
                target = {
                    "x": _number(args, "x"),
                    "y": _number(args, "y", None),
                    "z": _number(args, "z"),
                }
                return control.move_to(target, options)

            if name == "move_relative":
                state = control.get_state()
                target = relative_target(
                    state.position,
                    state.heading,
                    frame=args.get("frame") or "world",
                    forward=_number(args, "forward"),
                    right=_number(args, "right"),
                    up=_number(args, "up"),
                )
                return control.move_to(target, options)

            if name == "rotate_yaw":
                angle = _number(args, "angle", None)
                if angle is None:
                    raise ValidationError("rotate_yaw requires angle")
                return control.rotate_yaw(angle, options)

            mission = drone.active_mission

            if name == "cancel":
                if mission is not None:
                    mission.cancel()
                control.cancel()
                return _settled({"cancelled": True})

            if name == "pause":
                paused = mission.pause() if mission is not None else control.pause()
                return _settled({"paused": paused})

            # resume
            resumed = mission.resume() if mission is not None else control.resume()
            return _settled({"resumed": resumed})

    def _run_mission(self, args: Mapping[str, Any]) -> Outcome:
        waypoints = args.get("waypoints")
        if not isinstance(waypoints, (list, tuple)):
            raise ValidationError("waypoints must be an array")

        def on_progress(current, total, waypoint):
            self._send(progress_message(current, total, waypoint.to_dict()))

        mission = self.drone.run_mission(waypoints, args.get("options") or {}, on_progress=on_progress)
        return mission.outcome

    # ==================== Queries ====================

    def execute_query(self, action: str) -> Dict[str, Any]:
        """
        Answer a query action

        Raises:
            UnknownAction: If action is not a known query
        """
        name = normalize_action(action)
        if name == "get_state":
            return self.drone.get_state().to_dict()
        if name == "is_active":
            return {"active": self.drone.is_controller_active()}
        raise UnknownAction(f"Unknown query: {action}")

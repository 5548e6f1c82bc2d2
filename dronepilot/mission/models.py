"""
Mission models

Defines the waypoint format consumed by the mission runner and helpers
to build common routes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import UnknownWaypointType, ValidationError


class WaypointType(Enum):
    """Available waypoint types"""
    MOVE_TO = "moveTo"
    TAKE_OFF = "takeOff"
    LAND = "land"
    HOVER = "hover"


@dataclass
class Waypoint:
    """One mission step, naming a controller operation and its parameters"""
    type: WaypointType = WaypointType.MOVE_TO
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None
    altitude: Optional[float] = None      # takeOff target
    duration_ms: Optional[float] = None   # hover hold time
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Waypoint':
        """
        Create waypoint from dictionary (wire format)

        A missing type means moveTo.

        Raises:
            UnknownWaypointType: If type is not recognized
            ValidationError: If a field has the wrong type
        """
        if not isinstance(data, Mapping):
            raise ValidationError(f"Waypoint must be an object, got {type(data).__name__}")

        raw_type = data.get("type") or WaypointType.MOVE_TO.value
        try:
            wp_type = WaypointType(raw_type)
        except ValueError:
            raise UnknownWaypointType(f"Unknown waypoint type: {raw_type}")

        options = data.get("options") or {}
        if not isinstance(options, Mapping):
            raise ValidationError("Waypoint options must be an object")

        try:
            waypoint = cls(
                type=wp_type,
                x=_opt_float(data.get("x")),
                y=_opt_float(data.get("y")),
                z=_opt_float(data.get("z")),
                altitude=_opt_float(data.get("altitude")),
                duration_ms=_opt_float(data.get("durationMs", data.get("duration_ms"))),
                options=dict(options),
            )
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Waypoint ({raw_type}): {e}")

        errors = waypoint.validate()
        if errors:
            raise ValidationError("; ".join(errors))
        return waypoint

    @classmethod
    def coerce(cls, data: Any) -> 'Waypoint':
        if isinstance(data, Waypoint):
            return data
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert waypoint to dictionary (wire format, unset fields omitted)"""
        d: Dict[str, Any] = {"type": self.type.value}
        for key, value in (("x", self.x), ("y", self.y), ("z", self.z),
                           ("altitude", self.altitude), ("durationMs", self.duration_ms)):
            if value is not None:
                d[key] = value
        if self.options:
            d["options"] = dict(self.options)
        return d

    def validate(self) -> List[str]:
        """
        Validate waypoint parameters.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []
        if self.duration_ms is not None and self.duration_ms < 0:
            errors.append("hover: durationMs cannot be negative")
        return errors


def _opt_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def parse_waypoints(data: Any) -> List[Waypoint]:
    """
    Parse a waypoint list from wire data

    Raises:
        ValidationError: If data is not a list or an entry is invalid
    """
    if not isinstance(data, (list, tuple)):
        raise ValidationError("waypoints must be an array")

    waypoints = []
    for i, item in enumerate(data):
        try:
            waypoints.append(Waypoint.coerce(item))
        except UnknownWaypointType as e:
            raise UnknownWaypointType(f"Waypoint {i}: {e}")
        except ValidationError as e:
            raise ValidationError(f"Waypoint {i}: {e}")
    return waypoints


def create_move_route(points: Iterable[Mapping[str, Any]],
                      default_options: Optional[Mapping[str, Any]] = None) -> List[Waypoint]:
    """
    Build a route made only of moveTo waypoints

    Args:
        points: Sequence of {x, y?, z, options?}
        default_options: Options applied to every waypoint (per-point
            options win)
    """
    route = []
    for point in points:
        options = dict(default_options or {})
        options.update(point.get("options") or {})
        route.append(Waypoint(
            type=WaypointType.MOVE_TO,
            x=_opt_float(point.get("x")),
            y=_opt_float(point.get("y")),
            z=_opt_float(point.get("z")),
            options=options,
        ))
    return route


def create_full_mission(points: Iterable[Mapping[str, Any]],
                        flight_altitude: float = 1.0,
                        options: Optional[Mapping[str, Any]] = None) -> List[Waypoint]:
    """
    Build take-off -> moveTo sequence -> land

    Points without ``y`` fly at ``flight_altitude``.
    """
    waypoints = [Waypoint(type=WaypointType.TAKE_OFF, altitude=flight_altitude)]

    for point in points:
        y = point.get("y")
        point_options = dict(options or {})
        point_options.update(point.get("options") or {})
        waypoints.append(Waypoint(
            type=WaypointType.MOVE_TO,
            x=_opt_float(point.get("x")),
            y=float(y) if y is not None else flight_altitude,
            z=_opt_float(point.get("z")),
            options=point_options,
        ))

    waypoints.append(Waypoint(type=WaypointType.LAND))
    return waypoints

"""
Mission management module

Provides waypoint definitions and the sequential mission runner.
"""

from .models import (
    Waypoint,
    WaypointType,
    parse_waypoints,
    create_move_route,
    create_full_mission,
)
from .runner import (
    Mission,
    MissionState,
    MissionReport,
    WaypointResult,
    run_mission,
)

__all__ = [
    # Waypoints
    'Waypoint',
    'WaypointType',
    'parse_waypoints',
    'create_move_route',
    'create_full_mission',
    # Runner
    'Mission',
    'MissionState',
    'MissionReport',
    'WaypointResult',
    'run_mission',
]

"""
Simulated vehicle

Kinematic model only: horizontal motion at the commanded speed and
heading, vertical motion towards the commanded altitude at a limited
climb rate. No aerodynamics.
"""

import math
import logging
from typing import Optional

from ..config import SimulationConfig
from ..control.types import Vec3
from .sink import MotionSink

logger = logging.getLogger(__name__)


class SimulatedVehicle:
    """
    Point-mass vehicle driven by a MotionSink

    Coordinates: +X right, +Y up, +Z towards the bottom of the map.
    Heading 0 points along +X, pi/2 along +Z.
    """

    def __init__(self,
                 config: Optional[SimulationConfig] = None,
                 position: Optional[Vec3] = None,
                 heading: float = 0.0):
        """
        Initialize vehicle

        Args:
            config: Simulation parameters (climb rate, floor)
            position: Start position (default: resting on the ground)
            heading: Start heading in radians
        """
        self.config = config or SimulationConfig()
        self.climb_rate = self.config.climb_rate
        self.floor_altitude = self.config.floor_altitude

        if position is None:
            position = Vec3(0.0, self.config.start_altitude, 0.0)
        self.position = position
        self.heading = heading
        self.sink = MotionSink(initial_altitude=position.y)

    def update(self, delta: float):
        """Integrate one tick of motion from the sink's instruction"""
        if delta <= 0:
            return

        cmd = self.sink.instruction
        x, y, z = self.position.x, self.position.y, self.position.z

        if not cmd.hover and cmd.speed > 0:
            step = cmd.speed * delta
            x += math.cos(cmd.angle) * step
            z += math.sin(cmd.angle) * step
            self.heading = cmd.angle

        max_climb = self.climb_rate * delta
        dy = cmd.altitude - y
        y += max(-max_climb, min(max_climb, dy))
        y = max(y, self.floor_altitude)

        self.position = Vec3(x, y, z)

    def teleport(self, position: Vec3, heading: Optional[float] = None):
        """Place the vehicle without simulating motion (tests, resets)"""
        self.position = position
        if heading is not None:
            self.heading = heading

"""
Vehicle-side modules: motion sink and simulated vehicle
"""

from .sink import MotionSink
from .simulated import SimulatedVehicle

__all__ = ['MotionSink', 'SimulatedVehicle']

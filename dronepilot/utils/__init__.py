"""
Utility modules
"""

from .logger import setup_logging, FlightDataLogger

__all__ = ['setup_logging', 'FlightDataLogger']

"""
drone-pilot: flight command/control engine

Turns high-level flight intents into one motion instruction per tick,
sequences them into missions, and exposes the drone to remote control.
"""

__version__ = "0.1.0"

"""
Remote-control bridge: wire protocol and websocket transport
"""

from .protocol import (
    BridgeDispatcher,
    decode_message,
    normalize_action,
    relative_target,
    success_response,
    error_response,
    progress_message,
)
from .ws_bridge import DroneWsBridge

__all__ = [
    'BridgeDispatcher',
    'DroneWsBridge',
    'decode_message',
    'normalize_action',
    'relative_target',
    'success_response',
    'error_response',
    'progress_message',
]

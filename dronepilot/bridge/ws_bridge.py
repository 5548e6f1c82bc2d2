"""
WebSocket bridge

Connects to the remote-control server, announces itself, and routes
every received frame through a BridgeDispatcher. Command messages run on
a worker pool so pings and queries are answered while a long command
(a mission, a take-off) is still waiting on its outcome.
"""

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional, TYPE_CHECKING

from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI
from websockets.sync.client import ClientConnection, connect

from ..config import BridgeConfig
from .protocol import BridgeDispatcher, decode_message

if TYPE_CHECKING:
    from ..drone import Drone

logger = logging.getLogger(__name__)


class DroneWsBridge:
    """Websocket client exposing a Drone to a remote controller"""

    def __init__(self, drone: 'Drone', config: Optional[BridgeConfig] = None):
        """
        Initialize bridge

        Args:
            drone: Drone to expose
            config: Bridge configuration (URL, reconnect policy, pool size)
        """
        self.config = config or BridgeConfig()
        self.url = self.config.url
        self.auto_reconnect = self.config.auto_reconnect
        self.reconnect_interval = self.config.reconnect_interval_s

        self.dispatcher = BridgeDispatcher(
            drone,
            send=self.send,
            command_timeout_s=self.config.command_timeout_s,
        )

        self._ws: Optional[ClientConnection] = None
        self._send_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def connected(self) -> bool:
        return self._ws is not None

    # ==================== Lifecycle ====================

    def start(self):
        """Start connecting in the background"""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="bridge-cmd",
        )
        self._thread = threading.Thread(target=self._run, name="ws-bridge", daemon=True)
        self._thread.start()
        logger.info(f"WebSocket bridge started ({self.url})")

    def stop(self):
        """Disconnect and stop reconnecting"""
        self._stop_event.set()

        ws = self._ws
        if ws is not None:
            ws.close()

        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

        logger.info("WebSocket bridge stopped")

    # ==================== I/O ====================

    def send(self, message: Dict[str, Any]):
        """Send one message; dropped with a log line when not connected"""
        ws = self._ws
        if ws is None:
            logger.debug(f"Cannot send {message.get('type')}, not connected")
            return

        data = json.dumps(message)
        with self._send_lock:
            ws.send(data)
        logger.debug(f"Sent: {data}")

    def _run(self):
        """Connect/reconnect loop"""
        while not self._stop_event.is_set():
            try:
                with connect(self.url, open_timeout=5.0) as ws:
                    self._ws = ws
                    logger.info(f"Connected to {self.url}")
                    self._session(ws)
            except ConnectionClosed as e:
                logger.info(f"WebSocket disconnected: {e}")
            except (OSError, InvalidHandshake, TimeoutError) as e:
                logger.info(
                    f"Server not available ({e}), will retry in {self.reconnect_interval:.0f}s"
                )
            except InvalidURI as e:
                logger.error(f"Invalid bridge URL: {e}")
                break
            finally:
                self._ws = None

            if not self.auto_reconnect:
                break
            self._stop_event.wait(self.reconnect_interval)

    def _session(self, ws: ClientConnection):
        """Announce and serve one connection until it closes"""
        self.send({
            "type": "init",
            "client": self.config.client_name,
            "version": self.config.client_version,
        })

        for raw in ws:
            message = decode_message(raw)
            if message is None:
                continue

            if self.dispatcher.is_long_running(message) and self._executor is not None:
                self._executor.submit(self.dispatcher.handle, message)
            else:
                self.dispatcher.handle(message)

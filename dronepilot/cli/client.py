"""
HTTP Client for the drone-pilot CLI

Communicates with dronepilot-server via REST API.
"""

import json
from pathlib import Path
from typing import Optional, Dict, Any

import requests


class ServerError(Exception):
    """Error from server response"""
    pass


class ConnectionError(Exception):
    """Server connection error"""
    pass


class DronePilotClient:
    """HTTP client for dronepilot-server"""

    def __init__(self, base_url: str = "http://localhost:8080", timeout: float = 60.0):
        """
        Args:
            base_url: Server URL
            timeout: Request timeout in seconds; commands block until the
                drone finishes them, so this bounds how long one may take
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def is_server_running(self) -> bool:
        """Check if server is accessible"""
        try:
            r = requests.get(f"{self.base_url}/api/health", timeout=2)
            return r.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def _request(self, method: str, endpoint: str, json_data: Optional[Dict] = None,
                 params: Optional[Dict] = None) -> Dict[str, Any]:
        try:
            r = requests.request(
                method,
                f"{self.base_url}{endpoint}",
                json=json_data,
                params=params,
                timeout=self.timeout
            )
        except requests.exceptions.ConnectionError:
            raise ConnectionError("Cannot connect to server")
        except requests.exceptions.Timeout:
            raise ConnectionError("Request timeout")

        try:
            data = r.json()
        except ValueError:
            raise ServerError(f"HTTP {r.status_code}: invalid response")

        if r.status_code >= 400:
            raise ServerError(data.get('error', f'HTTP {r.status_code}'))
        return data

    def _get(self, endpoint: str) -> Dict[str, Any]:
        """Make GET request"""
        return self._request('GET', endpoint)

    def _post(self, endpoint: str, json_data: Dict = None, params: Dict = None) -> Dict[str, Any]:
        """Make POST request"""
        return self._request('POST', endpoint, json_data=json_data, params=params)

    # ==================== Status ====================

    def get_health(self) -> Dict[str, Any]:
        """Get health check"""
        return self._get("/api/health")

    def get_state(self) -> Dict[str, Any]:
        """Get position, heading and controller state"""
        return self._get("/api/state")

    def is_active(self) -> bool:
        """Whether the controller is driving the drone"""
        return bool(self._get("/api/active").get('active'))

    # ==================== Commands ====================

    def command(self, action: str, args: Optional[Dict[str, Any]] = None,
                wait: bool = True) -> Dict[str, Any]:
        """
        Run a command action

        Args:
            action: Action name (hover, take_off, move_to, ...)
            args: Action arguments
            wait: Block until the command finishes

        Returns:
            Command result (or the acceptance body when not waiting)
        """
        params = None if wait else {'wait': 'false'}
        data = self._post(f"/api/commands/{action}", json_data=args or {}, params=params)
        return data.get('result', data) if wait else data

    def hover(self) -> Dict[str, Any]:
        return self.command('hover')

    def take_off(self, altitude: Optional[float] = None, wait: bool = True) -> Dict[str, Any]:
        args = {} if altitude is None else {'altitude': altitude}
        return self.command('take_off', args, wait=wait)

    def land(self, wait: bool = True) -> Dict[str, Any]:
        return self.command('land', wait=wait)

    def move_to(self, x: float, z: float, y: Optional[float] = None,
                options: Optional[Dict[str, Any]] = None, wait: bool = True) -> Dict[str, Any]:
        args: Dict[str, Any] = {'x': x, 'z': z}
        if y is not None:
            args['y'] = y
        if options:
            args['options'] = options
        return self.command('move_to', args, wait=wait)

    def move_relative(self, forward: float = 0.0, right: float = 0.0, up: float = 0.0,
                      frame: str = 'world', wait: bool = True) -> Dict[str, Any]:
        args = {'frame': frame, 'forward': forward, 'right': right, 'up': up}
        return self.command('move_relative', args, wait=wait)

    def cancel(self) -> Dict[str, Any]:
        return self.command('cancel')

    def pause(self) -> Dict[str, Any]:
        return self.command('pause')

    def resume(self) -> Dict[str, Any]:
        return self.command('resume')

    # ==================== Missions ====================

    def start_mission(self, waypoints: Any, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Start a mission from a waypoint list"""
        return self._post("/api/missions", json_data={'waypoints': waypoints, 'options': options or {}})

    def start_mission_file(self, filepath: str) -> Dict[str, Any]:
        """
        Start a mission from a JSON file

        The file holds either a waypoint array or {waypoints, options}.
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        with open(path) as f:
            data = json.load(f)

        if isinstance(data, list):
            return self.start_mission(data)
        return self.start_mission(data.get('waypoints'), data.get('options'))

    def get_active_mission(self) -> Dict[str, Any]:
        """Get active mission status"""
        return self._get("/api/missions/active")

"""
REST API for the drone-pilot server

HTTP mirror of the bridge protocol: the same command and query catalogue,
plus mission management endpoints.
"""

import threading
import logging
from typing import TYPE_CHECKING, Optional

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.serving import make_server

from ..errors import DronePilotError, UnknownAction, ValidationError
from ..bridge.protocol import BridgeDispatcher

if TYPE_CHECKING:
    from ..drone import Drone

logger = logging.getLogger(__name__)


def _error_status(error: DronePilotError) -> int:
    if isinstance(error, UnknownAction):
        return 404
    if isinstance(error, ValidationError):
        return 400
    return 409


def create_api_server(drone: 'Drone',
                      port: int = 8080,
                      host: str = '0.0.0.0',
                      command_timeout_s: float = 600.0) -> 'APIServer':
    """
    Create and start REST API server

    Args:
        drone: Drone instance
        port: HTTP port
        host: Host address
        command_timeout_s: Upper bound on waiting for a command result

    Returns:
        Running APIServer
    """
    server = APIServer(drone, port, host, command_timeout_s)
    server.start()
    return server


class APIServer:
    """REST API Server"""

    def __init__(self, drone: 'Drone',
                 port: int = 8080, host: str = '0.0.0.0',
                 command_timeout_s: float = 600.0):
        self.drone = drone
        self.port = port
        self.host = host

        self.app = Flask(__name__)
        CORS(self.app)

        self.dispatcher = BridgeDispatcher(drone, command_timeout_s=command_timeout_s)

        self._server = None
        self._thread: Optional[threading.Thread] = None
        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes"""

        # ==================== Health ====================

        @self.app.route('/api/health', methods=['GET'])
        def health():
            """Health check endpoint"""
            state = self.drone.get_state()
            return jsonify({
                'status': 'ok',
                'state': state.controller_state.value,
                'tick_loop': self.drone.is_running,
            })

        # ==================== Queries ====================

        @self.app.route('/api/state', methods=['GET'])
        def get_state():
            """Current position, heading and controller state"""
            return jsonify(self.dispatcher.execute_query('get_state'))

        @self.app.route('/api/active', methods=['GET'])
        def is_active():
            """Whether the controller currently drives the vehicle"""
            return jsonify(self.dispatcher.execute_query('is_active'))

        # ==================== Commands ====================

        @self.app.route('/api/commands/<action>', methods=['POST'])
        def run_command(action: str):
            """
            Run a command action

            Request body: action args (same as bridge ``args``)
            Query: wait=false to return 202 without waiting for the result
            """
            args = request.get_json(silent=True) or {}
            wait = request.args.get('wait', 'true').lower() not in ('false', '0', 'no')

            try:
                if not wait:
                    outcome = self.dispatcher.start_command(action, args)
                    return jsonify({'accepted': True, 'action': action,
                                    'done': outcome.done()}), 202

                result = self.dispatcher.execute_command(action, args)
                return jsonify({'ok': True, 'result': result})

            except DronePilotError as e:
                return jsonify({'ok': False, 'error': str(e)}), _error_status(e)

        # ==================== Missions ====================

        @self.app.route('/api/missions', methods=['POST'])
        def start_mission():
            """
            Start a mission, cancelling any mission still running

            Request body: {waypoints: [...], options: {continueOnError, timeoutMs}}
            """
            data = request.get_json(silent=True)
            if not data:
                return jsonify({'error': 'No data provided'}), 400
            if not isinstance(data, dict):
                return jsonify({'error': 'Body must be an object', 'valid': False}), 400

            options = data.get('options') or {}
            if not isinstance(options, dict):
                return jsonify({'error': 'options must be an object', 'valid': False}), 400

            try:
                mission = self.drone.run_mission(data.get('waypoints'), options)
            except ValidationError as e:
                return jsonify({'error': str(e), 'valid': False}), 400

            return jsonify({
                'success': True,
                'waypoints': len(mission.waypoints),
                'progress': mission.get_progress(),
            }), 202

        @self.app.route('/api/missions/active', methods=['GET'])
        def get_active_mission():
            """Get active mission execution status"""
            mission = self.drone.active_mission
            if mission is None:
                return jsonify({'active': False})

            with self.drone.lock:
                status = mission.get_progress()
                status['active'] = True
                status['results'] = [r.to_dict() for r in mission.results]
            return jsonify(status)

        @self.app.route('/api/missions/active/pause', methods=['POST'])
        def pause_mission():
            """Pause active mission (hover in place)"""
            mission = self.drone.active_mission
            with self.drone.lock:
                if mission is None or not mission.pause():
                    return jsonify({'error': 'No running mission'}), 400
            return jsonify({'success': True, 'message': 'Mission paused'})

        @self.app.route('/api/missions/active/resume', methods=['POST'])
        def resume_mission():
            """Resume paused mission"""
            mission = self.drone.active_mission
            with self.drone.lock:
                if mission is None or not mission.resume():
                    return jsonify({'error': 'Mission not paused'}), 400
            return jsonify({'success': True, 'message': 'Mission resumed'})

        @self.app.route('/api/missions/active/cancel', methods=['POST'])
        def cancel_mission():
            """Cancel active mission; the drone hovers in place"""
            mission = self.drone.active_mission
            if mission is None:
                return jsonify({'error': 'No active mission'}), 400

            with self.drone.lock:
                mission.cancel()
            return jsonify({'success': True, 'message': 'Mission cancelled'})

    def start(self):
        """Start API server in background thread"""
        self._server = make_server(self.host, self.port, self.app, threaded=True)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info(f"REST API started on http://{self.host}:{self.port}")

    def stop(self):
        """Stop API server"""
        if self._server is not None:
            self._server.shutdown()
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

"""
Tests for the remote-control protocol and websocket bridge
"""

import json
import math
import queue
import threading

import pytest

from dronepilot.bridge import BridgeDispatcher, DroneWsBridge, normalize_action, relative_target
from dronepilot.config import BridgeConfig
from dronepilot.control.types import ControllerState, Vec3
from dronepilot.errors import CommandTimeout, UnknownAction, ValidationError


@pytest.fixture
def sent():
    """Fixture collecting outgoing messages"""
    return []


@pytest.fixture
def dispatcher(drone, sent):
    """Dispatcher over a manually stepped drone"""
    return BridgeDispatcher(drone, send=sent.append, command_timeout_s=0.05)


@pytest.fixture
def live_dispatcher(running_drone, sent):
    """Dispatcher over a drone with its tick loop running"""
    return BridgeDispatcher(running_drone, send=sent.append, command_timeout_s=10.0)


class TestRelativeTarget:
    """Test relative-move math"""

    def test_world_frame(self):
        target = relative_target(Vec3(1.0, 1.0, 1.0), heading=2.0, frame="world",
                                 forward=0.5, right=0.25, up=0.1)
        assert target == pytest.approx({"x": 1.25, "y": 1.1, "z": 0.5})

    def test_body_frame_heading_zero(self):
        target = relative_target(Vec3(0.0, 1.0, 0.0), heading=0.0, frame="body", forward=1.0)
        assert target == pytest.approx({"x": 1.0, "y": 1.0, "z": 0.0})

        target = relative_target(Vec3(0.0, 1.0, 0.0), heading=0.0, frame="body", right=1.0)
        assert target["x"] == pytest.approx(0.0, abs=1e-9)
        assert target["z"] == pytest.approx(1.0)

    def test_body_frame_rotated(self):
        target = relative_target(Vec3(0.0, 1.0, 0.0), heading=math.pi / 2, frame="body",
                                 forward=1.0, right=1.0)
        # forward is +Z, right is -X
        assert target["x"] == pytest.approx(-1.0)
        assert target["z"] == pytest.approx(1.0)

    def test_unknown_frame(self):
        with pytest.raises(ValidationError, match="Unknown frame"):
            relative_target(Vec3(), 0.0, frame="camera", forward=1.0)


class TestMessages:
    """Test message routing"""

    def test_ping(self, dispatcher, sent):
        dispatcher.handle({"type": "ping", "requestId": "r1"})
        assert sent == [{"type": "pong", "requestId": "r1"}]

    def test_invalid_json_dropped(self, dispatcher, sent):
        dispatcher.handle_raw("{not json")
        dispatcher.handle_raw("[1, 2]")
        assert sent == []

    def test_handle_raw(self, dispatcher, sent):
        dispatcher.handle_raw(json.dumps({"type": "ping", "requestId": 7}))
        assert sent == [{"type": "pong", "requestId": 7}]

    def test_unknown_message_type(self, dispatcher, sent):
        dispatcher.handle({"type": "subscribe", "requestId": "r2"})
        assert sent == [{
            "type": "response", "requestId": "r2", "ok": False,
            "error": "Unknown message type: subscribe",
        }]

    def test_query_state(self, dispatcher, sent):
        dispatcher.handle({"type": "query", "requestId": 1, "action": "getState"})

        response = sent[0]
        assert response["ok"] is True
        assert response["result"]["position"] == {"x": 0.0, "y": 0.05, "z": 0.0}
        assert response["result"]["state"] == "idle"

    def test_query_is_active(self, dispatcher, sent):
        dispatcher.handle({"type": "query", "requestId": 1, "action": "is_active"})
        assert sent[0]["result"] == {"active": False}

    def test_unknown_query(self, dispatcher, sent):
        dispatcher.handle({"type": "query", "requestId": 1, "action": "battery"})
        assert sent[0]["ok"] is False
        assert sent[0]["error"] == "Unknown query: battery"

    def test_unknown_action(self, dispatcher, sent):
        dispatcher.handle({"type": "command", "requestId": 3, "action": "barrelRoll", "args": {}})
        assert sent[0] == {
            "type": "response", "requestId": 3, "ok": False,
            "error": "Unknown action: barrelRoll",
        }

    def test_errors_do_not_stop_handling(self, dispatcher, sent):
        dispatcher.handle({"type": "command", "requestId": 1, "action": "nope"})
        dispatcher.handle({"type": "ping", "requestId": 2})
        assert [m["type"] for m in sent] == ["response", "pong"]

    def test_send_failure_is_contained(self, drone):
        def broken_send(message):
            raise ConnectionResetError("gone")

        dispatcher = BridgeDispatcher(drone, send=broken_send)
        dispatcher.handle({"type": "ping", "requestId": 1})

    def test_normalize_action(self):
        assert normalize_action("moveRelative") == "move_relative"
        assert normalize_action("land") == "land"
        assert normalize_action(None) is None


class TestCommands:
    """Test the command catalogue"""

    def test_start_command_queues(self, dispatcher, drone):
        outcome = dispatcher.start_command("takeOff", {"altitude": 0.8})

        assert not outcome.done()
        assert drone.control.queue[0].target_altitude == 0.8

    def test_move_to_defaults(self, dispatcher, drone):
        dispatcher.start_command("move_to", {"x": 1})
        target = drone.control.queue[0].target
        assert (target.x, target.y, target.z) == (1.0, None, 0.0)

    def test_move_relative_world(self, dispatcher, drone):
        drone.vehicle.teleport(Vec3(1.0, 1.0, 1.0))
        dispatcher.start_command("move_relative", {"forward": 0.5, "right": 0.5, "up": 0.2})

        target = drone.control.queue[0].target
        assert target.x == pytest.approx(1.5)
        assert target.y == pytest.approx(1.2)
        assert target.z == pytest.approx(0.5)

    def test_move_relative_bad_frame(self, dispatcher, sent):
        dispatcher.handle({"type": "command", "requestId": 1, "action": "move_relative",
                           "args": {"frame": "sideways", "forward": 1}})
        assert sent[0]["ok"] is False
        assert "Unknown frame" in sent[0]["error"]

    def test_bad_argument_type(self, dispatcher):
        with pytest.raises(ValidationError, match="altitude must be a number"):
            dispatcher.start_command("take_off", {"altitude": "high"})

    def test_rotate_yaw_requires_angle(self, dispatcher):
        with pytest.raises(ValidationError):
            dispatcher.start_command("rotate_yaw", {})

    def test_unknown_action_raises(self, dispatcher):
        with pytest.raises(UnknownAction):
            dispatcher.execute_command("teleport", {})

    def test_cancel_pause_resume_immediate(self, dispatcher, drone):
        assert dispatcher.execute_command("pause") == {"paused": False}

        dispatcher.start_command("take_off", {"altitude": 1.0})
        drone.update(0.02)

        assert dispatcher.execute_command("pause") == {"paused": True}
        assert drone.control.state == ControllerState.PAUSED
        assert dispatcher.execute_command("resume") == {"resumed": True}
        assert dispatcher.execute_command("cancel") == {"cancelled": True}
        assert not drone.control.is_active()

    def test_wait_bound(self, dispatcher, sent):
        # Nothing ticks the drone, so the take-off can never finish
        with pytest.raises(CommandTimeout, match="No result for take_off"):
            dispatcher.execute_command("take_off", {})

        dispatcher.handle({"type": "command", "requestId": 9, "action": "land"})
        assert sent[-1]["requestId"] == 9
        assert sent[-1]["ok"] is False

    def test_run_mission_requires_array(self, dispatcher, sent):
        dispatcher.handle({"type": "command", "requestId": 1, "action": "run_mission",
                           "args": {"waypoints": "square"}})
        assert sent[0]["error"] == "waypoints must be an array"

    def test_cancel_stops_mission(self, dispatcher, drone):
        dispatcher.start_command("run_mission", {"waypoints": [{"type": "takeOff"}, {"type": "land"}]})
        mission = drone.active_mission
        drone.update(0.02)

        dispatcher.execute_command("cancel")
        assert mission.outcome.failed


class TestLiveCommands:
    """Test blocking commands against a running tick loop"""

    def test_hover(self, live_dispatcher, sent):
        live_dispatcher.handle({"type": "command", "requestId": "h", "action": "hover"})

        response = sent[0]
        assert response["ok"] is True
        assert response["result"]["position"]["y"] == pytest.approx(0.05)

    def test_move_relative_zero_completes(self, live_dispatcher, sent):
        live_dispatcher.handle({"type": "command", "requestId": "m", "action": "moveRelative",
                                "args": {"frame": "body"}})

        response = sent[0]
        assert response["ok"] is True
        assert response["result"]["target"]["x"] == pytest.approx(0.0)

    def test_run_mission_streams_progress(self, live_dispatcher, sent):
        waypoints = [{"type": "hover", "durationMs": 0}, {"type": "hover", "durationMs": 10}]
        live_dispatcher.handle({"type": "command", "requestId": "mission-1", "action": "runMission",
                                "args": {"waypoints": waypoints}})

        progress = [m for m in sent if m["type"] == "progress"]
        assert [(m["current"], m["total"]) for m in progress] == [(0, 2), (1, 2)]
        assert progress[0]["action"] == "mission"
        assert progress[0]["waypoint"] == {"type": "hover", "durationMs": 0.0}

        response = sent[-1]
        assert response["type"] == "response"
        assert response["requestId"] == "mission-1"
        assert response["ok"] is True
        assert response["result"]["waypointsCompleted"] == 2


class TestWsBridge:
    """Test the websocket transport against a local server"""

    def test_init_ping_query(self, running_drone):
        from websockets.sync.server import serve

        received = queue.Queue()

        def handler(ws):
            received.put(json.loads(ws.recv(timeout=5)))
            ws.send(json.dumps({"type": "ping", "requestId": 1}))
            received.put(json.loads(ws.recv(timeout=5)))
            ws.send(json.dumps({"type": "query", "requestId": 2, "action": "isActive"}))
            received.put(json.loads(ws.recv(timeout=5)))

        with serve(handler, "localhost", 0) as server:
            port = server.socket.getsockname()[1]
            threading.Thread(target=server.serve_forever, daemon=True).start()

            bridge = DroneWsBridge(running_drone, BridgeConfig(
                url=f"ws://localhost:{port}", auto_reconnect=False))
            bridge.start()
            try:
                init = received.get(timeout=5)
                pong = received.get(timeout=5)
                answer = received.get(timeout=5)
            finally:
                bridge.stop()
                server.shutdown()

        assert init == {"type": "init", "client": "drone-simulator", "version": "1.0.0"}
        assert pong == {"type": "pong", "requestId": 1}
        assert answer == {"type": "response", "requestId": 2, "ok": True,
                          "result": {"active": False}}

    def test_send_when_disconnected_is_dropped(self, drone):
        bridge = DroneWsBridge(drone)
        assert not bridge.connected
        bridge.send({"type": "pong", "requestId": 1})

"""
Tests for the CLI and its HTTP client
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from dronepilot.cli.client import DronePilotClient, ServerError, ConnectionError
from dronepilot.cli.main import build_parser, main


def response(status=200, data=None):
    r = MagicMock()
    r.status_code = status
    r.json.return_value = data if data is not None else {}
    return r


class TestClient:
    """Test request handling"""

    @patch("dronepilot.cli.client.requests.request")
    def test_command_returns_result(self, mock_request):
        mock_request.return_value = response(200, {"ok": True, "result": {"altitude": 1.0}})
        client = DronePilotClient("http://drone:8080/")

        assert client.take_off(1.0) == {"altitude": 1.0}
        method, url = mock_request.call_args[0]
        assert method == "POST"
        assert url == "http://drone:8080/api/commands/take_off"
        assert mock_request.call_args[1]["json"] == {"altitude": 1.0}

    @patch("dronepilot.cli.client.requests.request")
    def test_no_wait_param(self, mock_request):
        mock_request.return_value = response(202, {"accepted": True})
        client = DronePilotClient()

        assert client.land(wait=False) == {"accepted": True}
        assert mock_request.call_args[1]["params"] == {"wait": "false"}

    @patch("dronepilot.cli.client.requests.request")
    def test_server_error(self, mock_request):
        mock_request.return_value = response(404, {"ok": False, "error": "Unknown action: x"})
        client = DronePilotClient()

        with pytest.raises(ServerError, match="Unknown action: x"):
            client.command("x")

    @patch("dronepilot.cli.client.requests.request")
    def test_connection_error(self, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError()
        client = DronePilotClient()

        with pytest.raises(ConnectionError, match="Cannot connect"):
            client.get_state()

    def test_mission_file(self, tmp_path):
        path = tmp_path / "square.json"
        path.write_text('{"waypoints": [{"type": "land"}], "options": {"timeoutMs": 1000}}')
        client = DronePilotClient()

        with patch.object(client, "_post", return_value={"success": True}) as post:
            client.start_mission_file(str(path))
        post.assert_called_once_with(
            "/api/missions",
            json_data={"waypoints": [{"type": "land"}], "options": {"timeoutMs": 1000}},
        )

    def test_mission_file_missing(self):
        with pytest.raises(FileNotFoundError):
            DronePilotClient().start_mission_file("/nonexistent/mission.json")


class TestMain:
    """Test argument parsing and dispatch"""

    def test_parser(self):
        args = build_parser().parse_args(["goto", "1", "-2", "--y", "1.5", "--speed", "0.1"])
        assert (args.x, args.z, args.y, args.speed) == (1.0, -2.0, 1.5, 0.1)

        args = build_parser().parse_args(["move", "--forward", "0.5", "--frame", "body"])
        assert args.forward == 0.5
        assert args.frame == "body"

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out

    @patch.object(DronePilotClient, "is_server_running", return_value=False)
    def test_server_not_running(self, _):
        assert main(["status"]) == 1

    @patch.object(DronePilotClient, "is_server_running", return_value=True)
    @patch.object(DronePilotClient, "cancel", return_value={"cancelled": True})
    def test_cancel(self, mock_cancel, _, capsys):
        assert main(["cancel"]) == 0
        mock_cancel.assert_called_once()
        assert "Cancelled" in capsys.readouterr().out

    @patch.object(DronePilotClient, "is_server_running", return_value=True)
    @patch.object(DronePilotClient, "take_off", side_effect=ServerError("Command timeout"))
    def test_error_exit_code(self, _, __, capsys):
        assert main(["takeoff", "1.0"]) == 1
        assert "Command timeout" in capsys.readouterr().out

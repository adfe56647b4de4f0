"""Tests for the stdio MCP client and the end-to-end smoke check."""

import logging
import queue
from unittest.mock import MagicMock, patch

import pytest

from weather_mcp import smoke
from weather_mcp.client import MCPClientError, MCPStdIOClient
from weather_mcp.logs import attach_file_handler


@pytest.fixture
def client(tmp_path):
    return MCPStdIOClient(log_file=str(tmp_path / "mcp_server.log"), timeout=0.1)


class FakeToolClient:
    def __init__(self, names=("get_alerts", "get_forecast"), answers=None):
        self.names = list(names)
        self.answers = answers or {
            "get_alerts": "\nEvent: Wind Advisory\nArea: Coast\n",
            "get_forecast": "Unable to fetch forecast data for this location.",
        }
        self.calls = []

    def list_tools(self):
        return self.names

    def call_tool(self, name, arguments):
        self.calls.append((name, arguments))
        return self.answers[name]


class TestCallTool:
    def test_returns_first_text_item(self, client):
        result = {"content": [{"type": "image", "data": ""}, {"type": "text", "text": "No active alerts for this state."}]}

        with patch.object(client, "_send_request", return_value=result) as send:
            assert client.call_tool("get_alerts", {"state": "CA"}) == "No active alerts for this state."

        send.assert_called_once_with("tools/call", {"name": "get_alerts", "arguments": {"state": "CA"}})

    def test_error_result_raises(self, client):
        result = {"isError": True, "content": [{"type": "text", "text": "Error fetching weather alerts."}]}

        with patch.object(client, "_send_request", return_value=result):
            with pytest.raises(MCPClientError, match="Error fetching weather alerts"):
                client.call_tool("get_alerts", {"state": "CA"})

    def test_list_tools(self, client):
        result = {"tools": [{"name": "get_alerts"}, {"name": "get_forecast"}]}

        with patch.object(client, "_send_request", return_value=result):
            assert client.list_tools() == ["get_alerts", "get_forecast"]


class TestProtocol:
    def test_request_requires_running_server(self, client):
        with pytest.raises(MCPClientError, match="not running"):
            client.call_method("tools/list", {})

    def test_response_routed_by_id(self, client):
        q = queue.Queue()
        client._pending[7] = q

        client._handle_message({"jsonrpc": "2.0", "id": 7, "result": {"ok": True}})
        client._handle_message({"jsonrpc": "2.0", "method": "notifications/message"})

        assert q.get_nowait()["result"] == {"ok": True}
        assert q.empty()

    def test_timeout_raises(self, client):
        client.proc = MagicMock()
        client.proc.poll.return_value = None

        with pytest.raises(MCPClientError, match="Timeout waiting for response to tools/list"):
            client.call_method("tools/list", {})

        assert client._pending == {}

    def test_error_response_raises(self, client):
        client.proc = MagicMock()
        client.proc.poll.return_value = None

        def respond(message):
            client._handle_message({"id": message["id"], "error": {"message": "Unknown tool: nope"}})

        with patch.object(client, "_write_message", side_effect=respond):
            with pytest.raises(MCPClientError, match="Unknown tool"):
                client.call_tool("nope", {})


class TestLogging:
    def test_file_handler_not_duplicated(self, tmp_path):
        logger = logging.getLogger("weather.tests.handlers")
        path = str(tmp_path / "nested" / "test.log")

        attach_file_handler(logger, path)
        attach_file_handler(logger, path)

        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert logger.propagate is False
        for h in file_handlers:
            logger.removeHandler(h)
            h.close()


class TestSmokeChecks:
    def test_passes_with_expected_answers(self):
        fake = FakeToolClient()

        answers = smoke.run_checks(fake)

        assert set(answers) == {"get_alerts", "get_forecast"}
        assert fake.calls[0] == ("get_alerts", {"state": "CA"})
        assert fake.calls[1] == ("get_forecast", {"latitude": 37.7749, "longitude": -122.4194})

    def test_missing_tool_fails(self):
        with pytest.raises(smoke.SmokeCheckError, match="get_forecast"):
            smoke.run_checks(FakeToolClient(names=["get_alerts"]))

    def test_unexpected_answer_fails(self):
        fake = FakeToolClient(answers={"get_alerts": "Event: x", "get_forecast": "sunny"})

        with pytest.raises(smoke.SmokeCheckError, match="get_forecast"):
            smoke.run_checks(fake)

    def test_empty_answer_fails(self):
        fake = FakeToolClient(answers={"get_alerts": "", "get_forecast": "Temperature: 1°F"})

        with pytest.raises(smoke.SmokeCheckError, match="empty"):
            smoke.run_checks(fake)


def test_smoke_against_real_server(tmp_path, monkeypatch):
    """Start the server over stdio with an unreachable upstream; both tools must still answer."""
    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    monkeypatch.setenv("NWS_API_BASE", "http://127.0.0.1:9")
    monkeypatch.setenv("NWS_TIMEOUT", "2")

    client = MCPStdIOClient(log_file=str(tmp_path / "mcp_server.log"), timeout=30.0)
    client.start()
    try:
        answers = smoke.run_checks(client)
    finally:
        client.stop()

    assert answers["get_alerts"] == "Unable to fetch alerts or no alerts found."
    assert answers["get_forecast"] == "Unable to fetch forecast data for this location."

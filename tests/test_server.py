"""Tests for the MCP server tools."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

import pytest

from a131_spindle.config import SpindleConfig
from a131_spindle.driver import SpindleDriver
from a131_spindle.protocol.framing import encode_status


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
        # Remove cached server module so it re-imports with our mock
        sys.modules.pop("a131_spindle.server", None)
        import a131_spindle.server as server_mod

    return server_mod


@pytest.fixture
def server(line, monkeypatch):
    """Server module wired to a driver over the fake line."""
    server = _get_server_module()
    monkeypatch.setattr(server, "_driver", SpindleDriver(line, read_timeout=0.05))
    monkeypatch.setattr(server, "_config", SpindleConfig())
    return server


def test_tools_require_connection():
    server = _get_server_module()
    with pytest.raises(RuntimeError):
        server.spindle_on()
    assert server.get_state() == {"connected": False}


def test_spindle_on_off(server, channel):
    assert server.spindle_on() == {"is_on": True, "direction": "forward"}
    assert server.spindle_off() == {"is_on": False}
    assert len(channel.written) == 2


def test_set_speed(server, channel):
    result = server.set_speed(1559)
    assert result["commanded_rpm"] == 1500
    assert channel.written[0][2:4] == b"\x09\xC4"


def test_set_speed_rejects_sub_hz(server, channel):
    result = server.set_speed(30)
    assert result["type"] == "ValueError"
    assert channel.written == []


def test_report_speed(server, channel):
    channel.feed(encode_status([0, 2, 5, 9, 9]))
    result = server.report_speed()
    assert result["hz_centi"] == 2599
    assert result["rpm"] == 1500
    assert result["report"] == "Current RPM: 1500\n"


def test_report_speed_timeout(server):
    result = server.report_speed(timeout=0.01)
    assert result["type"] == "DriveTimeout"


def test_read_status(server, channel):
    channel.feed(b"\x07" + encode_status([0, 3, 0, 0, 0], 0x03))
    result = server.read_status()
    assert result["rpm"] == 1800
    assert result["fault"] is True
    assert result["direction"] == "forward"


def test_get_state(server):
    server.spindle_on()
    state = server.get_state()
    assert state["connected"] is True
    assert state["is_on"] is True


def test_connect_and_disconnect(monkeypatch):
    server = _get_server_module()
    for key in ("PORT", "BAUDRATE", "DIRECTION_LINE", "GPIO_PIN", "REVERSE", "READ_TIMEOUT"):
        monkeypatch.delenv("A131_" + key, raising=False)
    channel = MagicMock()
    with patch.object(server, "SerialChannel", return_value=channel) as channel_cls:
        result = server.connect(port="/dev/ttyTEST", reverse=True)
    channel_cls.assert_called_once_with("/dev/ttyTEST", 9600)
    channel.open.assert_called_once()
    assert result["connected"] is True
    assert result["direction"] == "reverse"
    assert server.connect()["message"] == "Already connected"

    assert server.disconnect() == {"disconnected": True}
    channel.close.assert_called_once()
    assert server.get_state() == {"connected": False}


def test_connect_bad_setting(monkeypatch):
    server = _get_server_module()
    monkeypatch.delenv("A131_GPIO_PIN", raising=False)
    result = server.connect(direction_line="gpio")
    assert "error" in result


def test_connect_argument_overrides_env(monkeypatch):
    """connect(direction_line='rts') works even if the env asks for GPIO."""
    server = _get_server_module()
    monkeypatch.setenv("A131_DIRECTION_LINE", "gpio")
    monkeypatch.delenv("A131_GPIO_PIN", raising=False)
    with patch.object(server, "SerialChannel", return_value=MagicMock()):
        result = server.connect(direction_line="rts")
    assert result["direction_line"] == "rts"
    server.disconnect()


def test_connect_failure_releases_gpio(monkeypatch):
    """A failure after the GPIO pin is set up closes it along with the port."""
    server = _get_server_module()
    channel = MagicMock()
    gpio = MagicMock()
    with patch.object(server, "SerialChannel", return_value=channel), \
            patch.object(server, "GpioDirectionLine", return_value=gpio), \
            patch.object(server, "HalfDuplexLine", side_effect=RuntimeError("owned")):
        with pytest.raises(RuntimeError):
            server.connect(direction_line="gpio", gpio_pin=18)
    gpio.open.assert_called_once()
    gpio.close.assert_called_once()
    channel.close.assert_called_once()
    assert server.get_state() == {"connected": False}

"""MCP server entry point for an A131 spindle inverter.

Exposes the spindle driver as tools via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import SpindleConfig
from .driver import SpindleDriver
from .exceptions import A131Error
from .protocol.parser import format_rpm_report
from .transport.direction import GpioDirectionLine, RtsDirectionLine
from .transport.half_duplex import HalfDuplexLine
from .transport.serial_channel import SerialChannel

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "a131-spindle",
    instructions="Control a CNC spindle driven by an A131 inverter over RS-485",
)

# Global connection state
_channel: SerialChannel | None = None
_gpio: GpioDirectionLine | None = None
_line: HalfDuplexLine | None = None
_driver: SpindleDriver | None = None
_config: SpindleConfig | None = None


def _get_driver() -> SpindleDriver:
    """Get the active spindle driver, raising if not connected."""
    if _driver is None:
        raise RuntimeError(
            "Not connected to the inverter. Use the 'connect' tool first."
        )
    return _driver


def _error(e: Exception) -> dict[str, Any]:
    logger.warning("%s: %s", type(e).__name__, e)
    return {"error": str(e), "type": type(e).__name__}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    port: str | None = None,
    baudrate: int | None = None,
    direction_line: str | None = None,
    gpio_pin: int | None = None,
    reverse: bool | None = None,
) -> dict[str, Any]:
    """Open the RS-485 link to the inverter.

    Settings not given here come from the A131_* environment variables,
    then from the defaults (/dev/ttyUSB0, 9600 baud, RTS direction control).

    Args:
        port: Serial device, e.g. /dev/ttyUSB0.
        baudrate: Link speed; the A131 uses 9600.
        direction_line: 'rts' or 'gpio'.
        gpio_pin: BCM pin number when direction_line is 'gpio'.
        reverse: Start the spindle in reverse.
    """
    global _channel, _gpio, _line, _driver, _config
    if _driver is not None:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _config.port,
        }

    try:
        config = SpindleConfig.from_env(
            port=port,
            baudrate=baudrate,
            direction_line=direction_line,
            gpio_pin=gpio_pin,
            reverse=reverse,
        )
    except ValueError as e:
        return _error(e)

    channel = SerialChannel(config.port, config.baudrate)
    channel.open()
    gpio = None
    try:
        if config.direction_line == "gpio":
            gpio = GpioDirectionLine(config.gpio_pin)
            gpio.open()
            direction = gpio
        else:
            direction = RtsDirectionLine(channel)
        line = HalfDuplexLine(channel, direction, config.byte_time_ms)
    except Exception:
        if gpio is not None:
            gpio.close()
        channel.close()
        raise

    _channel, _gpio, _line, _config = channel, gpio, line, config
    _driver = SpindleDriver(line, config.direction, config.read_timeout)
    logger.info("Connected to inverter on %s", config.port)
    return {
        "connected": True,
        "port": config.port,
        "baudrate": config.baudrate,
        "direction_line": config.direction_line,
        "direction": config.direction.value,
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Release the RS-485 link."""
    global _channel, _gpio, _line, _driver, _config
    if _driver is None:
        return {"disconnected": True}
    try:
        _line.release()
        if _gpio is not None:
            _gpio.close()
    finally:
        _channel.close()
        _channel = _gpio = _line = _driver = _config = None
    return {"disconnected": True}


# ─── SPINDLE TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def spindle_on() -> dict[str, Any]:
    """Start the spindle in the configured direction."""
    driver = _get_driver()
    try:
        driver.turn_on()
    except A131Error as e:
        return _error(e)
    return {"is_on": driver.is_on, "direction": driver.direction.value}


@mcp.tool()
def spindle_off() -> dict[str, Any]:
    """Stop the spindle."""
    driver = _get_driver()
    try:
        driver.turn_off()
    except A131Error as e:
        return _error(e)
    return {"is_on": driver.is_on}


@mcp.tool()
def set_speed(rpm: int) -> dict[str, Any]:
    """Set the target spindle speed.

    The drive works in whole Hz here: the speed is truncated to a
    multiple of 60 RPM. 1-59 RPM is rejected; use 0 for zero speed.

    Args:
        rpm: Target speed in revolutions per minute.
    """
    driver = _get_driver()
    try:
        driver.set_speed(rpm)
    except (A131Error, ValueError) as e:
        return _error(e)
    return {"target_rpm": rpm, "commanded_rpm": (rpm // 60) * 60, "is_on": driver.is_on}


@mcp.tool()
def report_speed(timeout: float | None = None) -> dict[str, Any]:
    """Read the speed the inverter is currently displaying.

    Args:
        timeout: Seconds to wait for a status frame.
    """
    driver = _get_driver()
    try:
        reading = driver.report_speed(timeout)
    except A131Error as e:
        return _error(e)
    return {
        "hz": reading.hz,
        "hz_centi": reading.hz_centi,
        "rpm": reading.rpm,
        "report": format_rpm_report(reading.rpm),
    }


@mcp.tool()
def read_status(timeout: float | None = None) -> dict[str, Any]:
    """Read frequency, rotation and fault indicators from the inverter.

    Resynchronises to the next valid frame if the stream is out of step.

    Args:
        timeout: Seconds to wait for a valid status frame.
    """
    driver = _get_driver()
    try:
        report = driver.read_status(timeout, resync=True)
    except A131Error as e:
        return _error(e)
    return report.to_dict()


@mcp.tool()
def get_state() -> dict[str, Any]:
    """Report the commanded state without touching the link."""
    if _driver is None:
        return {"connected": False}
    return {
        "connected": True,
        "port": _config.port,
        "is_on": _driver.is_on,
        "direction": _driver.direction.value,
    }


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

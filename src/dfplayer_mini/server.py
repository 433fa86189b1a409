"""MCP server entry point for the DFPlayer Mini.

Exposes playback tools and the command table via the Model Context
Protocol using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import fields
from enum import IntEnum
from typing import Any

from mcp.server.fastmcp import FastMCP

from .models.playback import (
    EqMode,
    PlaybackMode,
    PlaybackSource,
    enum_by_name,
)
from .protocol.commands import PARAMETERIZED, QUERIES, Command, CommandCode
from .protocol.responses import Message, ModuleError, QueryReply
from .transport.serial_connection import DEFAULT_PORT, READ_TIMEOUT_S, SerialConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "dfplayer-mini",
    instructions="MCP server for the DFPlayer Mini serial MP3 module",
)

# Global connection state
_connection: SerialConnection | None = None

MAX_VOLUME = 30
MAX_GAIN = 31
MAX_TRACK = 2999

FILE_COUNT_QUERIES = {
    "tf": CommandCode.GET_TF_FILE_COUNT,
    "udisk": CommandCode.GET_UDISK_FILE_COUNT,
    "flash": CommandCode.GET_FLASH_FILE_COUNT,
}

CURRENT_TRACK_QUERIES = {
    "tf": CommandCode.GET_TF_CURRENT_TRACK,
    "udisk": CommandCode.GET_UDISK_CURRENT_TRACK,
    "flash": CommandCode.GET_FLASH_CURRENT_TRACK,
}


def _get_connection() -> SerialConnection:
    """Get the active serial connection, raising if not connected."""
    if _connection is None or not _connection.connected:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _connection


def _jsonable(value: Any) -> Any:
    if isinstance(value, IntEnum):
        return value.name.lower()
    if isinstance(value, Command):
        return {"command": value.code.name.lower(), "param": value.param}
    return value


def describe_message(message: Message) -> dict[str, Any]:
    """Turn a decoded message into a JSON-friendly dict."""
    result: dict[str, Any] = {"type": type(message).__name__}
    for f in fields(message):
        result[f.name] = _jsonable(getattr(message, f.name))
    return result


def _send(command: Command) -> dict[str, Any]:
    conn = _get_connection()
    conn.send(command)
    return {"sent": command.code.name.lower(), "param": command.param}


def _query(code: CommandCode, decode: type[IntEnum] | None = None) -> dict[str, Any]:
    """Send a query and wait for the reply with the same code.

    Notifications that arrive in between are returned under ``events``.
    """
    conn = _get_connection()
    conn.send(Command.query(code))

    events = []
    deadline = time.monotonic() + READ_TIMEOUT_S
    while True:
        remaining = deadline - time.monotonic()
        message = conn.read_message(remaining) if remaining > 0 else None
        if message is None:
            break
        if isinstance(message, QueryReply) and message.query == code:
            result: dict[str, Any] = {"query": code.name.lower(), "value": message.value}
            if decode is not None:
                try:
                    result["name"] = decode(message.value).name.lower()
                except ValueError:
                    logger.debug("Unknown %s value %d", decode.__name__, message.value)
            if events:
                result["events"] = events
            return result
        if isinstance(message, ModuleError):
            return {"error": f"Module error: {message.error.name.lower()}"}
        events.append(describe_message(message))

    result = {"error": "No response from device"}
    if events:
        result["events"] = events
    return result


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(port: str = DEFAULT_PORT) -> dict[str, Any]:
    """Open the serial link to the DFPlayer Mini (9600 baud, 8-N-1).

    Args:
        port: Serial device path or pyserial URL.
    """
    global _connection
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _connection.port_info.port,
        }

    _connection = SerialConnection(port)
    info = _connection.open()
    return {"connected": True, "port": info.port, "baudrate": info.baudrate}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial link."""
    global _connection
    if _connection is None:
        return {"disconnected": True}
    _connection.close()
    _connection = None
    return {"disconnected": True}


# ─── PLAYBACK TOOLS ──────────────────────────────────────────────────

@mcp.tool()
def play() -> dict[str, Any]:
    """Start or resume playback."""
    return _send(Command.playback())


@mcp.tool()
def pause() -> dict[str, Any]:
    """Pause the current track."""
    return _send(Command.pause())


@mcp.tool()
def next_track() -> dict[str, Any]:
    """Skip to the next track."""
    return _send(Command.next())


@mcp.tool()
def previous_track() -> dict[str, Any]:
    """Go back to the previous track."""
    return _send(Command.previous())


@mcp.tool()
def play_track(index: int) -> dict[str, Any]:
    """Play a track by index.

    Args:
        index: Track index (0-2999). Tracks are numbered in the order they
            were copied to the storage device.
    """
    if not 0 <= index <= MAX_TRACK:
        return {"error": f"Track must be 0-{MAX_TRACK}"}
    return _send(Command.track(index))


@mcp.tool()
def play_folder(folder: int, file: int) -> dict[str, Any]:
    """Play file ``<folder>/<file>.mp3``, e.g. folder 4 file 123 is 04/0123.mp3.

    Args:
        folder: Folder number (1-99).
        file: File number within the folder (1-255).
    """
    try:
        command = Command.set_folder(folder, file)
    except ValueError as e:
        return {"error": str(e)}
    return _send(command)


@mcp.tool()
def set_repeat(enabled: bool) -> dict[str, Any]:
    """Start or stop repeat play of all tracks."""
    return _send(Command.repeat_play(enabled))


# ─── VOLUME / EQ TOOLS ───────────────────────────────────────────────

@mcp.tool()
def set_volume(level: int) -> dict[str, Any]:
    """Set the output volume.

    Args:
        level: Volume level 0-30.
    """
    if not 0 <= level <= MAX_VOLUME:
        return {"error": f"Volume must be 0-{MAX_VOLUME}"}
    return _send(Command.set_volume(level))


@mcp.tool()
def volume_up() -> dict[str, Any]:
    """Raise the volume by one step."""
    return _send(Command.increase_volume())


@mcp.tool()
def volume_down() -> dict[str, Any]:
    """Lower the volume by one step."""
    return _send(Command.decrease_volume())


@mcp.tool()
def set_gain(enabled: bool, gain: int) -> dict[str, Any]:
    """Adjust the output gain.

    Args:
        enabled: Whether the gain adjustment is active.
        gain: Gain 0-31.
    """
    if not 0 <= gain <= MAX_GAIN:
        return {"error": f"Gain must be 0-{MAX_GAIN}"}
    return _send(Command.set_volume_adjust(enabled, gain))


@mcp.tool()
def set_eq(mode: str) -> dict[str, Any]:
    """Select an equalizer preset.

    Args:
        mode: One of normal, pop, rock, jazz, classic, bass.
    """
    try:
        eq = enum_by_name(EqMode, mode)
    except ValueError as e:
        return {"error": str(e)}
    return _send(Command.set_eq(eq))


@mcp.tool()
def set_playback_mode(mode: str) -> dict[str, Any]:
    """Select the repeat mode.

    Args:
        mode: One of repeat, folder_repeat, single_repeat, random.
    """
    try:
        playback_mode = enum_by_name(PlaybackMode, mode)
    except ValueError as e:
        return {"error": str(e)}
    return _send(Command.set_playback_mode(playback_mode))


@mcp.tool()
def set_playback_source(source: str) -> dict[str, Any]:
    """Select the playback source.

    Args:
        source: One of udisk, tf, aux, sleep, flash.
    """
    try:
        playback_source = enum_by_name(PlaybackSource, source)
    except ValueError as e:
        return {"error": str(e)}
    return _send(Command.set_playback_source(playback_source))


# ─── POWER TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def standby() -> dict[str, Any]:
    """Disable playback until woken."""
    return _send(Command.standby())


@mcp.tool()
def wake() -> dict[str, Any]:
    """Return from standby to normal mode."""
    return _send(Command.wake())


@mcp.tool()
def reset() -> dict[str, Any]:
    """Reset the module. It reports its online storage when it comes back."""
    return _send(Command.reset())


# ─── QUERY TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def query_status() -> dict[str, Any]:
    """Ask the module for its current status word."""
    return _query(CommandCode.GET_STATUS)


@mcp.tool()
def get_volume() -> dict[str, Any]:
    """Read the current volume."""
    return _query(CommandCode.GET_VOLUME)


@mcp.tool()
def get_eq() -> dict[str, Any]:
    """Read the current equalizer preset."""
    return _query(CommandCode.GET_EQ, EqMode)


@mcp.tool()
def get_playback_mode() -> dict[str, Any]:
    """Read the current repeat mode."""
    return _query(CommandCode.GET_PLAYBACK_MODE, PlaybackMode)


@mcp.tool()
def get_software_version() -> dict[str, Any]:
    """Read the module firmware version."""
    return _query(CommandCode.GET_SOFTWARE_VERSION)


@mcp.tool()
def get_file_count(source: str = "tf") -> dict[str, Any]:
    """Count the files on a storage device.

    Args:
        source: One of tf, udisk, flash.
    """
    code = FILE_COUNT_QUERIES.get(source.lower())
    if code is None:
        return {"error": f"Unknown source '{source}'. Valid: {list(FILE_COUNT_QUERIES)}"}
    return _query(code)


@mcp.tool()
def get_current_track(source: str = "tf") -> dict[str, Any]:
    """Read the current track number on a storage device.

    Args:
        source: One of tf, udisk, flash.
    """
    code = CURRENT_TRACK_QUERIES.get(source.lower())
    if code is None:
        return {"error": f"Unknown source '{source}'. Valid: {list(CURRENT_TRACK_QUERIES)}"}
    return _query(code)


@mcp.tool()
def read_events(timeout: float = READ_TIMEOUT_S) -> dict[str, Any]:
    """Collect notifications (track finished, card inserted, errors).

    Args:
        timeout: Seconds to listen.
    """
    conn = _get_connection()
    messages = conn.read_messages(timeout)
    return {"events": [describe_message(m) for m in messages]}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("dfplayer://commands")
def resource_commands() -> str:
    """The command code table."""
    return json.dumps({
        "commands": [
            {
                "name": code.name.lower(),
                "code": f"0x{code.value:02X}",
                "parameter": code in PARAMETERIZED,
                "query": code in QUERIES,
            }
            for code in CommandCode
        ]
    })


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

"""UART connection to the DFPlayer Mini.

Uses ``pyserial``. The module talks at 9600 baud, 8 data bits, no parity,
1 stop bit. The port may be a device path or any pyserial URL, so
``loop://`` gives a loopback link for testing.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import serial

from ..models.playback import RequestAck
from ..protocol.commands import Command
from ..protocol.parser import StreamParser
from ..protocol.responses import Message

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
BAUD_RATE = 9600
BYTESIZE = serial.EIGHTBITS
PARITY = serial.PARITY_NONE
STOPBITS = serial.STOPBITS_ONE
READ_TIMEOUT_S = 1.0
# Per-read pyserial timeout; read_message() loops until its own deadline
POLL_INTERVAL_S = 0.05


@dataclass
class PortInfo:
    """Settings the port was opened with."""

    port: str = DEFAULT_PORT
    baudrate: int = BAUD_RATE
    bytesize: int = BYTESIZE
    parity: str = PARITY
    stopbits: float = STOPBITS


class SerialConnection:
    """Manages the serial link to one DFPlayer Mini.

    Usage::

        with SerialConnection("/dev/serial0") as conn:
            conn.send(Command.set_volume(20))
            reply = conn.send_and_receive(Command.query(CommandCode.GET_VOLUME))
    """

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        baudrate: int = BAUD_RATE,
        timeout: float = READ_TIMEOUT_S,
    ) -> None:
        self._port_info = PortInfo(port=port, baudrate=baudrate)
        self._timeout = timeout
        self._serial: serial.SerialBase | None = None
        self._parser = StreamParser()

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def port_info(self) -> PortInfo:
        return self._port_info

    @property
    def parser(self) -> StreamParser:
        return self._parser

    def open(self) -> PortInfo:
        """Open the serial port.

        Returns:
            PortInfo with the settings in use.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        info = self._port_info
        try:
            self._serial = serial.serial_for_url(
                info.port,
                baudrate=info.baudrate,
                bytesize=info.bytesize,
                parity=info.parity,
                stopbits=info.stopbits,
                timeout=POLL_INTERVAL_S,
            )
        except (serial.SerialException, ValueError) as e:
            raise ConnectionError(
                f"Could not open serial port {info.port!r}. "
                f"Ensure the module is wired and you have permissions. "
                f"Last error: {e}"
            ) from e

        self._parser.reset()
        logger.info("Connected on %s at %d baud", info.port, info.baudrate)
        return info

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing port: %s", e)
        finally:
            self._serial = None
            logger.info("Disconnected")

    def __enter__(self) -> SerialConnection:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require_open(self) -> serial.SerialBase:
        if not self.connected:
            raise ConnectionError("Not connected to device")
        return self._serial

    def send_raw(self, data: bytes) -> int:
        """Write raw bytes to the port.

        Returns:
            Number of bytes written.

        Raises:
            ConnectionError: If not connected.
        """
        return self._require_open().write(data)

    def send(self, command: Command, request_ack: bool = False) -> int:
        """Serialize and send one command.

        Args:
            command: The command to send.
            request_ack: Ask the module to acknowledge with an ``Ack`` frame.
        """
        frame = command.serialize(
            request_ack=RequestAck.YES if request_ack else RequestAck.NO
        )
        logger.debug("TX %r: %s", command, frame.hex(" "))
        return self.send_raw(frame)

    def read_message(self, timeout: float | None = None) -> Message | None:
        """Read bytes until one complete message arrives.

        Parse errors are logged and skipped; the parser resynchronizes on
        its own.

        Args:
            timeout: Seconds to wait, defaulting to the connection timeout.

        Returns:
            The decoded message, or None if nothing valid arrived in time.
        """
        port = self._require_open()
        deadline = time.monotonic() + (self._timeout if timeout is None else timeout)

        while time.monotonic() < deadline:
            chunk = port.read(1)
            if not chunk:
                continue
            result = self._parser.process_byte(chunk[0])
            if result.complete:
                logger.debug("RX %r", result.message)
                return result.message
            if result.failed:
                logger.warning("Dropped frame: %s", result.error)
        return None

    def read_messages(self, timeout: float | None = None) -> list[Message]:
        """Collect every message that arrives before the timeout expires."""
        deadline = time.monotonic() + (self._timeout if timeout is None else timeout)
        messages: list[Message] = []
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            message = self.read_message(remaining)
            if message is None:
                break
            messages.append(message)
        return messages

    def send_and_receive(
        self,
        command: Command,
        timeout: float | None = None,
        request_ack: bool = False,
    ) -> Message | None:
        """Send a command and return the first message received after it."""
        self.send(command, request_ack=request_ack)
        return self.read_message(timeout)

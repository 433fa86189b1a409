"""Fixed-length frame builder and parser for the DFPlayer Mini UART link.

Frame layout::

    +-------+---------+--------+---------+----------+---------+---------+-------+
    | Start | Version | Length | Command | Feedback |  Param  | Checksum|  End  |
    | 0x7E  |  0xFF   |  0x06  | 1 byte  |  1 byte  | 2 bytes | 2 bytes | 0xEF  |
    +-------+---------+--------+---------+----------+---------+---------+-------+

- Length: number of bytes from Version through Param low (always 6)
- Feedback: 0x01 asks the module to acknowledge the command
- Param: big-endian 16-bit argument, zero when the command takes none
- Checksum: big-endian negated 16-bit sum of Version through Param low

The link runs at 9600 baud, 8 data bits, no parity, 1 stop bit.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import BufferTooSmall
from ..utils.checksum import checksum, verify_checksum

START = 0x7E
VERSION = 0xFF
LENGTH = 0x06
END = 0xEF
FRAME_SIZE = 10

# Byte offsets within a frame
OFFSET_START = 0
OFFSET_VERSION = 1
OFFSET_LENGTH = 2
OFFSET_COMMAND = 3
OFFSET_FEEDBACK = 4
OFFSET_PARAM_HIGH = 5
OFFSET_PARAM_LOW = 6
OFFSET_CHECKSUM_HIGH = 7
OFFSET_CHECKSUM_LOW = 8
OFFSET_END = 9

# Checksummed span: Version through Param low
CHECKSUM_SPAN = slice(OFFSET_VERSION, OFFSET_CHECKSUM_HIGH)


@dataclass(frozen=True)
class Frame:
    """The variable fields of one validated frame."""

    command: int
    param: int = 0
    feedback: int = 0

    @property
    def param_high(self) -> int:
        return self.param >> 8

    @property
    def param_low(self) -> int:
        return self.param & 0xFF

    def __repr__(self) -> str:
        return (
            f"Frame(command=0x{self.command:02X}, "
            f"param=0x{self.param:04X}, feedback={self.feedback})"
        )


def serialize_into(
    buffer: bytearray | memoryview,
    command: int,
    param: int = 0,
    feedback: int = 0,
) -> int:
    """Write one frame into ``buffer`` starting at index 0.

    Args:
        buffer: Writable buffer of at least ``FRAME_SIZE`` bytes.
        command: Command code byte.
        param: 16-bit parameter.
        feedback: Feedback flag byte (0x00 or 0x01).

    Returns:
        The number of bytes written, always ``FRAME_SIZE``.

    Raises:
        BufferTooSmall: If ``buffer`` is shorter than ``FRAME_SIZE``.
    """
    if len(buffer) < FRAME_SIZE:
        raise BufferTooSmall(FRAME_SIZE, len(buffer))

    buffer[OFFSET_START] = START
    buffer[OFFSET_VERSION] = VERSION
    buffer[OFFSET_LENGTH] = LENGTH
    buffer[OFFSET_COMMAND] = command
    buffer[OFFSET_FEEDBACK] = feedback
    buffer[OFFSET_PARAM_HIGH] = (param >> 8) & 0xFF
    buffer[OFFSET_PARAM_LOW] = param & 0xFF

    value = checksum(bytes(buffer[CHECKSUM_SPAN]))
    buffer[OFFSET_CHECKSUM_HIGH] = value >> 8
    buffer[OFFSET_CHECKSUM_LOW] = value & 0xFF
    buffer[OFFSET_END] = END
    return FRAME_SIZE


def build_frame(command: int, param: int = 0, feedback: int = 0) -> bytes:
    """Build a complete 10-byte frame.

    Args:
        command: Command code byte.
        param: 16-bit parameter, zero for commands without one.
        feedback: Feedback flag byte.

    Returns:
        A 10-byte ``bytes`` object ready to write to the serial port.
    """
    buffer = bytearray(FRAME_SIZE)
    serialize_into(buffer, command, param, feedback)
    return bytes(buffer)


def frame_checksum(data: bytes) -> int:
    """Return the checksum stored in a 10-byte frame."""
    return int.from_bytes(
        data[OFFSET_CHECKSUM_HIGH : OFFSET_CHECKSUM_LOW + 1], "big"
    )


def parse_frame(data: bytes) -> Frame | None:
    """Parse exactly one complete frame.

    Args:
        data: A 10-byte frame.

    Returns:
        A ``Frame`` if the markers, version, length and checksum are all
        correct, or ``None`` otherwise.
    """
    if len(data) != FRAME_SIZE:
        return None

    if (
        data[OFFSET_START] != START
        or data[OFFSET_VERSION] != VERSION
        or data[OFFSET_LENGTH] != LENGTH
        or data[OFFSET_END] != END
    ):
        return None

    if not verify_checksum(data[CHECKSUM_SPAN], frame_checksum(data)):
        return None

    return Frame(
        command=data[OFFSET_COMMAND],
        param=int.from_bytes(
            data[OFFSET_PARAM_HIGH : OFFSET_PARAM_LOW + 1], "big"
        ),
        feedback=data[OFFSET_FEEDBACK],
    )

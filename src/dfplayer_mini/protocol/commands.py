"""Command code table and the ``Command`` value type.

Every command is a single code byte plus an optional 16-bit parameter.
Codes 0x01-0x11 are playback controls; 0x3C-0x4D are the query and
housekeeping commands. The same code space is used by the module for its
notifications and query replies (see :mod:`.responses`).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from ..models.playback import EqMode, PlaybackMode, PlaybackSource, RequestAck
from .framing import FRAME_SIZE, build_frame, serialize_into


class CommandCode(IntEnum):
    """Command code bytes understood by the module."""

    NEXT = 0x01
    PREVIOUS = 0x02
    TRACK = 0x03
    INCREASE_VOLUME = 0x04
    DECREASE_VOLUME = 0x05
    SET_VOLUME = 0x06
    SET_EQ = 0x07
    SET_PLAYBACK_MODE = 0x08
    SET_PLAYBACK_SOURCE = 0x09
    STANDBY = 0x0A
    WAKE = 0x0B
    RESET = 0x0C
    PLAYBACK = 0x0D
    PAUSE = 0x0E
    SET_FOLDER = 0x0F
    SET_VOLUME_ADJUST = 0x10
    REPEAT_PLAY = 0x11

    STAY_1 = 0x3C
    STAY_2 = 0x3D
    STAY_3 = 0x3E
    INITIALISATION_PARAMETERS = 0x3F
    REQUEST_RETRANSMISSION = 0x40
    REPLY = 0x41
    GET_STATUS = 0x42
    GET_VOLUME = 0x43
    GET_EQ = 0x44
    GET_PLAYBACK_MODE = 0x45
    GET_SOFTWARE_VERSION = 0x46
    GET_TF_FILE_COUNT = 0x47
    GET_UDISK_FILE_COUNT = 0x48
    GET_FLASH_FILE_COUNT = 0x49
    KEEP_ON = 0x4A
    GET_TF_CURRENT_TRACK = 0x4B
    GET_UDISK_CURRENT_TRACK = 0x4C
    GET_FLASH_CURRENT_TRACK = 0x4D


# Commands whose 16-bit parameter is meaningful; the rest send zero
PARAMETERIZED: frozenset[CommandCode] = frozenset({
    CommandCode.TRACK,
    CommandCode.SET_VOLUME,
    CommandCode.SET_EQ,
    CommandCode.SET_PLAYBACK_MODE,
    CommandCode.SET_PLAYBACK_SOURCE,
    CommandCode.SET_FOLDER,
    CommandCode.SET_VOLUME_ADJUST,
    CommandCode.REPEAT_PLAY,
    CommandCode.INITIALISATION_PARAMETERS,
})

# Query commands, answered by the module with a frame using the same code
QUERIES: frozenset[CommandCode] = frozenset(
    code for code in CommandCode
    if CommandCode.GET_STATUS <= code <= CommandCode.GET_FLASH_CURRENT_TRACK
    and code != CommandCode.KEEP_ON
)


def _check_byte(name: str, value: int) -> int:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must be 0-255, got {value}")
    return value


@dataclass(frozen=True)
class Command:
    """An immutable command: a code from :class:`CommandCode` and its parameter.

    Build instances with the named constructors (``Command.track(3)``,
    ``Command.set_eq(EqMode.ROCK)``) rather than by hand; they encode the
    parameter layout of each command.
    """

    code: CommandCode
    param: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", CommandCode(self.code))
        object.__setattr__(self, "param", int(self.param))
        if not 0 <= self.param <= 0xFFFF:
            raise ValueError(f"Parameter must be 0-65535, got {self.param}")

    def __repr__(self) -> str:
        if self.code in PARAMETERIZED or self.param:
            return f"Command({self.code.name}, param={self.param})"
        return f"Command({self.code.name})"

    # ─── Serialization ───────────────────────────────────────────────

    def serialize(self, request_ack: RequestAck = RequestAck.NO) -> bytes:
        """Serialize this command into a new 10-byte frame.

        Args:
            request_ack: Whether to ask the module for an acknowledgement.
        """
        return build_frame(self.code, self.param, request_ack)

    def serialize_into(
        self,
        buffer: bytearray | memoryview,
        request_ack: RequestAck = RequestAck.NO,
    ) -> int:
        """Serialize this command into a caller-owned buffer.

        Args:
            buffer: Writable buffer of at least 10 bytes.
            request_ack: Whether to ask the module for an acknowledgement.

        Returns:
            The number of bytes written, always 10.

        Raises:
            BufferTooSmall: If ``buffer`` is shorter than 10 bytes.
        """
        return serialize_into(buffer, self.code, self.param, request_ack)

    def __bytes__(self) -> bytes:
        return build_frame(self.code, self.param)

    # ─── Playback controls ───────────────────────────────────────────

    @classmethod
    def next(cls) -> Command:
        """Advance to the next track, wrapping to the first."""
        return cls(CommandCode.NEXT)

    @classmethod
    def previous(cls) -> Command:
        """Go back one track, wrapping to the last."""
        return cls(CommandCode.PREVIOUS)

    @classmethod
    def track(cls, index: int) -> Command:
        """Play the track with the given index (datasheet range 0-2999)."""
        return cls(CommandCode.TRACK, index)

    @classmethod
    def increase_volume(cls) -> Command:
        return cls(CommandCode.INCREASE_VOLUME)

    @classmethod
    def decrease_volume(cls) -> Command:
        return cls(CommandCode.DECREASE_VOLUME)

    @classmethod
    def set_volume(cls, level: int) -> Command:
        """Set the volume (datasheet range 0-30, not enforced)."""
        return cls(CommandCode.SET_VOLUME, level)

    @classmethod
    def set_eq(cls, mode: EqMode) -> Command:
        return cls(CommandCode.SET_EQ, EqMode(mode))

    @classmethod
    def set_playback_mode(cls, mode: PlaybackMode) -> Command:
        return cls(CommandCode.SET_PLAYBACK_MODE, PlaybackMode(mode))

    @classmethod
    def set_playback_source(cls, source: PlaybackSource) -> Command:
        return cls(CommandCode.SET_PLAYBACK_SOURCE, PlaybackSource(source))

    @classmethod
    def standby(cls) -> Command:
        """Disable playback. The module does not enter a sleep state."""
        return cls(CommandCode.STANDBY)

    @classmethod
    def wake(cls) -> Command:
        """Return to normal mode."""
        return cls(CommandCode.WAKE)

    @classmethod
    def reset(cls) -> Command:
        return cls(CommandCode.RESET)

    @classmethod
    def playback(cls) -> Command:
        """Start or resume playback."""
        return cls(CommandCode.PLAYBACK)

    @classmethod
    def pause(cls) -> Command:
        return cls(CommandCode.PAUSE)

    @classmethod
    def set_folder(cls, folder: int, file: int) -> Command:
        """Play ``<folder>/<file>.mp3``, e.g. folder 4, file 123 is ``04/0123.mp3``."""
        _check_byte("Folder", folder)
        _check_byte("File", file)
        return cls(CommandCode.SET_FOLDER, (folder << 8) | file)

    @classmethod
    def set_volume_adjust(cls, enable: bool, gain: int) -> Command:
        """Set the output gain (datasheet range 0-31)."""
        _check_byte("Gain", gain)
        return cls(CommandCode.SET_VOLUME_ADJUST, (int(enable) << 8) | gain)

    @classmethod
    def repeat_play(cls, enable: bool) -> Command:
        return cls(CommandCode.REPEAT_PLAY, int(enable))

    # ─── Queries and housekeeping ────────────────────────────────────

    @classmethod
    def initialisation_parameters(cls, value: int) -> Command:
        """Send initialisation parameters (datasheet range 0x00-0x0F)."""
        return cls(CommandCode.INITIALISATION_PARAMETERS, value)

    @classmethod
    def query(cls, code: CommandCode) -> Command:
        """Build one of the parameterless query commands."""
        code = CommandCode(code)
        if code not in QUERIES:
            raise ValueError(f"{code.name} is not a query command")
        return cls(code)

    # ─── Decoding helpers ────────────────────────────────────────────

    @property
    def folder(self) -> int:
        return self.param >> 8

    @property
    def file(self) -> int:
        return self.param & 0xFF


def build_command(
    code: CommandCode, param: int = 0, request_ack: bool = False
) -> bytes:
    """Build a single 10-byte frame for a command."""
    command = Command(code, param)
    return command.serialize(
        request_ack=RequestAck.YES if request_ack else RequestAck.NO
    )


def build_next() -> bytes:
    """Build a Next command (0x01)."""
    return build_command(CommandCode.NEXT)


def build_previous() -> bytes:
    """Build a Previous command (0x02)."""
    return build_command(CommandCode.PREVIOUS)


def build_play_track(index: int) -> bytes:
    """Build a Track command to play a track by index.

    Args:
        index: Track index 0-65535. Tracks are numbered by the order they
            were copied to the card, not by file name.
    """
    return Command.track(index).serialize()


def build_set_volume(level: int) -> bytes:
    """Build a Set Volume command.

    Args:
        level: Volume level. The module accepts 0-30.
    """
    return Command.set_volume(level).serialize()


def build_set_eq(mode: EqMode) -> bytes:
    """Build a Set EQ command."""
    return Command.set_eq(mode).serialize()


def build_play() -> bytes:
    """Build a Playback command (0x0D) to start or resume playback."""
    return build_command(CommandCode.PLAYBACK)


def build_pause() -> bytes:
    """Build a Pause command (0x0E)."""
    return build_command(CommandCode.PAUSE)


def build_reset() -> bytes:
    """Build a Reset command (0x0C)."""
    return build_command(CommandCode.RESET)


def build_query(code: CommandCode) -> bytes:
    """Build a query command such as ``GET_VOLUME``."""
    return Command.query(code).serialize()


__all__ = [
    "CommandCode",
    "Command",
    "PARAMETERIZED",
    "QUERIES",
    "FRAME_SIZE",
    "build_command",
    "build_next",
    "build_previous",
    "build_play_track",
    "build_set_volume",
    "build_set_eq",
    "build_play",
    "build_pause",
    "build_reset",
    "build_query",
]

"""Decoding of validated frames into messages.

The module sends unsolicited notifications (card inserted, track finished,
errors), acknowledgements, and replies to query commands. Any other frame
whose code is in the command table decodes to a :class:`CommandMessage`;
codes outside the table decode to :class:`UnknownCommand` so that newer
firmware stays readable.

Every message whose code is in the command table can be turned back into
the :class:`Command` it was framed from with :meth:`Message.as_command`.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import InvalidParameter
from ..models.playback import Disk, ModuleErrorType
from .commands import QUERIES, Command, CommandCode
from .framing import Frame


class Message:
    """Base class for decoded frames."""

    def as_command(self) -> Command | None:
        """Return the command with this message's code and parameter.

        Returns None for notifications whose code is not in the command
        table (0x3A, 0x3B) and for unknown codes.
        """
        return None


@dataclass(frozen=True)
class Ack(Message):
    """Acknowledgement of a command sent with the feedback flag (0x41)."""

    def as_command(self) -> Command:
        return Command(CommandCode.REPLY)


@dataclass(frozen=True)
class DiskInserted(Message):
    """A storage device was plugged in (0x3A)."""

    disk: Disk


@dataclass(frozen=True)
class DiskRemoved(Message):
    """A storage device was pulled out (0x3B)."""

    disk: Disk


@dataclass(frozen=True)
class DiskOnline(Message):
    """Storage devices available after power-up or reset (0x3F)."""

    disk: Disk

    def as_command(self) -> Command:
        return Command(CommandCode.INITIALISATION_PARAMETERS, self.disk)


@dataclass(frozen=True)
class PlaybackFinished(Message):
    """A track finished playing (0x3C U-disk, 0x3D TF, 0x3E flash)."""

    disk: Disk
    track: int

    def as_command(self) -> Command:
        return Command(FINISHED_CODES[self.disk], self.track)


@dataclass(frozen=True)
class ModuleError(Message):
    """The module reported an error (0x40)."""

    error: ModuleErrorType

    def as_command(self) -> Command:
        return Command(CommandCode.REQUEST_RETRANSMISSION, self.error)


@dataclass(frozen=True)
class QueryReply(Message):
    """Answer to a query command; ``query`` is the code that was asked."""

    query: CommandCode
    value: int

    def __repr__(self) -> str:
        return f"QueryReply(query={self.query.name}, value={self.value})"

    def as_command(self) -> Command:
        return Command(self.query, self.value)


@dataclass(frozen=True)
class CommandMessage(Message):
    """A frame carrying a command code that is not read as a notification.

    Covers the control codes (e.g. an echoed command) and frames on the
    shared codes 0x3F-0x41 whose parameter is not a notification value.
    """

    command: Command

    def as_command(self) -> Command:
        return self.command


@dataclass(frozen=True)
class UnknownCommand(Message):
    """A valid frame whose code is not in the command table."""

    code: int
    param: int

    def __repr__(self) -> str:
        return f"UnknownCommand(code=0x{self.code:02X}, param=0x{self.param:04X})"


FINISHED_DISKS: dict[int, Disk] = {
    CommandCode.STAY_1: Disk.UDISK,
    CommandCode.STAY_2: Disk.TF,
    CommandCode.STAY_3: Disk.FLASH,
}

FINISHED_CODES: dict[Disk, CommandCode] = {
    disk: CommandCode(code) for code, disk in FINISHED_DISKS.items()
}


def _disk(frame: Frame) -> Disk | None:
    if frame.param_high:
        return None
    try:
        return Disk(frame.param_low)
    except ValueError:
        return None


def _require_disk(frame: Frame) -> Disk:
    disk = _disk(frame)
    if disk is None:
        raise InvalidParameter(frame.command, frame.param)
    return disk


def parse_disk_inserted(frame: Frame) -> DiskInserted:
    return DiskInserted(_require_disk(frame))


def parse_disk_removed(frame: Frame) -> DiskRemoved:
    return DiskRemoved(_require_disk(frame))


def parse_disk_online(frame: Frame) -> DiskOnline | None:
    disk = _disk(frame)
    return None if disk is None else DiskOnline(disk)


def parse_playback_finished(frame: Frame) -> PlaybackFinished:
    """Parse a track-finished notification; the parameter is the track index."""
    return PlaybackFinished(disk=FINISHED_DISKS[frame.command], track=frame.param)


def parse_module_error(frame: Frame) -> ModuleError | None:
    if frame.param_high:
        return None
    try:
        return ModuleError(ModuleErrorType(frame.param_low))
    except ValueError:
        return None


def parse_ack(frame: Frame) -> Ack | None:
    return None if frame.param else Ack()


# A parser returning None hands the frame back to the command table
NOTIFICATION_PARSERS = {
    0x3A: parse_disk_inserted,
    0x3B: parse_disk_removed,
    0x3C: parse_playback_finished,
    0x3D: parse_playback_finished,
    0x3E: parse_playback_finished,
    0x3F: parse_disk_online,
    0x40: parse_module_error,
    0x41: parse_ack,
}


def decode_message(frame: Frame) -> Message:
    """Decode a validated frame into a message.

    Codes 0x3C-0x41 are both commands and notifications. A frame on one of
    them decodes as the notification when its parameter is a notification
    value:

    - 0x3C-0x3E always give :class:`PlaybackFinished`;
    - 0x3F gives :class:`DiskOnline` when the parameter is a :class:`Disk`;
    - 0x40 gives :class:`ModuleError` when it is a :class:`ModuleErrorType`;
    - 0x41 gives :class:`Ack` when it is zero.

    Any other parameter on 0x3F-0x41 decodes to :class:`CommandMessage`, so
    every command built by :class:`Command` decodes without error and
    ``decode_message(frame).as_command()`` gives it back.

    Raises:
        InvalidParameter: If a disk notification (0x3A, 0x3B), whose code
            is not in the command table, carries an unknown disk.
    """
    parser = NOTIFICATION_PARSERS.get(frame.command)
    if parser is not None:
        message = parser(frame)
        if message is not None:
            return message

    try:
        code = CommandCode(frame.command)
    except ValueError:
        return UnknownCommand(code=frame.command, param=frame.param)

    if code in QUERIES:
        return QueryReply(query=code, value=frame.param)
    return CommandMessage(Command(code, frame.param))

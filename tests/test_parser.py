"""Tests for the byte-at-a-time stream parser."""

import pytest

from dfplayer_mini.exceptions import (
    ChecksumMismatch,
    FramingError,
    InvalidParameter,
    ParseError,
)
from dfplayer_mini.models.playback import Disk, EqMode, PlaybackMode, PlaybackSource
from dfplayer_mini.protocol.commands import Command, CommandCode
from dfplayer_mini.protocol.framing import Frame, build_frame
from dfplayer_mini.protocol.parser import (
    ParserState,
    ParseResult,
    ParseStatus,
    StreamParser,
)
from dfplayer_mini.protocol.responses import (
    CommandMessage,
    DiskOnline,
    DiskRemoved,
    PlaybackFinished,
    UnknownCommand,
)


def feed_all(parser: StreamParser, data: bytes) -> list[ParseResult]:
    return [parser.process_byte(b) for b in data]


# Largest parameter each parameterized command accepts
MAX_PARAMS = {
    CommandCode.TRACK: 0xFFFF,
    CommandCode.SET_VOLUME: 0xFFFF,
    CommandCode.SET_EQ: max(EqMode),
    CommandCode.SET_PLAYBACK_MODE: max(PlaybackMode),
    CommandCode.SET_PLAYBACK_SOURCE: max(PlaybackSource),
    CommandCode.SET_FOLDER: 0xFFFF,
    CommandCode.SET_VOLUME_ADJUST: 0x01FF,
    CommandCode.REPEAT_PLAY: 1,
    CommandCode.INITIALISATION_PARAMETERS: 0x0F,
}

ROUND_TRIP_COMMANDS = (
    [Command(code) for code in CommandCode]
    + [Command(code, param) for code, param in MAX_PARAMS.items()]
    + [Command.initialisation_parameters(value) for value in range(0x10)]
    + [
        Command.track(1),
        Command.track(2999),
        Command.set_volume(30),
        Command.set_folder(99, 255),
        Command.set_volume_adjust(True, 31),
    ]
)


@pytest.mark.parametrize("command", ROUND_TRIP_COMMANDS, ids=repr)
def test_roundtrip(command):
    """Serialized bytes parse back to the same command.

    Incomplete until the last byte, then complete with a message that
    gives back the original code and parameter.
    """
    parser = StreamParser()
    results = feed_all(parser, command.serialize())

    assert all(r.pending for r in results[:-1])
    final = results[-1]
    assert final.complete
    assert final.frame == Frame(command=command.code, param=command.param)
    assert final.message.as_command() == command


def test_roundtrip_shared_codes():
    """Commands on notification codes decode to the notification or the command."""
    parser = StreamParser()
    stay = feed_all(parser, Command(CommandCode.STAY_1, 5).serialize())[-1]
    assert stay.message == PlaybackFinished(Disk.UDISK, 5)

    init = feed_all(parser, Command.initialisation_parameters(0x0F).serialize())[-1]
    assert init.message == CommandMessage(Command.initialisation_parameters(0x0F))

    online = feed_all(parser, Command.initialisation_parameters(0x02).serialize())[-1]
    assert online.message == DiskOnline(Disk.TF)


def test_roundtrip_control_decodes_to_command():
    """Control codes decode back to an equal Command."""
    command = Command.track(17)
    parser = StreamParser()
    result = feed_all(parser, command.serialize())[-1]
    assert result.message == CommandMessage(command)


def test_garbage_then_valid_frame():
    """A garbage byte is dropped without delaying the following frame."""
    parser = StreamParser()
    frame = Command.next().serialize()

    first = parser.process_byte(0x00)
    assert first.pending
    assert parser.state is ParserState.AWAIT_START

    results = feed_all(parser, frame)
    assert all(r.pending for r in results[:-1])
    assert results[-1].complete
    assert results[-1].message == CommandMessage(Command.next())


def test_long_garbage_prefix():
    parser = StreamParser()
    results = list(parser.feed(b"\x00\x01\xEF\xFF\x06" + Command.pause().serialize()))
    assert len(results) == 1
    assert results[0].message == CommandMessage(Command.pause())


def test_checksum_tamper():
    """Flipping a checksum byte fails on the final byte and resets."""
    data = bytearray(Command.track(3).serialize())
    data[8] ^= 0xFF
    parser = StreamParser()
    results = feed_all(parser, data)

    assert all(r.pending for r in results[:-1])
    final = results[-1]
    assert final.failed
    assert isinstance(final.error, ChecksumMismatch)
    assert final.error.data == bytes(data)
    assert parser.state is ParserState.AWAIT_START

    # The next byte starts a fresh attempt
    assert parser.process_byte(0x7E).pending
    assert parser.state is ParserState.AWAIT_VERSION


def test_checksum_checked_before_end_marker():
    data = bytearray(Command.track(3).serialize())
    data[7] ^= 0x01
    data[9] = 0x00
    result = feed_all(StreamParser(), data)[-1]
    assert isinstance(result.error, ChecksumMismatch)


def test_tampered_param_detected():
    data = bytearray(Command.set_volume(10).serialize())
    data[6] = 11
    result = feed_all(StreamParser(), data)[-1]
    assert isinstance(result.error, ChecksumMismatch)
    assert result.error.expected == 0xFEEA
    assert result.error.received == 0xFEEB


def test_bad_end_marker():
    data = bytearray(Command.next().serialize())
    data[9] = 0xEE
    parser = StreamParser()
    result = feed_all(parser, data)[-1]
    assert isinstance(result.error, FramingError)
    assert result.error.offset == 9
    assert result.error.expected == 0xEF
    assert result.error.received == 0xEE
    assert parser.state is ParserState.AWAIT_START


def test_bad_version():
    """A wrong version byte is a framing error reported at once."""
    parser = StreamParser()
    assert parser.process_byte(0x7E).pending
    result = parser.process_byte(0xFE)
    assert result.failed
    assert isinstance(result.error, FramingError)
    assert result.error.offset == 1
    assert result.error.data == b"\x7E\xFE"
    assert parser.state is ParserState.AWAIT_START


def test_bad_length():
    parser = StreamParser()
    results = feed_all(parser, b"\x7E\xFF\x07")
    assert results[-1].failed
    assert results[-1].error.offset == 2


def test_offending_byte_not_reused_as_start():
    """A start marker in the version slot is not treated as a new frame."""
    frame = Command.next().serialize()
    parser = StreamParser()
    results = feed_all(parser, b"\x7E" + frame)

    assert results[1].failed
    # The remaining bytes of the frame are dropped as garbage
    assert all(r.pending for r in results[2:])
    assert parser.state is ParserState.AWAIT_START


def test_unknown_command_is_not_error():
    """A valid frame with an unknown code decodes to UnknownCommand."""
    parser = StreamParser()
    result = feed_all(parser, build_frame(0x99, 0x1234))[-1]
    assert result.complete
    assert result.error is None
    assert result.message == UnknownCommand(code=0x99, param=0x1234)


def test_notification_decoded():
    data = bytes([0x7E, 0xFF, 0x06, 0x3B, 0x00, 0x00, 0x01, 0xFE, 0xBF, 0xEF])
    result = feed_all(StreamParser(), data)[-1]
    assert result.message == DiskRemoved(Disk.UDISK)


def test_invalid_notification_parameter():
    parser = StreamParser()
    data = build_frame(0x3A, 0x09)
    result = feed_all(parser, data)[-1]
    assert result.failed
    assert isinstance(result.error, InvalidParameter)
    assert result.error.data == data
    assert parser.state is ParserState.AWAIT_START


def test_back_to_back_frames():
    parser = StreamParser()
    data = Command.next().serialize() + Command.previous().serialize()
    results = list(parser.feed(data))
    assert [r.message for r in results] == [
        CommandMessage(Command.next()),
        CommandMessage(Command.previous()),
    ]


def test_recovers_after_error():
    bad = bytearray(Command.track(1).serialize())
    bad[7] = 0x00
    parser = StreamParser()
    results = list(parser.feed(bytes(bad) + Command.track(2).serialize()))
    assert results[0].failed
    assert results[1].message == CommandMessage(Command.track(2))


def test_reset_discards_partial_frame():
    parser = StreamParser()
    frame = Command.next().serialize()
    feed_all(parser, frame[:5])
    assert parser.pending == 5
    parser.reset()
    assert parser.pending == 0
    assert parser.state is ParserState.AWAIT_START
    assert feed_all(parser, frame)[-1].complete


def test_state_progression():
    parser = StreamParser()
    frame = Command.next().serialize()
    states = []
    for byte in frame:
        parser.process_byte(byte)
        states.append(parser.state)
    assert states[:-1] == [ParserState(i) for i in range(1, 10)]
    assert states[-1] is ParserState.AWAIT_START


def test_feedback_flag_preserved():
    frame = build_frame(0x41, feedback=1)
    result = feed_all(StreamParser(), frame)[-1]
    assert result.frame.feedback == 1


def test_raise_for_error():
    data = bytearray(Command.next().serialize())
    data[8] ^= 0x10
    result = feed_all(StreamParser(), data)[-1]
    with pytest.raises(ParseError):
        result.raise_for_error()
    ParseResult.incomplete().raise_for_error()


def test_result_status():
    assert ParseResult.incomplete().status is ParseStatus.INCOMPLETE
    assert ParseResult.incomplete().pending

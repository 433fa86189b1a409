"""Incremental byte-at-a-time frame parser.

Bytes from the serial port are fed one at a time to
:meth:`StreamParser.process_byte`. The parser keeps a fixed 10-byte buffer
and a state for the next expected field. Bytes before a start marker are
dropped silently; a bad version, length or end byte, or a bad checksum,
discards the candidate frame and the parser waits for the next start
marker. The byte that broke the frame is not re-examined as a start
marker.

Usage::

    parser = StreamParser()
    for byte in data:
        result = parser.process_byte(byte)
        if result.complete:
            handle(result.message)
        elif result.failed:
            log(result.error)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, Iterator

from ..exceptions import ChecksumMismatch, FramingError, InvalidParameter, ParseError
from ..utils.checksum import checksum, verify_checksum
from .framing import (
    CHECKSUM_SPAN,
    END,
    FRAME_SIZE,
    LENGTH,
    OFFSET_COMMAND,
    OFFSET_END,
    OFFSET_FEEDBACK,
    OFFSET_PARAM_HIGH,
    OFFSET_PARAM_LOW,
    START,
    VERSION,
    Frame,
    frame_checksum,
)
from .responses import Message, decode_message

logger = logging.getLogger(__name__)


class ParserState(IntEnum):
    """Field the parser expects next; the value is its frame offset."""

    AWAIT_START = 0
    AWAIT_VERSION = 1
    AWAIT_LENGTH = 2
    AWAIT_COMMAND = 3
    AWAIT_FEEDBACK = 4
    AWAIT_PARAM_HIGH = 5
    AWAIT_PARAM_LOW = 6
    AWAIT_CHECKSUM_HIGH = 7
    AWAIT_CHECKSUM_LOW = 8
    AWAIT_END = 9


class ParseStatus(Enum):
    INCOMPLETE = "incomplete"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ParseResult:
    """Outcome of feeding one byte to the parser."""

    status: ParseStatus
    frame: Frame | None = None
    message: Message | None = None
    error: ParseError | None = None

    @classmethod
    def incomplete(cls) -> ParseResult:
        return _INCOMPLETE

    @classmethod
    def completed(cls, frame: Frame, message: Message) -> ParseResult:
        return cls(ParseStatus.COMPLETE, frame=frame, message=message)

    @classmethod
    def failed_with(cls, error: ParseError) -> ParseResult:
        return cls(ParseStatus.ERROR, error=error)

    @property
    def complete(self) -> bool:
        return self.status is ParseStatus.COMPLETE

    @property
    def failed(self) -> bool:
        return self.status is ParseStatus.ERROR

    @property
    def pending(self) -> bool:
        return self.status is ParseStatus.INCOMPLETE

    def raise_for_error(self) -> None:
        """Raise the carried :class:`ParseError`, if any."""
        if self.error is not None:
            raise self.error


_INCOMPLETE = ParseResult(ParseStatus.INCOMPLETE)

# Fixed header bytes checked as they arrive
_EXPECTED_HEADER = {
    ParserState.AWAIT_VERSION: VERSION,
    ParserState.AWAIT_LENGTH: LENGTH,
}


class StreamParser:
    """Rebuilds validated frames from a byte stream.

    One instance serves one receive stream. It is not thread-safe; give
    each connection its own parser.
    """

    def __init__(self) -> None:
        self._buffer = bytearray(FRAME_SIZE)
        self._state = ParserState.AWAIT_START

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def pending(self) -> int:
        """Number of bytes buffered for the current candidate frame."""
        return int(self._state)

    def reset(self) -> None:
        """Drop any partial frame and wait for the next start marker."""
        self._state = ParserState.AWAIT_START

    def process_byte(self, byte: int) -> ParseResult:
        """Consume one byte and report the parser's progress.

        Args:
            byte: A received byte value 0-255.

        Returns:
            An incomplete result while a frame is being collected, a
            completed result carrying the decoded message on its final byte,
            or a failed result carrying a :class:`ParseError`. After a
            completed or failed result the parser waits for a new frame.
        """
        state = self._state

        if state is ParserState.AWAIT_START:
            if byte == START:
                self._buffer[0] = byte
                self._state = ParserState.AWAIT_VERSION
            return _INCOMPLETE

        self._buffer[state] = byte

        expected = _EXPECTED_HEADER.get(state)
        if expected is not None and byte != expected:
            return self._fail(FramingError(
                int(state), expected, byte, bytes(self._buffer[: state + 1])
            ))

        if state is ParserState.AWAIT_END:
            return self._finish()

        self._state = ParserState(state + 1)
        return _INCOMPLETE

    def feed(self, data: Iterable[int]) -> Iterator[ParseResult]:
        """Process a chunk of bytes, yielding every completed or failed result."""
        for byte in data:
            result = self.process_byte(byte)
            if not result.pending:
                yield result

    def _finish(self) -> ParseResult:
        data = bytes(self._buffer)
        self._state = ParserState.AWAIT_START

        received = frame_checksum(data)
        if not verify_checksum(data[CHECKSUM_SPAN], received):
            expected = checksum(data[CHECKSUM_SPAN])
            return self._fail(ChecksumMismatch(expected, received, data))

        if data[OFFSET_END] != END:
            return self._fail(FramingError(OFFSET_END, END, data[OFFSET_END], data))

        frame = Frame(
            command=data[OFFSET_COMMAND],
            param=(data[OFFSET_PARAM_HIGH] << 8) | data[OFFSET_PARAM_LOW],
            feedback=data[OFFSET_FEEDBACK],
        )
        try:
            message = decode_message(frame)
        except InvalidParameter as e:
            e.data = data
            return self._fail(e)
        return ParseResult.completed(frame, message)

    def _fail(self, error: ParseError) -> ParseResult:
        self._state = ParserState.AWAIT_START
        logger.debug("Discarding frame: %s (%s)", error, error.data.hex(" "))
        return ParseResult.failed_with(error)


__all__ = [
    "ParserState",
    "ParseStatus",
    "ParseResult",
    "StreamParser",
]

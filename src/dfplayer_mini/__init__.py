"""Serial protocol for the DFPlayer Mini MP3 module."""

from .exceptions import (
    DFPlayerError,
    BufferTooSmall,
    ParseError,
    ChecksumMismatch,
    FramingError,
    InvalidParameter,
)
from .models.playback import EqMode, PlaybackMode, PlaybackSource, RequestAck
from .protocol import (
    Command,
    CommandCode,
    Frame,
    Message,
    ParseResult,
    ParserState,
    StreamParser,
    UnknownCommand,
)

__version__ = "0.1.0"

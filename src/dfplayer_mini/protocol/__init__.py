"""Protocol layer: frame codec, checksum, command table, and stream parsing."""

from .framing import Frame, build_frame, parse_frame, serialize_into
from .commands import Command, CommandCode, build_command
from .responses import Message, UnknownCommand, decode_message
from .parser import ParseResult, ParserState, StreamParser

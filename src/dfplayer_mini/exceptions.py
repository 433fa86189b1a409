"""Exception types for frame serialization and parsing.

Parse errors are returned by :class:`~dfplayer_mini.protocol.parser.StreamParser`
as values inside a ``ParseResult``; they are only raised when a caller asks
for it via ``ParseResult.raise_for_error()``.
"""

from __future__ import annotations


class DFPlayerError(Exception):
    """Base class for all package errors."""


class BufferTooSmall(DFPlayerError):
    """Output buffer cannot hold a complete frame."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Buffer too small: need {required} bytes, got {available}"
        )
        self.required = required
        self.available = available


class ParseError(DFPlayerError):
    """A candidate frame was discarded by the stream parser."""

    def __init__(self, message: str, data: bytes = b"") -> None:
        super().__init__(message)
        self.data = data

    def __eq__(self, other: object) -> bool:
        return (
            type(self) is type(other)
            and self.args == other.args
            and self.data == other.data
        )

    def __hash__(self) -> int:
        return hash((type(self), self.args, self.data))


class ChecksumMismatch(ParseError):
    """A structurally complete frame failed checksum validation."""

    def __init__(self, expected: int, received: int, data: bytes = b"") -> None:
        super().__init__(
            f"Checksum mismatch: expected 0x{expected:04X}, "
            f"received 0x{received:04X}",
            data,
        )
        self.expected = expected
        self.received = received


class FramingError(ParseError):
    """A fixed version, length or end-marker byte did not match."""

    def __init__(
        self, offset: int, expected: int, received: int, data: bytes = b""
    ) -> None:
        super().__init__(
            f"Framing error at offset {offset}: expected 0x{expected:02X}, "
            f"received 0x{received:02X}",
            data,
        )
        self.offset = offset
        self.expected = expected
        self.received = received


class InvalidParameter(ParseError):
    """A known notification carried a parameter outside its value set."""

    def __init__(self, code: int, param: int, data: bytes = b"") -> None:
        super().__init__(
            f"Invalid parameter 0x{param:04X} for command 0x{code:02X}",
            data,
        )
        self.code = code
        self.param = param


__all__ = [
    "DFPlayerError",
    "BufferTooSmall",
    "ParseError",
    "ChecksumMismatch",
    "FramingError",
    "InvalidParameter",
]

"""16-bit frame checksum.

The module sums the frame bytes from the version field through the low
parameter byte and transmits the two's-complement negation of that sum.
The worked examples in the vendor datasheet disagree with what the module
actually accepts, so the values here follow the module's own control
software.
"""

from __future__ import annotations


def checksum(data: bytes) -> int:
    """Return the negated 16-bit sum of ``data``."""
    return -sum(data) & 0xFFFF


def verify_checksum(data: bytes, expected: int) -> bool:
    """Check that ``data`` plus its checksum sums to zero modulo 2**16."""
    return (sum(data) + expected) & 0xFFFF == 0

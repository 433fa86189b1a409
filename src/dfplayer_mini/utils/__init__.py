"""Shared helpers."""

from .checksum import checksum, verify_checksum

"""Value sets carried in command and notification parameters."""

from __future__ import annotations

from enum import IntEnum


class EqMode(IntEnum):
    """Equalizer presets."""

    NORMAL = 0x00
    POP = 0x01
    ROCK = 0x02
    JAZZ = 0x03
    CLASSIC = 0x04
    BASS = 0x05


class PlaybackMode(IntEnum):
    """Repeat modes."""

    REPEAT = 0x00
    FOLDER_REPEAT = 0x01
    SINGLE_REPEAT = 0x02
    RANDOM = 0x03


class PlaybackSource(IntEnum):
    """Playback sources selectable with the set-source command."""

    UDISK = 0x00
    TF = 0x01
    AUX = 0x02
    SLEEP = 0x03
    FLASH = 0x04


class RequestAck(IntEnum):
    """Feedback flag: whether the module should acknowledge a command."""

    NO = 0x00
    YES = 0x01


class Disk(IntEnum):
    """Storage devices reported in insert, remove and online notifications."""

    UDISK = 0x01
    TF = 0x02
    PC = 0x03
    FLASH = 0x04
    UDISK_AND_FLASH = 0x05


class ModuleErrorType(IntEnum):
    """Error codes reported by the module (command 0x40)."""

    BUSY = 0x00
    INCOMPLETE_FRAME = 0x01
    CHECKSUM_ERROR = 0x02


def enum_by_name(enum_cls: type[IntEnum], name: str) -> IntEnum:
    """Look up an enum member by case-insensitive name.

    Raises:
        ValueError: If ``name`` is not a member of ``enum_cls``.
    """
    key = name.strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return enum_cls[key]
    except KeyError:
        valid = [m.name.lower() for m in enum_cls]
        raise ValueError(
            f"Unknown {enum_cls.__name__} '{name}'. Valid: {valid}"
        ) from None

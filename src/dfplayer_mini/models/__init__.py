"""Parameter value sets for commands and notifications."""

from .playback import (
    EqMode,
    PlaybackMode,
    PlaybackSource,
    RequestAck,
    Disk,
    ModuleErrorType,
)

"""Serial transport for the DFPlayer Mini."""

from .serial_connection import SerialConnection

"""Tests for the serial transport, using pyserial's loop:// URL.

Everything written to a loopback port is read back, so each command sent
is received as the matching decoded message.
"""

import pytest

from dfplayer_mini.protocol.commands import Command, CommandCode
from dfplayer_mini.protocol.framing import build_frame
from dfplayer_mini.protocol.responses import (
    Ack,
    CommandMessage,
    PlaybackFinished,
    QueryReply,
)
from dfplayer_mini.models.playback import Disk
from dfplayer_mini.transport.serial_connection import (
    BAUD_RATE,
    SerialConnection,
)


@pytest.fixture
def conn():
    connection = SerialConnection("loop://", timeout=0.2)
    connection.open()
    yield connection
    connection.close()


def test_default_port_settings():
    connection = SerialConnection()
    assert connection.port_info.baudrate == BAUD_RATE == 9600
    assert connection.port_info.bytesize == 8
    assert connection.port_info.parity == "N"
    assert connection.port_info.stopbits == 1
    assert not connection.connected


def test_open_close(conn):
    assert conn.connected
    conn.close()
    assert not conn.connected
    conn.close()  # closing twice is harmless


def test_open_bad_port():
    connection = SerialConnection("nonexistent://port")
    with pytest.raises(ConnectionError):
        connection.open()


def test_send_requires_connection():
    connection = SerialConnection("loop://")
    with pytest.raises(ConnectionError):
        connection.send(Command.next())
    with pytest.raises(ConnectionError):
        connection.read_message(0.01)


def test_send_writes_frame(conn):
    assert conn.send(Command.track(1)) == 10


def test_send_and_receive(conn):
    message = conn.send_and_receive(Command.track(12))
    assert message == CommandMessage(Command.track(12))


def test_query_loopback(conn):
    message = conn.send_and_receive(Command.query(CommandCode.GET_VOLUME))
    assert message == QueryReply(query=CommandCode.GET_VOLUME, value=0)


def test_reply_code_reads_as_ack(conn):
    conn.send(Command(CommandCode.REPLY), request_ack=True)
    assert conn.read_message() == Ack()


def test_read_message_timeout(conn):
    assert conn.read_message(0.05) is None


def test_read_skips_noise(conn):
    """Garbage and corrupt frames are dropped; the good frame still arrives."""
    bad = bytearray(build_frame(0x3D, 3))
    bad[8] ^= 0x01
    conn.send_raw(b"\x00\x13" + bytes(bad) + build_frame(0x3D, 4))
    assert conn.read_message() == PlaybackFinished(Disk.TF, 4)


def test_read_messages(conn):
    conn.send(Command.next())
    conn.send(Command.pause())
    messages = conn.read_messages(0.3)
    assert messages == [
        CommandMessage(Command.next()),
        CommandMessage(Command.pause()),
    ]


def test_context_manager():
    with SerialConnection("loop://", timeout=0.2) as connection:
        assert connection.connected
        connection.send(Command.reset())
        assert connection.read_message() == CommandMessage(Command.reset())
    assert not connection.connected

"""
Pytest configuration and fixtures for sntp-probe tests.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from sntp_probe.protocol.packet import Packet, ProtocolTimestamp, Mode, PACKET_SIZE, build, parse
from sntp_probe.protocol.timestamp import from_utc


# 2024-12-11 00:00:00 UTC in ns
BASE_INSTANT = 1_733_875_200 * 1_000_000_000


class FakeSocket:
    """
    Stand-in for a connected UDP socket.

    ``responder`` receives the request bytes and returns the datagram to
    deliver, or raises an OSError to simulate a transport failure.
    """

    def __init__(self, responder):
        self.responder = responder
        self.sent = []
        self.bound = None
        self.connected = None
        self.timeout = None
        self.closed = False
        self._pending = b''

    def bind(self, address):
        self.bound = address

    def settimeout(self, timeout):
        self.timeout = timeout

    def connect(self, address):
        self.connected = address

    def send(self, data):
        self.sent.append(data)
        self._pending = self.responder(data)
        return len(data)

    def recv(self, bufsize):
        return self._pending[:bufsize]

    def close(self):
        self.closed = True


def server_reply(request_bytes, receive_instant, transmit_instant, **overrides):
    """Build a well-formed server response echoing the request nonce."""
    request = parse(request_bytes)
    fields = dict(
        version=4,
        mode=Mode.SERVER,
        stratum=2,
        reference_id=0x7f000001,
        reference_timestamp=from_utc(receive_instant - 1_000_000_000),
        origin_timestamp=request.transmit_timestamp,
        receive_timestamp=from_utc(receive_instant),
        transmit_timestamp=from_utc(transmit_instant),
    )
    fields.update(overrides)
    return build(Packet(**fields))


class StepClock:
    """Clock returning successive values from a list."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def __call__(self):
        value = self.values[self.calls]
        self.calls += 1
        return value


@pytest.fixture
def base_instant():
    return BASE_INSTANT


@pytest.fixture
def sample_packet():
    """A server packet with every field populated."""
    return Packet(
        leap=1,
        version=4,
        mode=Mode.SERVER,
        stratum=2,
        poll=6,
        precision=0xEC,
        root_delay=0x00000123,
        root_dispersion=0x00000456,
        reference_id=0x47505300,
        reference_timestamp=ProtocolTimestamp(3_942_864_000, 0x10000000),
        origin_timestamp=ProtocolTimestamp(0xDEADBEEF, 0xCAFEBABE),
        receive_timestamp=ProtocolTimestamp(3_942_864_001, 0x80000000),
        transmit_timestamp=ProtocolTimestamp(3_942_864_001, 0x80001000),
    )

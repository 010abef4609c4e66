"""
NTP Packet Codec

Encodes and decodes the fixed 48-byte NTP message (RFC 5905, section 7.3).
Only the mandatory header is handled; extension fields and MACs that may
follow it are ignored on decode and never produced on encode.

Wire layout (network byte order):

    Offset  Field                                   Size
    0       LI (bits 7-6) | VN (bits 5-3) | Mode    1
    1       Stratum                                 1
    2       Poll                                    1
    3       Precision                               1
    4       Root delay                              4
    8       Root dispersion                         4
    12      Reference ID                            4
    16      Reference timestamp (seconds, fraction) 8
    24      Origin timestamp                        8
    32      Receive timestamp                       8
    40      Transmit timestamp                      8
"""

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Tuple

from ..errors import MalformedPacket

PACKET_SIZE = 48

_HEADER_FORMAT = '!BBBBIII8I'


class Mode(IntEnum):
    """NTP association modes."""
    RESERVED = 0
    SYMMETRIC_ACTIVE = 1
    SYMMETRIC_PASSIVE = 2
    CLIENT = 3
    SERVER = 4
    BROADCAST = 5
    CONTROL = 6
    PRIVATE = 7


@dataclass(frozen=True)
class ProtocolTimestamp:
    """32.32 fixed-point seconds since 1900-01-01."""
    seconds: int = 0
    fraction: int = 0

    def is_zero(self) -> bool:
        return self.seconds == 0 and self.fraction == 0

    def __str__(self) -> str:
        return f"{self.seconds:08x}.{self.fraction:08x}"


# (field name, bit width) for every scalar header field
_FIELD_WIDTHS = (
    ('leap', 2),
    ('version', 3),
    ('mode', 3),
    ('stratum', 8),
    ('poll', 8),
    ('precision', 8),
    ('root_delay', 32),
    ('root_dispersion', 32),
    ('reference_id', 32),
)


@dataclass(frozen=True)
class Packet:
    """An NTP message header."""
    leap: int = 0
    version: int = 0
    mode: int = 0
    stratum: int = 0
    poll: int = 0
    precision: int = 0
    root_delay: int = 0
    root_dispersion: int = 0
    reference_id: int = 0
    reference_timestamp: ProtocolTimestamp = field(default_factory=ProtocolTimestamp)
    origin_timestamp: ProtocolTimestamp = field(default_factory=ProtocolTimestamp)
    receive_timestamp: ProtocolTimestamp = field(default_factory=ProtocolTimestamp)
    transmit_timestamp: ProtocolTimestamp = field(default_factory=ProtocolTimestamp)

    @classmethod
    def client(cls, transmit_timestamp: ProtocolTimestamp = ProtocolTimestamp()) -> "Packet":
        """Version 4 client-mode request."""
        return cls(version=4, mode=Mode.CLIENT, transmit_timestamp=transmit_timestamp)

    def timestamps(self) -> Tuple[ProtocolTimestamp, ...]:
        """Reference, origin, receive and transmit timestamps in wire order."""
        return (
            self.reference_timestamp,
            self.origin_timestamp,
            self.receive_timestamp,
            self.transmit_timestamp,
        )


def _check_range(name: str, value: int, bits: int) -> None:
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name}={value} does not fit in {bits} bits")


def build(packet: Packet) -> bytes:
    """
    Serialize a packet to its 48-byte wire form.

    Raises:
        ValueError: a field is outside its declared bit range
    """
    for name, bits in _FIELD_WIDTHS:
        _check_range(name, getattr(packet, name), bits)
    stamps = []
    for ts in packet.timestamps():
        _check_range('seconds', ts.seconds, 32)
        _check_range('fraction', ts.fraction, 32)
        stamps.extend((ts.seconds, ts.fraction))

    li_vn_mode = (packet.leap << 6) | (packet.version << 3) | packet.mode
    data = struct.pack(
        _HEADER_FORMAT,
        li_vn_mode,
        packet.stratum,
        packet.poll,
        packet.precision,
        packet.root_delay,
        packet.root_dispersion,
        packet.reference_id,
        *stamps
    )
    if len(data) != PACKET_SIZE:
        raise AssertionError(f"encoded packet is {len(data)} bytes, expected {PACKET_SIZE}")
    return data


def parse(data: bytes) -> Packet:
    """
    Decode the first 48 bytes of ``data``.

    Raises:
        MalformedPacket: fewer than 48 bytes available
    """
    if len(data) < PACKET_SIZE:
        raise MalformedPacket(
            f"NTP packet too short: {len(data)} bytes, need {PACKET_SIZE}"
        )
    (li_vn_mode, stratum, poll, precision,
     root_delay, root_dispersion, reference_id,
     *stamps) = struct.unpack_from(_HEADER_FORMAT, data, 0)

    ref, org, rec, xmt = (
        ProtocolTimestamp(stamps[i], stamps[i + 1]) for i in range(0, 8, 2)
    )
    return Packet(
        leap=(li_vn_mode >> 6) & 0b11,
        version=(li_vn_mode >> 3) & 0b111,
        mode=li_vn_mode & 0b111,
        stratum=stratum,
        poll=poll,
        precision=precision,
        root_delay=root_delay,
        root_dispersion=root_dispersion,
        reference_id=reference_id,
        reference_timestamp=ref,
        origin_timestamp=org,
        receive_timestamp=rec,
        transmit_timestamp=xmt,
    )

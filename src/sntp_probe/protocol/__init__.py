"""NTP wire format: packet codec and timestamp conversion."""

from .packet import Packet, ProtocolTimestamp, Mode, PACKET_SIZE, build, parse
from .timestamp import EPOCH_OFFSET, to_utc, from_utc, to_datetime

__all__ = [
    'Packet', 'ProtocolTimestamp', 'Mode', 'PACKET_SIZE', 'build', 'parse',
    'EPOCH_OFFSET', 'to_utc', 'from_utc', 'to_datetime',
]

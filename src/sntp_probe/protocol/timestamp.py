"""
NTP timestamp conversion.

Instants are integer nanoseconds since the Unix epoch, the unit returned by
time.time_ns(). NTP timestamps count 32.32 fixed-point seconds since
1900-01-01.
"""

from datetime import datetime, timezone

from .packet import ProtocolTimestamp

# Seconds from 1900-01-01 to 1970-01-01
EPOCH_OFFSET = 2_208_988_800

NANOS_PER_SECOND = 1_000_000_000
FRACTION_SCALE = 1 << 32


def to_utc(ts: ProtocolTimestamp) -> int:
    """
    Convert an NTP timestamp to nanoseconds since the Unix epoch.

    The fraction is rounded half-up to the nearest nanosecond, using integer
    arithmetic so no precision is lost to floats.
    """
    nanos = (ts.fraction * NANOS_PER_SECOND + FRACTION_SCALE // 2) >> 32
    return (ts.seconds - EPOCH_OFFSET) * NANOS_PER_SECOND + nanos


def from_utc(instant: int) -> ProtocolTimestamp:
    """
    Convert nanoseconds since the Unix epoch to an NTP timestamp.

    Round-trips with to_utc() to within one fraction unit (~233 ps).
    Instants outside NTP era 0 wrap modulo 2**32 seconds.
    """
    seconds, nanos = divmod(instant, NANOS_PER_SECOND)
    fraction = (nanos * FRACTION_SCALE + NANOS_PER_SECOND // 2) // NANOS_PER_SECOND
    return ProtocolTimestamp((seconds + EPOCH_OFFSET) % FRACTION_SCALE, fraction)


def to_datetime(instant: int) -> datetime:
    """Aware UTC datetime for an instant (microsecond resolution)."""
    seconds, nanos = divmod(instant, NANOS_PER_SECOND)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=nanos // 1000)

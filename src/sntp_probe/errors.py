"""
Error taxonomy for sntp-probe.

Per-attempt failures (TransportError and the ResponseError family) are
recovered by the sampling session. InsufficientSamples is terminal and
reaches the caller. MeasurementDefect signals a broken invariant and is
never retried.
"""

from typing import Optional


class SNTPError(Exception):
    """Base class for all SNTP query failures."""


class TransportError(SNTPError):
    """Resolve, bind, connect, send, receive or timeout failure."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{message}: {cause}" if cause else message)
        self.cause = cause


class ResponseError(SNTPError):
    """A response arrived but failed validation."""


class MalformedResponse(ResponseError):
    """Response too short or otherwise undecodable."""


class UnexpectedMode(ResponseError):
    """Response mode is not 'server'."""

    def __init__(self, mode: int):
        super().__init__(f"Bad NTP response (unexpected mode value {mode})")
        self.mode = mode


class ServerUnsynchronized(ResponseError):
    """Stratum 0: kiss of death or unsynchronized server."""

    def __init__(self, stratum: int = 0):
        super().__init__("Bad NTP response (stratum is zero)")
        self.stratum = stratum


class InvalidTimestamp(ResponseError):
    """Response transmit timestamp is all-zero."""

    def __init__(self):
        super().__init__("Bad NTP response (transmit timestamp is zero)")


class ResponseMismatch(ResponseError):
    """Origin timestamp does not echo the request's transmit timestamp."""

    def __init__(self, expected, received):
        super().__init__(
            "Bad NTP response (origin timestamp does not equal request's "
            f"transmit timestamp: expected {expected}, got {received})"
        )
        self.expected = expected
        self.received = received


class InsufficientSamples(SNTPError):
    """The attempt budget ran out before enough samples were gathered."""

    def __init__(self, gathered: int, required: Optional[int] = None):
        msg = f"Couldn't gather enough successful timings (gathered {gathered}"
        msg += f" of {required})" if required is not None else ")"
        super().__init__(msg)
        self.gathered = gathered
        self.required = required


class MalformedPacket(ValueError):
    """Fewer bytes than a complete NTP message."""


class MeasurementDefect(AssertionError):
    """Delay is not strictly positive after applying the precision floor."""

"""
sntp-probe: one-shot SNTP clock offset measurement

Queries a time server with the SNTP subset of RFC 5905 and estimates the
offset between the local and remote clocks:

    1. Local clock precision (rho) is measured once
    2. Up to 24 round trips are made until 8 validated samples are collected
    3. The minimum-delay sample gives offset and delay; jitter is the RMS
       deviation of all offsets from it

The result is handed to the caller. Applying it to the system clock is
left to the consumer.

Version: 1.0.0
"""

__version__ = "1.0.0"

from .errors import (
    SNTPError,
    TransportError,
    ResponseError,
    MalformedResponse,
    UnexpectedMode,
    ServerUnsynchronized,
    InvalidTimestamp,
    ResponseMismatch,
    InsufficientSamples,
)
from .interfaces.query_result import QueryResult

__all__ = [
    "SNTPError",
    "TransportError",
    "ResponseError",
    "MalformedResponse",
    "UnexpectedMode",
    "ServerUnsynchronized",
    "InvalidTimestamp",
    "ResponseMismatch",
    "InsufficientSamples",
    "QueryResult",
    "__version__",
]

"""
SNTP Round-Trip Sampler

Performs one client/server exchange and captures the four NTP timestamps:

    t1  client transmit   (local clock, just before send)
    t2  server receive    (from response)
    t3  server transmit   (from response)
    t4  client receive    (local clock, just after recv)

    offset = ((t2 - t1) + (t3 - t4)) / 2
    delay  = (t4 - t1) - (t2 - t3)

Nothing but send/recv runs between the t1 and t4 clock reads. Errors,
parsing, validation and logging all happen after t4 has been captured.

Each request carries a random transmit timestamp. A genuine server echoes
it back as the origin timestamp, which rejects stale, foreign and spoofed
responses.
"""

import logging
import random
import socket
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..errors import (
    SNTPError,
    TransportError,
    MalformedResponse,
    UnexpectedMode,
    ServerUnsynchronized,
    InvalidTimestamp,
    ResponseMismatch,
    MalformedPacket,
    MeasurementDefect,
)
from ..protocol.packet import Packet, ProtocolTimestamp, Mode, PACKET_SIZE, build, parse
from ..protocol.timestamp import to_utc

logger = logging.getLogger(__name__)

NTP_PORT = 123
DEFAULT_TIMEOUT = 1.0


def _halve(value: int) -> int:
    """Integer division by two, truncating toward zero."""
    return -((-value) // 2) if value < 0 else value // 2


@dataclass(frozen=True)
class RoundTripRecord:
    """Four instants (ns since the Unix epoch) around one exchange."""
    t1: int
    t2: int
    t3: int
    t4: int

    @property
    def offset(self) -> int:
        """Remote minus local clock, in ns."""
        return _halve((self.t2 - self.t1) + (self.t3 - self.t4))

    @property
    def delay_raw(self) -> int:
        """Round-trip delay before applying the precision floor, in ns."""
        return (self.t4 - self.t1) - (self.t2 - self.t3)

    def delay(self, precision: float) -> int:
        """
        Round-trip delay floored at the clock precision, in ns.

        Raises:
            MeasurementDefect: result is not strictly positive
        """
        floor_ns = max(1, int(precision * 1e9))
        delay = max(self.delay_raw, floor_ns)
        if delay <= 0:
            raise MeasurementDefect(f"non-positive delay {delay}ns (precision {precision}s)")
        return delay


@dataclass(frozen=True)
class Attempt:
    """Outcome of one exchange: exactly one of record/error is set."""
    record: Optional[RoundTripRecord] = None
    error: Optional[SNTPError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Response validation chain, evaluated in order, first failure wins
# ---------------------------------------------------------------------------

def _check_mode(response: Packet, request: Packet) -> Optional[SNTPError]:
    if response.mode != Mode.SERVER:
        return UnexpectedMode(response.mode)
    return None


def _check_stratum(response: Packet, request: Packet) -> Optional[SNTPError]:
    if response.stratum == 0:
        return ServerUnsynchronized(response.stratum)
    return None


def _check_transmit_timestamp(response: Packet, request: Packet) -> Optional[SNTPError]:
    if response.transmit_timestamp.is_zero():
        return InvalidTimestamp()
    return None


def _check_origin_timestamp(response: Packet, request: Packet) -> Optional[SNTPError]:
    if response.origin_timestamp != request.transmit_timestamp:
        return ResponseMismatch(request.transmit_timestamp, response.origin_timestamp)
    return None


RESPONSE_CHECKS: Tuple[Callable[[Packet, Packet], Optional[SNTPError]], ...] = (
    _check_mode,
    _check_stratum,
    _check_transmit_timestamp,
    _check_origin_timestamp,
)


def decode_response(data: bytes, request: Packet) -> Packet:
    """
    Parse and validate a server response.

    Raises:
        MalformedResponse, UnexpectedMode, ServerUnsynchronized,
        InvalidTimestamp, ResponseMismatch
    """
    try:
        response = parse(data)
    except MalformedPacket as e:
        raise MalformedResponse(f"Bad NTP response ({e})") from e

    for check in RESPONSE_CHECKS:
        error = check(response, request)
        if error is not None:
            raise error
    return response


def make_nonce() -> ProtocolTimestamp:
    """Random transmit timestamp identifying one request."""
    return ProtocolTimestamp(random.getrandbits(32), random.getrandbits(32))


class RoundTripSampler:
    """
    Performs single SNTP exchanges against a server.

    Usage:
        sampler = RoundTripSampler(precision=measure_clock_precision())
        record = sampler.sample("pool.ntp.org")
        print(record.offset, record.delay(sampler.precision))
    """

    def __init__(
        self,
        precision: float,
        timeout: float = DEFAULT_TIMEOUT,
        socket_factory: Callable[..., socket.socket] = socket.socket,
        clock: Callable[[], int] = time.time_ns,
        nonce_factory: Callable[[], ProtocolTimestamp] = make_nonce,
    ):
        """
        Initialize sampler.

        Args:
            precision: Local clock precision in seconds, floor for delay
            timeout: Socket timeout for each send/recv (seconds)
            socket_factory: Callable with socket.socket's signature
            clock: Clock source returning ns since the Unix epoch
            nonce_factory: Produces the per-request transmit timestamp
        """
        self.precision = precision
        self.timeout = timeout
        self.socket_factory = socket_factory
        self.clock = clock
        self.nonce_factory = nonce_factory

    def _open(self, host: str, port: int) -> socket.socket:
        try:
            family, socktype, proto, _, address = socket.getaddrinfo(
                host, port, type=socket.SOCK_DGRAM
            )[0]
        except OSError as e:
            raise TransportError(f"Failed to resolve time server {host}", e) from e

        try:
            sock = self.socket_factory(family, socktype, proto)
        except OSError as e:
            raise TransportError(f"Failed to create socket for time server {host}", e) from e

        try:
            sock.bind(('::', 0) if family == socket.AF_INET6 else ('0.0.0.0', 0))
            sock.settimeout(self.timeout)
            sock.connect(address)
        except OSError as e:
            sock.close()
            raise TransportError(f"Failed to connect to time server {host}", e) from e
        return sock

    def sample(self, host: str, port: int = NTP_PORT) -> RoundTripRecord:
        """
        Perform one exchange.

        Returns:
            RoundTripRecord with t1..t4

        Raises:
            TransportError: any socket-level failure
            ResponseError: response failed validation
        """
        request = Packet.client(transmit_timestamp=self.nonce_factory())
        message = build(request)

        sock = self._open(host, port)
        try:
            io_error = None
            data = b''

            # critical section
            t1 = self.clock()
            try:
                sock.send(message)
                data = sock.recv(PACKET_SIZE)
            except OSError as e:
                io_error = e
            t4 = self.clock()
            # end critical section
        finally:
            sock.close()

        if io_error is not None:
            if isinstance(io_error, socket.timeout):
                raise TransportError(f"Timed out waiting for NTP response from {host}", io_error) from io_error
            raise TransportError(f"Failed to exchange NTP packets with {host}", io_error) from io_error

        response = decode_response(data, request)
        logger.debug(
            f"Response from {host}:{port}: stratum={response.stratum} "
            f"refid=0x{response.reference_id:08x} leap={response.leap}"
        )
        return RoundTripRecord(
            t1=t1,
            t2=to_utc(response.receive_timestamp),
            t3=to_utc(response.transmit_timestamp),
            t4=t4,
        )

    def try_sample(self, host: str, port: int = NTP_PORT) -> Attempt:
        """Like sample(), but reports failures in the returned Attempt."""
        try:
            return Attempt(record=self.sample(host, port))
        except SNTPError as e:
            return Attempt(error=e)

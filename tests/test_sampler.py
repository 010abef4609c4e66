"""
Unit tests for the round-trip sampler.

Uses FakeSocket and StepClock from conftest so exchanges are fully
deterministic: t1/t4 come from the step clock, t2/t3 from the fake server.
"""

import socket

import pytest

from conftest import FakeSocket, StepClock, server_reply, BASE_INSTANT

MS = 1_000_000


def make_sampler(responder, clock_values=(BASE_INSTANT, BASE_INSTANT + 2 * MS),
                 precision=1e-6, nonce=None):
    from sntp_probe.engine.sampler import RoundTripSampler, make_nonce

    sock = FakeSocket(responder)
    sampler = RoundTripSampler(
        precision=precision,
        socket_factory=lambda *args: sock,
        clock=StepClock(clock_values),
        nonce_factory=(lambda: nonce) if nonce else make_nonce,
    )
    return sampler, sock


def good_responder(data):
    return server_reply(data, BASE_INSTANT + 10 * MS, BASE_INSTANT + 12 * MS)


class TestRoundTripRecord:
    """Test offset and delay formulas."""

    def test_offset_formula(self):
        from sntp_probe.engine.sampler import RoundTripRecord

        record = RoundTripRecord(t1=0, t2=10, t3=12, t4=2)
        assert record.offset == 10

    def test_delay_formula(self):
        from sntp_probe.engine.sampler import RoundTripRecord

        record = RoundTripRecord(t1=0, t2=10, t3=12, t4=2)
        assert record.delay_raw == 4
        assert record.delay(precision=1e-9) == 4

    def test_negative_offset(self):
        from sntp_probe.engine.sampler import RoundTripRecord

        record = RoundTripRecord(t1=100, t2=40, t3=41, t4=104)
        assert record.offset == -61

    def test_offset_truncates_toward_zero(self):
        from sntp_probe.engine.sampler import RoundTripRecord

        assert RoundTripRecord(t1=0, t2=3, t3=0, t4=0).offset == 1
        assert RoundTripRecord(t1=0, t2=-3, t3=0, t4=0).offset == -1

    def test_delay_clamped_to_precision(self):
        from sntp_probe.engine.sampler import RoundTripRecord

        # raw delay is negative: server claims it held the packet longer
        record = RoundTripRecord(t1=0, t2=100, t3=50, t4=10)
        assert record.delay_raw == -40
        assert record.delay(precision=1e-6) == 1000

    def test_delay_floor_truncates_to_whole_nanoseconds(self):
        from sntp_probe.engine.sampler import RoundTripRecord

        record = RoundTripRecord(t1=0, t2=0, t3=0, t4=0)
        assert record.delay(precision=1.9e-9) == 1
        assert record.delay(precision=2 ** -22) == 238

    def test_delay_always_positive(self):
        from sntp_probe.engine.sampler import RoundTripRecord

        record = RoundTripRecord(t1=0, t2=0, t3=0, t4=0)
        assert record.delay(precision=0.0) == 1


class TestSampleSuccess:
    """Test a well-formed exchange."""

    def test_sample_returns_four_timestamps(self):
        sampler, sock = make_sampler(good_responder)

        record = sampler.sample('127.0.0.1', 123)

        assert record.t1 == BASE_INSTANT
        assert record.t2 == BASE_INSTANT + 10 * MS
        assert record.t3 == BASE_INSTANT + 12 * MS
        assert record.t4 == BASE_INSTANT + 2 * MS
        assert record.offset == 10 * MS
        assert record.delay(sampler.precision) == 4 * MS

    def test_socket_setup(self):
        sampler, sock = make_sampler(good_responder)

        sampler.sample('127.0.0.1', 1123)

        assert sock.bound == ('0.0.0.0', 0)
        assert sock.timeout == 1.0
        assert sock.connected == ('127.0.0.1', 1123)
        assert sock.closed

    def test_request_is_client_with_nonce(self):
        from sntp_probe.protocol.packet import ProtocolTimestamp, Mode, parse

        nonce = ProtocolTimestamp(0x01020304, 0x05060708)
        sampler, sock = make_sampler(good_responder, nonce=nonce)

        sampler.sample('127.0.0.1')

        request = parse(sock.sent[0])
        assert len(sock.sent[0]) == 48
        assert request.mode == Mode.CLIENT
        assert request.version == 4
        assert request.transmit_timestamp == nonce

    def test_nonces_differ_between_requests(self):
        from sntp_probe.engine.sampler import make_nonce

        assert len({make_nonce() for _ in range(16)}) > 1

    def test_clock_read_exactly_twice(self):
        sampler, sock = make_sampler(good_responder)
        sampler.sample('127.0.0.1')
        assert sampler.clock.calls == 2


class TestResponseValidation:
    """Test the validation chain and its ordering."""

    def test_short_response(self):
        from sntp_probe.errors import MalformedResponse

        sampler, _ = make_sampler(lambda data: good_responder(data)[:40])
        with pytest.raises(MalformedResponse):
            sampler.sample('127.0.0.1')

    def test_unexpected_mode(self):
        from sntp_probe.errors import UnexpectedMode
        from sntp_probe.protocol.packet import Mode

        sampler, _ = make_sampler(
            lambda data: server_reply(data, BASE_INSTANT, BASE_INSTANT, mode=Mode.CLIENT)
        )
        with pytest.raises(UnexpectedMode) as exc_info:
            sampler.sample('127.0.0.1')
        assert exc_info.value.mode == 3

    def test_stratum_zero_is_kiss_of_death(self):
        from sntp_probe.errors import ServerUnsynchronized

        sampler, _ = make_sampler(
            lambda data: server_reply(data, BASE_INSTANT, BASE_INSTANT, stratum=0)
        )
        with pytest.raises(ServerUnsynchronized):
            sampler.sample('127.0.0.1')

    def test_zero_transmit_timestamp(self):
        from sntp_probe.errors import InvalidTimestamp
        from sntp_probe.protocol.packet import ProtocolTimestamp

        sampler, _ = make_sampler(
            lambda data: server_reply(
                data, BASE_INSTANT, BASE_INSTANT, transmit_timestamp=ProtocolTimestamp(0, 0)
            )
        )
        with pytest.raises(InvalidTimestamp):
            sampler.sample('127.0.0.1')

    def test_origin_mismatch_rejected(self):
        """Every other field is valid; only the echoed nonce is wrong."""
        from sntp_probe.errors import ResponseMismatch
        from sntp_probe.protocol.packet import ProtocolTimestamp

        nonce = ProtocolTimestamp(0x11111111, 0x22222222)
        sampler, _ = make_sampler(
            lambda data: server_reply(
                data, BASE_INSTANT + 10 * MS, BASE_INSTANT + 12 * MS,
                origin_timestamp=ProtocolTimestamp(0x11111111, 0x22222223)
            ),
            nonce=nonce,
        )
        with pytest.raises(ResponseMismatch) as exc_info:
            sampler.sample('127.0.0.1')
        assert exc_info.value.expected == nonce

    def test_mode_checked_before_stratum(self):
        from sntp_probe.errors import UnexpectedMode
        from sntp_probe.protocol.packet import Mode

        sampler, _ = make_sampler(
            lambda data: server_reply(
                data, BASE_INSTANT, BASE_INSTANT, mode=Mode.BROADCAST, stratum=0
            )
        )
        with pytest.raises(UnexpectedMode):
            sampler.sample('127.0.0.1')

    def test_stratum_checked_before_origin(self):
        from sntp_probe.errors import ServerUnsynchronized
        from sntp_probe.protocol.packet import ProtocolTimestamp

        sampler, _ = make_sampler(
            lambda data: server_reply(
                data, BASE_INSTANT, BASE_INSTANT,
                stratum=0, origin_timestamp=ProtocolTimestamp(9, 9)
            )
        )
        with pytest.raises(ServerUnsynchronized):
            sampler.sample('127.0.0.1')

    def test_validation_errors_are_response_errors(self):
        from sntp_probe.errors import (
            ResponseError, MalformedResponse, UnexpectedMode,
            ServerUnsynchronized, InvalidTimestamp, ResponseMismatch,
        )

        for cls in (MalformedResponse, UnexpectedMode, ServerUnsynchronized,
                    InvalidTimestamp, ResponseMismatch):
            assert issubclass(cls, ResponseError)


class TestTransportErrors:
    """Test that socket failures become TransportError."""

    def test_timeout(self):
        from sntp_probe.errors import TransportError

        def responder(data):
            raise socket.timeout("timed out")

        sampler, sock = make_sampler(responder)
        with pytest.raises(TransportError) as exc_info:
            sampler.sample('127.0.0.1')
        assert isinstance(exc_info.value.cause, socket.timeout)
        assert sock.closed

    def test_refused(self):
        from sntp_probe.errors import TransportError

        def responder(data):
            raise ConnectionRefusedError(111, "Connection refused")

        sampler, _ = make_sampler(responder)
        with pytest.raises(TransportError) as exc_info:
            sampler.sample('127.0.0.1')
        assert isinstance(exc_info.value.cause, ConnectionRefusedError)

    def test_both_clock_reads_happen_on_failure(self):
        from sntp_probe.errors import TransportError

        def responder(data):
            raise OSError("boom")

        sampler, _ = make_sampler(responder)
        with pytest.raises(TransportError):
            sampler.sample('127.0.0.1')
        assert sampler.clock.calls == 2

    def test_socket_creation_failure(self):
        import errno
        from sntp_probe.engine.sampler import RoundTripSampler
        from sntp_probe.errors import TransportError

        def no_sockets(*args):
            raise OSError(errno.EMFILE, "Too many open files")

        sampler = RoundTripSampler(precision=1e-6, socket_factory=no_sockets)
        with pytest.raises(TransportError) as exc_info:
            sampler.sample('127.0.0.1')
        assert exc_info.value.cause.errno == errno.EMFILE

        attempt = sampler.try_sample('127.0.0.1')
        assert not attempt.ok
        assert isinstance(attempt.error, TransportError)

    def test_resolve_failure(self, monkeypatch):
        from sntp_probe.errors import TransportError

        def fail(*args, **kwargs):
            raise socket.gaierror(-2, "Name or service not known")

        monkeypatch.setattr(socket, 'getaddrinfo', fail)
        sampler, _ = make_sampler(good_responder)
        with pytest.raises(TransportError):
            sampler.sample('no.such.host.invalid')


class TestTrySample:
    """Test the non-raising variant used by the session."""

    def test_success(self):
        sampler, _ = make_sampler(good_responder)
        attempt = sampler.try_sample('127.0.0.1')
        assert attempt.ok
        assert attempt.record.offset == 10 * MS

    def test_failure(self):
        from sntp_probe.errors import ServerUnsynchronized

        sampler, _ = make_sampler(
            lambda data: server_reply(data, BASE_INSTANT, BASE_INSTANT, stratum=0)
        )
        attempt = sampler.try_sample('127.0.0.1')
        assert not attempt.ok
        assert attempt.record is None
        assert isinstance(attempt.error, ServerUnsynchronized)

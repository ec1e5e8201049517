"""Shared fixtures: server reply builder and an in-memory transport."""

import struct

import pytest

from sntp_query.errors import ReceiveInterrupted
from sntp_query.ntp.packet import PACKET_FORMAT, TRANSMIT_OFFSET


def build_reply(
    origin,
    receive=0,
    transmit=0,
    header=(0 << 6) | (4 << 3) | 4,
    stratum=2,
    poll=6,
    precision=-20,
    root_delay=0x00010000,
    root_dispersion=0x00008000,
    ref_id=bytes([192, 0, 2, 1]),
    reference=0,
):
    return struct.pack(
        PACKET_FORMAT,
        header,
        stratum,
        poll,
        precision,
        root_delay,
        root_dispersion,
        ref_id,
        reference,
        origin,
        receive,
        transmit,
    )


def echo_transmit(request):
    """Origin timestamp a well-behaved server would copy from ``request``."""
    return struct.unpack_from("!Q", request, TRANSMIT_OFFSET)[0]


class FakeTransport:
    """Transport double; ``responder`` maps the sent request to reply bytes."""

    def __init__(self, responder=None, ipv4=True, send_error=None, receive_error=None):
        self.responder = responder
        self.ipv4 = ipv4
        self.send_error = send_error
        self.receive_error = receive_error
        self.sent = []
        self.closed = False

    def send(self, data):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(data)

    def receive(self, size, cancel=None):
        if cancel is not None and cancel.cancelled:
            raise ReceiveInterrupted("receive cancelled")
        if self.receive_error is not None:
            raise self.receive_error
        return self.responder(self.sent[-1])

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


@pytest.fixture
def reply_builder():
    return build_reply


@pytest.fixture
def echo():
    return echo_transmit


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def fixed_clock():
    """Clock returning the given raw timestamps in order."""

    def make(*values):
        return iter(values).__next__

    return make

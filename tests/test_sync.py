"""Tests for clock offset and round-trip delay"""

from structlog.testing import capture_logs

from sntp_query.ntp.packet import parse_response
from sntp_query.ntp.sync import clock_offset, origin_matches, round_trip_delay, synchronize
from sntp_query.ntp.timestamps import NTP_EPOCH, from_unix

SECOND = 1 << 32


class TestOffsetAndDelay:
    """Test the RFC 5905 formulas on raw 64-bit timestamps"""

    def test_identical_timestamps(self):
        """Four equal timestamps give exactly zero offset and delay"""
        t = from_unix(1_700_000_000.5)
        assert clock_offset(t, t, t, t) == 0.0
        assert round_trip_delay(t, t, t, t) == 0.0

    def test_symmetric_path_instant_server(self):
        """org=0, rcv=xmt=5 units, dst=10 units"""
        unit = 1 << 20
        org, rcv, xmt, dst = 0, 5 * unit, 5 * unit, 10 * unit

        assert round_trip_delay(org, rcv, xmt, dst) == (dst - org) / SECOND
        # ((rcv - org) - (dst - xmt)) / 2: the server sits midway
        assert clock_offset(org, rcv, xmt, dst) == 0.0

    def test_server_ahead(self):
        """Server two seconds ahead with 100 ms each way"""
        base = from_unix(1_700_000_000.0)
        org = base
        rcv = base + 2 * SECOND + SECOND // 10
        xmt = rcv
        dst = base + SECOND // 5

        assert abs(clock_offset(org, rcv, xmt, dst) - 2.0) < 1e-9
        assert abs(round_trip_delay(org, rcv, xmt, dst) - 0.2) < 1e-9

    def test_server_behind_is_negative(self):
        base = from_unix(1_700_000_000.0)
        org = base
        rcv = xmt = base - 3 * SECOND
        dst = base

        assert clock_offset(org, rcv, xmt, dst) == -3.0
        assert round_trip_delay(org, rcv, xmt, dst) == 0.0

    def test_across_era_boundary(self):
        """Client just before the 2036 rollover, server just after"""
        org = (1 << 64) - SECOND  # one second before wrap
        rcv = xmt = SECOND  # one second after wrap
        dst = (1 << 64) - SECOND

        assert clock_offset(org, rcv, xmt, dst) == 2.0
        assert round_trip_delay(org, rcv, xmt, dst) == 0.0

    def test_half_unit_resolution(self):
        """The halving is exact: one fixed-point unit each side gives 2**-32"""
        assert clock_offset(0, 1, 1, 0) == 2**-32


class TestSynchronize:
    """Test the combined calculation and origin check"""

    def test_matching_origin(self, reply_builder):
        org = from_unix(1_700_000_000.0)
        packet = parse_response(
            reply_builder(origin=org, receive=org + SECOND, transmit=org + SECOND), True
        )
        with capture_logs() as logs:
            result = synchronize(org, packet, org)

        assert result.origin_ok
        assert result.offset == 1.0
        assert result.delay == 0.0
        assert (result.org, result.rcv, result.xmt, result.dst) == (
            org,
            org + SECOND,
            org + SECOND,
            org,
        )
        assert logs == []

    def test_origin_mismatch_warns_but_reports(self, reply_builder):
        """A foreign origin is flagged while offset and delay are still computed"""
        org = NTP_EPOCH << 32
        packet = parse_response(
            reply_builder(origin=org + 1, receive=org, transmit=org), True
        )
        with capture_logs() as logs:
            result = synchronize(org, packet, org)

        assert not result.origin_ok
        assert result.offset == 0.0
        assert result.delay == 0.0
        assert [e["event"] for e in logs] == ["origin_timestamp_mismatch"]
        assert logs[0]["log_level"] == "warning"
        assert logs[0]["sent"] == org
        assert logs[0]["echoed"] == org + 1

    def test_origin_matches(self):
        assert origin_matches(5, 5)
        assert not origin_matches(5, 6)

"""Clock offset and round-trip delay from one request/response exchange.

With T1=org (client send), T2=rcv (server receive), T3=xmt (server send) and
T4=dst (client receive), RFC 5905 gives::

    offset = ((T2 - T1) + (T3 - T4)) / 2
    delay  = (T4 - T1) - (T3 - T2)

Both are evaluated on the raw 64-bit words modulo 2**64 and only the final
difference is reinterpreted as signed and scaled to seconds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import structlog

from sntp_query.ntp.packet import ResponsePacket
from sntp_query.ntp.timestamps import MASK64, to_signed64

logger = structlog.get_logger(__name__)


def clock_offset(org: int, rcv: int, xmt: int, dst: int) -> float:
    """Clock offset (theta) in seconds; the 2**-33 scale folds in the halving."""
    diff = (((rcv - org) & MASK64) - ((dst - xmt) & MASK64)) & MASK64
    return math.ldexp(to_signed64(diff), -33)


def round_trip_delay(org: int, rcv: int, xmt: int, dst: int) -> float:
    """Round-trip delay (delta) in seconds."""
    diff = (((dst - org) & MASK64) - ((xmt - rcv) & MASK64)) & MASK64
    return math.ldexp(to_signed64(diff), -32)


def origin_matches(sent_org: int, echoed_org: int) -> bool:
    return sent_org == echoed_org


@dataclass(frozen=True)
class SyncResult:
    org: int
    rcv: int
    xmt: int
    dst: int
    offset: float
    delay: float
    origin_ok: bool


def synchronize(org: int, packet: ResponsePacket, dst: int) -> SyncResult:
    """Compute offset and delay for a parsed reply.

    A reply whose origin timestamp is not the one we sent is still evaluated;
    the mismatch is logged and flagged on the result so the caller can decide
    whether to trust it.
    """
    origin_ok = origin_matches(org, packet.origin_time)
    if not origin_ok:
        logger.warning(
            "origin_timestamp_mismatch",
            sent=org,
            echoed=packet.origin_time,
        )
    rcv, xmt = packet.receive_time, packet.transmit_time
    return SyncResult(
        org=org,
        rcv=rcv,
        xmt=xmt,
        dst=dst,
        offset=clock_offset(org, rcv, xmt, dst),
        delay=round_trip_delay(org, rcv, xmt, dst),
        origin_ok=origin_ok,
    )

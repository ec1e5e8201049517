"""NTP fixed-point timestamp codec.

Two wire formats are handled:

- the 64-bit timestamp: 32 bits of seconds since 1900-01-01 followed by
  32 bits of fraction;
- the 32-bit short format (16.16) used for root delay and root dispersion.

Timestamps are kept as raw unsigned Python ints so that differences can be
taken modulo 2**64 exactly as the protocol expects. Conversion to floating
point happens only for display.
"""

from __future__ import annotations

import math
import time
from typing import Tuple

NTP_EPOCH = 2208988800  # seconds between 1900-01-01 and 1970-01-01
FRACTION_SCALE = 1 << 32
MASK64 = (1 << 64) - 1
MASK32 = (1 << 32) - 1

_NS_PER_SECOND = 1_000_000_000


def encode64(seconds: int, fraction: float) -> int:
    """Pack Unix ``seconds`` and a ``fraction`` in [0, 1) into an NTP timestamp.

    A fraction that rounds up to a whole second carries into the seconds
    field. Seconds past the 32-bit range wrap (no era handling).
    """
    frac = int(round(fraction * FRACTION_SCALE))
    return (((seconds + NTP_EPOCH) << 32) + frac) & MASK64


def from_unix(t: float) -> int:
    """Encode a float Unix time."""
    seconds = math.floor(t)
    return encode64(seconds, t - seconds)


def from_time_ns(ns: int) -> int:
    """Encode an integer nanosecond Unix clock reading without going through float."""
    seconds, rem = divmod(ns, _NS_PER_SECOND)
    frac = ((rem << 32) + _NS_PER_SECOND // 2) // _NS_PER_SECOND
    return (((seconds + NTP_EPOCH) << 32) + frac) & MASK64


def split64(ts: int) -> Tuple[int, int]:
    """Return the (seconds, fraction) halves of a raw 64-bit timestamp."""
    return (ts >> 32) & MASK32, ts & MASK32


def decode64(ts: int) -> float:
    """Decode a raw 64-bit timestamp to Unix seconds."""
    seconds, frac = split64(ts)
    return (seconds - NTP_EPOCH) + math.ldexp(frac, -32)


def decode_short32(value: int) -> float:
    """Decode a 16.16 short-format duration to milliseconds."""
    return math.ldexp(value & MASK32, -16) * 1000


def to_signed64(value: int) -> int:
    """Reinterpret a 64-bit word as a two's complement integer."""
    value &= MASK64
    return value - (1 << 64) if value >> 63 else value


def system_clock() -> int:
    """Current local time as a raw NTP timestamp."""
    return from_time_ns(time.time_ns())

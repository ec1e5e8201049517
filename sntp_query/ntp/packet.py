"""NTP packet layout: request builder and response parser.

Header layout (48 octets, big-endian)::

    0      LI(2) VN(3) Mode(3)
    1      stratum
    2      poll (log2 s)
    3      precision (signed log2 s)
    4-7    root delay (16.16)
    8-11   root dispersion (16.16)
    12-15  reference id
    16-23  reference timestamp
    24-31  origin timestamp
    32-39  receive timestamp
    40-47  transmit timestamp
"""

from __future__ import annotations

import socket
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple

from sntp_query.errors import TruncatedPacketError
from sntp_query.ntp.timestamps import decode64, decode_short32

PACKET_SIZE = 48
PACKET_FORMAT = "!BBBbII4sQQQQ"
TRANSMIT_OFFSET = 40

NTP_VERSION = 4
UNSYNCHRONIZED_STRATUM = 16


class LeapIndicator(IntEnum):
    NO_WARNING = 0
    LAST_MINUTE_61 = 1
    LAST_MINUTE_59 = 2
    UNKNOWN = 3  # clock unsynchronized


class Mode(IntEnum):
    RESERVED = 0
    SYMMETRIC_ACTIVE = 1
    SYMMETRIC_PASSIVE = 2
    CLIENT = 3
    SERVER = 4
    BROADCAST = 5
    CONTROL = 6
    PRIVATE = 7


def leap_of(header: int) -> LeapIndicator:
    return LeapIndicator((header >> 6) & 0x3)


def version_of(header: int) -> int:
    return (header >> 3) & 0x7


def mode_of(header: int) -> Mode:
    return Mode(header & 0x7)


def pack_header(leap: int, version: int, mode: int) -> int:
    return ((leap & 0x3) << 6) | ((version & 0x7) << 3) | (mode & 0x7)


def build_request(local_send_time: int) -> Tuple[bytes, int]:
    """Build a client-mode request stamped with ``local_send_time``.

    ``local_send_time`` is a raw 64-bit NTP timestamp. It is written into the
    transmit field and returned as ``org`` so the caller can check the echo in
    the reply without re-parsing its own request.
    """
    packet = bytearray(PACKET_SIZE)
    packet[0] = pack_header(LeapIndicator.UNKNOWN, NTP_VERSION, Mode.CLIENT)
    packet[1] = UNSYNCHRONIZED_STRATUM
    struct.pack_into("!Q", packet, TRANSMIT_OFFSET, local_send_time)
    return bytes(packet), local_send_time


def format_reference_id(stratum: int, raw: bytes, ipv4: bool) -> str:
    """Render the reference id according to stratum and transport family.

    Stratum 0 carries a kiss code and stratum 1 a clock source name, both
    four ASCII characters passed through unescaped. Above that the field is
    the upstream IPv4 address, or an opaque hash when the reply came over
    IPv6, which is shown as hex rather than guessed at.
    """
    if stratum == 0:
        return "kod:" + raw.decode("latin-1")
    if stratum == 1:
        return "clock:" + raw.decode("latin-1")
    if ipv4:
        return socket.inet_ntop(socket.AF_INET, raw)
    return "0x%08x" % struct.unpack("!I", raw)[0]


@dataclass(frozen=True)
class ResponsePacket:
    leap: LeapIndicator
    version: int
    mode: Mode
    stratum: int
    poll: int
    precision: int
    root_delay: float  # ms
    root_dispersion: float  # ms
    reference_id: str
    reference_id_raw: bytes
    reference_time: int
    origin_time: int
    receive_time: int
    transmit_time: int

    @property
    def is_kiss_of_death(self) -> bool:
        return self.stratum == 0

    @property
    def reference_unix(self) -> float:
        return decode64(self.reference_time)

    @property
    def origin_unix(self) -> float:
        return decode64(self.origin_time)

    @property
    def receive_unix(self) -> float:
        return decode64(self.receive_time)

    @property
    def transmit_unix(self) -> float:
        return decode64(self.transmit_time)


def parse_response(data: bytes, ipv4: bool) -> ResponsePacket:
    """Decode the first 48 bytes of ``data`` into a :class:`ResponsePacket`.

    Raises :class:`TruncatedPacketError` when fewer than 48 bytes are given.
    """
    if len(data) < PACKET_SIZE:
        raise TruncatedPacketError(len(data), PACKET_SIZE)
    (
        header,
        stratum,
        poll,
        precision,
        root_delay,
        root_dispersion,
        ref_id,
        ref,
        org,
        rcv,
        xmt,
    ) = struct.unpack_from(PACKET_FORMAT, data)
    return ResponsePacket(
        leap=leap_of(header),
        version=version_of(header),
        mode=mode_of(header),
        stratum=stratum,
        poll=poll,
        precision=precision,
        root_delay=decode_short32(root_delay),
        root_dispersion=decode_short32(root_dispersion),
        reference_id=format_reference_id(stratum, ref_id, ipv4),
        reference_id_raw=ref_id,
        reference_time=ref,
        origin_time=org,
        receive_time=rcv,
        transmit_time=xmt,
    )

"""Plain-text rendering of a :class:`QueryReport`."""

from __future__ import annotations

from typing import List

from sntp_query.client.query import QueryReport
from sntp_query.ntp.timestamps import decode64


def format_report(report: QueryReport) -> List[str]:
    p = report.packet
    s = report.sync
    return [
        f"li = {int(p.leap)}",
        f"vn = {p.version}",
        f"mode = {int(p.mode)}",
        f"stratum = {p.stratum}",
        f"poll = {p.poll}",
        f"precision = {p.precision}",
        f"root delay = {p.root_delay:.3f}",
        f"root dispersion = {p.root_dispersion:.3f}",
        f"refid = {p.reference_id}",
        f"ref = {p.reference_unix:f}",
        f"org = {decode64(s.org):f}",
        f"rcv = {decode64(s.rcv):f}",
        f"xmt = {decode64(s.xmt):f}",
        f"dst = {decode64(s.dst):f}",
        f"offset (theta) = {s.offset:f}",
        f"delay (delta) = {s.delay:f}",
    ]

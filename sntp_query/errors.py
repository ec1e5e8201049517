"""Exception hierarchy shared by the codec, transport and query layers."""

from __future__ import annotations


class SntpError(Exception):
    """Base class for every error raised by sntp_query."""


class ParseError(SntpError):
    """A received datagram could not be decoded as an NTP packet."""


class TruncatedPacketError(ParseError):
    def __init__(self, size: int, expected: int):
        super().__init__(f"packet truncated: got {size} bytes, need {expected}")
        self.size = size
        self.expected = expected


class TransportError(SntpError):
    """The datagram transport failed to send or receive."""


class SendError(TransportError):
    pass


class ReceiveError(TransportError):
    pass


class ReceiveInterrupted(SntpError):
    """The blocking receive was cancelled before a reply arrived."""


class ResolutionError(SntpError):
    """The host or service could not be resolved to any address."""

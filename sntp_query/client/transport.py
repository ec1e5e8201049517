"""Datagram transport used by the query orchestrator.

The orchestrator only needs two operations, ``send`` and a cancellable
``receive``; :class:`Transport` spells that out so tests can substitute an
in-memory fake. :class:`UdpTransport` is the real thing over a connected UDP
socket.
"""

from __future__ import annotations

import select
import socket
import threading
from typing import Optional, Protocol

from sntp_query.errors import ReceiveError, ReceiveInterrupted, SendError

DEFAULT_POLL_INTERVAL = 0.1


class CancelToken:
    """One-shot cancellation flag, safe to set from a signal handler."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def reset(self) -> None:
        self._event.clear()


class Transport(Protocol):
    ipv4: bool

    def send(self, data: bytes) -> None: ...

    def receive(self, size: int, cancel: Optional[CancelToken] = None) -> bytes: ...

    def close(self) -> None: ...

    def __enter__(self) -> "Transport": ...

    def __exit__(self, *exc) -> None: ...


class UdpTransport:
    """A UDP socket connected to a single NTP server address."""

    def __init__(self, sock: socket.socket, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self.sock = sock
        self.poll_interval = poll_interval
        self.ipv4 = sock.family == socket.AF_INET

    @classmethod
    def open(cls, address, poll_interval: float = DEFAULT_POLL_INTERVAL) -> "UdpTransport":
        """Create and connect a socket for a :class:`ResolvedAddress`."""
        sock = socket.socket(address.family, socket.SOCK_DGRAM, address.proto)
        try:
            sock.connect(address.sockaddr)
        except OSError:
            sock.close()
            raise
        return cls(sock, poll_interval=poll_interval)

    def send(self, data: bytes) -> None:
        try:
            self.sock.send(data)
        except OSError as e:
            raise SendError(str(e)) from e

    def receive(self, size: int, cancel: Optional[CancelToken] = None) -> bytes:
        """Block until one datagram arrives or ``cancel`` fires.

        There is no overall timeout; the wait is sliced into ``poll_interval``
        chunks only so the cancellation flag gets checked.
        """
        try:
            while True:
                if cancel is not None and cancel.cancelled:
                    raise ReceiveInterrupted("receive cancelled")
                try:
                    ready, _, _ = select.select([self.sock], [], [], self.poll_interval)
                except InterruptedError:
                    continue
                if ready:
                    return self.sock.recv(size)
        except KeyboardInterrupt as e:
            raise ReceiveInterrupted("receive interrupted") from e
        except OSError as e:
            raise ReceiveError(str(e)) from e

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpTransport":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

"""One SNTP request/response exchange, and a sequential run over addresses.

An exchange moves through::

    IDLE -> BUILT -> SENT -> RECEIVED -> DONE
                        \\-> INTERRUPTED
                        \\-> FAILED (send error, receive error, short read)

Every state past SENT is terminal except RECEIVED. Errors are returned as a
:class:`QueryOutcome`, never raised, so one address failing does not stop the
next one from being queried.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple

import structlog

from sntp_query.client.transport import CancelToken, Transport
from sntp_query.errors import ParseError, ReceiveInterrupted, TransportError
from sntp_query.ntp.packet import PACKET_SIZE, ResponsePacket, build_request, parse_response
from sntp_query.ntp.sync import SyncResult, synchronize
from sntp_query.ntp.timestamps import system_clock

logger = structlog.get_logger(__name__)

Clock = Callable[[], int]


class QueryState(Enum):
    IDLE = "idle"
    BUILT = "built"
    SENT = "sent"
    RECEIVED = "received"
    INTERRUPTED = "interrupted"
    DONE = "done"
    FAILED = "failed"


class FailureReason(Enum):
    SEND_ERROR = "send_error"
    RECEIVE_ERROR = "receive_error"
    SHORT_READ = "short_read"


@dataclass(frozen=True)
class QueryReport:
    packet: ResponsePacket
    sync: SyncResult

    @property
    def offset(self) -> float:
        return self.sync.offset

    @property
    def delay(self) -> float:
        return self.sync.delay

    @property
    def origin_ok(self) -> bool:
        return self.sync.origin_ok

    def as_dict(self) -> Dict[str, Any]:
        p = self.packet
        return {
            "leap": int(p.leap),
            "version": p.version,
            "mode": int(p.mode),
            "stratum": p.stratum,
            "poll": p.poll,
            "precision": p.precision,
            "root_delay_ms": p.root_delay,
            "root_dispersion_ms": p.root_dispersion,
            "reference_id": p.reference_id,
            "reference_time": p.reference_unix,
            "origin_time": p.origin_unix,
            "receive_time": p.receive_unix,
            "transmit_time": p.transmit_unix,
            "org": self.sync.org,
            "rcv": self.sync.rcv,
            "xmt": self.sync.xmt,
            "dst": self.sync.dst,
            "offset": self.offset,
            "delay": self.delay,
            "origin_ok": self.origin_ok,
        }


@dataclass(frozen=True)
class QueryOutcome:
    state: QueryState
    report: Optional[QueryReport] = None
    reason: Optional[FailureReason] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is QueryState.DONE

    @property
    def skipped(self) -> bool:
        return self.state is QueryState.INTERRUPTED


class SntpQuery:
    """Drive a single exchange over ``transport``.

    The transport is closed when :meth:`run` returns, whatever the outcome.
    """

    def __init__(
        self,
        transport: Transport,
        clock: Clock = system_clock,
        cancel: Optional[CancelToken] = None,
    ):
        self.transport = transport
        self.clock = clock
        self.cancel = cancel
        self.state = QueryState.IDLE

    def _fail(self, reason: FailureReason, error: str) -> QueryOutcome:
        self.state = QueryState.FAILED
        logger.error("query_failed", reason=reason.value, error=error)
        return QueryOutcome(QueryState.FAILED, reason=reason, error=error)

    def run(self) -> QueryOutcome:
        with self.transport:
            return self._exchange()

    def _exchange(self) -> QueryOutcome:
        request, org = build_request(self.clock())
        self.state = QueryState.BUILT

        try:
            self.transport.send(request)
        except TransportError as e:
            return self._fail(FailureReason.SEND_ERROR, f"send: {e}")
        self.state = QueryState.SENT

        try:
            data = self.transport.receive(PACKET_SIZE, self.cancel)
        except ReceiveInterrupted:
            self.state = QueryState.INTERRUPTED
            logger.info("query_skipped")
            return QueryOutcome(QueryState.INTERRUPTED)
        except TransportError as e:
            return self._fail(FailureReason.RECEIVE_ERROR, f"read: {e}")
        dst = self.clock()

        if len(data) < PACKET_SIZE:
            return self._fail(
                FailureReason.SHORT_READ,
                f"short read: {len(data)} of {PACKET_SIZE} bytes",
            )
        self.state = QueryState.RECEIVED

        try:
            packet = parse_response(data, ipv4=self.transport.ipv4)
        except ParseError as e:
            return self._fail(FailureReason.SHORT_READ, str(e))

        report = QueryReport(packet=packet, sync=synchronize(org, packet, dst))
        self.state = QueryState.DONE
        return QueryOutcome(QueryState.DONE, report=report)


def query_addresses(
    addresses: Iterable[Any],
    transport_factory: Callable[[Any], Transport],
    clock: Clock = system_clock,
    cancel: Optional[CancelToken] = None,
) -> Iterator[Tuple[Any, QueryOutcome]]:
    """Query each address in order, one exchange at a time.

    Yields ``(address, outcome)`` lazily so the caller can print one result
    before the next query starts. A transport that cannot be opened counts as
    a send failure for that address.
    """
    for address in addresses:
        log = logger.bind(address=str(address))
        if cancel is not None:
            cancel.reset()
        try:
            transport = transport_factory(address)
        except OSError as e:
            log.error("transport_open_failed", error=str(e))
            yield address, QueryOutcome(
                QueryState.FAILED, reason=FailureReason.SEND_ERROR, error=f"socket: {e}"
            )
            continue
        outcome = SntpQuery(transport, clock=clock, cancel=cancel).run()
        log.debug("query_finished", state=outcome.state.value)
        yield address, outcome

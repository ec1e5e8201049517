"""Command-line entry point: query every address a host resolves to.

Usage examples:
  - sntp-query pool.ntp.org
  - sntp-query 192.0.2.1 1123
  - sntp-query time.example.com ntp --json

Ctrl+C while waiting for a reply skips that address and moves on to the next.
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sntp_query.client.query import QueryState, query_addresses
from sntp_query.client.report import format_report
from sntp_query.client.resolver import resolve
from sntp_query.client.transport import CancelToken, UdpTransport
from sntp_query.config.settings import settings
from sntp_query.errors import ResolutionError
from sntp_query.utils.logging_config import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sntp-query",
        description="Send one SNTP request to each address of a host and report the reply",
    )
    parser.add_argument("host", help="Server host name or address")
    parser.add_argument(
        "service",
        nargs="?",
        default=settings.DEFAULT_SERVICE,
        help=f"Port number or service name (default: {settings.DEFAULT_SERVICE})",
    )
    parser.add_argument("--json", action="store_true", help="Print each report as JSON")
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        help=f"Diagnostic log level (default: {settings.LOG_LEVEL})",
    )
    return parser


@contextmanager
def sigint_cancels(token: CancelToken) -> Iterator[CancelToken]:
    """Route SIGINT to ``token`` instead of raising KeyboardInterrupt."""
    previous = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, json_logs=settings.LOG_JSON, log_path=settings.LOG_PATH)
    logger = get_logger(__name__)

    try:
        addresses = resolve(args.host, args.service)
    except ResolutionError as e:
        logger.error("resolution_failed", host=args.host, service=args.service, error=str(e))
        print(str(e), file=sys.stderr)
        return 1

    def open_transport(address):
        return UdpTransport.open(address, poll_interval=settings.POLL_INTERVAL)

    with sigint_cancels(CancelToken()) as token:
        results = query_addresses(addresses, open_transport, cancel=token)
        for i, (address, outcome) in enumerate(results):
            if i:
                print()
            print(address)
            if outcome.state is QueryState.INTERRUPTED:
                print("skipping", file=sys.stderr)
            elif outcome.state is QueryState.FAILED:
                print(outcome.error, file=sys.stderr)
            elif args.json:
                print(json.dumps(outcome.report.as_dict(), indent=2))
            else:
                if not outcome.report.origin_ok:
                    s = outcome.report.sync
                    print(
                        f"our org is {s.org} but the server replied with "
                        f"{outcome.report.packet.origin_time}",
                        file=sys.stderr,
                    )
                print("\n".join(format_report(outcome.report)))
            sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())

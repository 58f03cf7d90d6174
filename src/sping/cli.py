"""
cli.py

Command line front end. Pings one host until interrupted.

Usage:
    sping [-I <source>] [-s <size>] [-i <interval>] [-W <timeout>] [-n] [-v] <host>

Example:
    sudo sping -i 1000 example.com

Author: David Song <davsong@cs.washington.edu>
"""

import argparse
import asyncio
import logging
import sys

from sping.constants import DEFAULT_DATA_SIZE, DEFAULT_INTERVAL
from sping.exceptions import ResolveError, TransportError
from sping.pinger import Pinger
from sping.report import ConsoleReporter
from sping.session import PingConf, Session
from sping.transport import RawSocketTransport
from sping.utils import resolve_ip

logger = logging.getLogger("sping")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sping",
        description="Asynchronous ICMP echo latency probe"
    )
    parser.add_argument("host", help="Host name or IPv4 address to ping")
    parser.add_argument(
        "-I", "--source",
        default=None,
        help="Local IPv4 address to send probes from"
    )
    parser.add_argument(
        "-s", "--size", type=int,
        default=DEFAULT_DATA_SIZE,
        help=f"Bytes of data per probe (default {DEFAULT_DATA_SIZE})"
    )
    parser.add_argument(
        "-i", "--interval", type=int,
        default=int(DEFAULT_INTERVAL * 1000),
        help="Milliseconds between a reply and the next probe (default %(default)s)"
    )
    parser.add_argument(
        "-W", "--timeout", type=int,
        default=None,
        help="Milliseconds to wait for a reply before probing again (default: wait forever)"
    )
    parser.add_argument(
        "-n", "--numeric", action="store_true",
        help="Do not resolve addresses to host names"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging"
    )
    return parser.parse_args(argv)


def build_conf(args: argparse.Namespace) -> PingConf:
    return PingConf(
        destination=args.host,
        source=args.source,
        data_size=args.size,
        interval=args.interval / 1000,
        reply_timeout=args.timeout / 1000 if args.timeout is not None else None,
        numeric=args.numeric,
    )


async def ping(conf: PingConf) -> None:
    """Sets up the transport and session, then pings until cancelled."""
    transport = RawSocketTransport(source=conf.source)
    try:
        dst_ip = resolve_ip(conf.destination)
        if dst_ip is None:
            raise ResolveError(f"unknown host {conf.destination}")

        session = Session(dst_ip=dst_ip, conf=conf)
        reporter = ConsoleReporter(numeric=conf.numeric)
        pinger = Pinger(conf.destination, session, transport, reporter)
        await pinger.run()
    finally:
        transport.close()


def main(argv=None) -> int:
    """Parses arguments and runs the pinger."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    try:
        conf = build_conf(args)
        asyncio.run(ping(conf))
    except (TransportError, ResolveError, ValueError) as e:
        logger.error(f"{e}")
        return 1
    except KeyboardInterrupt:
        logger.debug("Stopped by user.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
